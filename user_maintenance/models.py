"""Domain records and result types for the user maintenance service."""

from __future__ import annotations

import enum
from dataclasses import dataclass
from datetime import datetime
from typing import Generic, Optional, TypeVar, Union

T = TypeVar("T")


@dataclass(frozen=True)
class Team:
    """A team that users can be assigned to."""

    id: int
    name: str
    created_at: datetime
    created_by_user_id: Optional[int] = None


@dataclass(frozen=True)
class UserRecord:
    """A user row joined with its team and creator."""

    id: int
    first_name: str
    last_name: str
    email: str
    status: str
    initials: str
    team_id: int
    team_name: str
    created_at: datetime
    created_by_user_id: Optional[int] = None
    created_by: Optional[str] = None


class ErrorKind(enum.Enum):
    VALIDATION = "validation"
    NOT_FOUND = "not_found"
    CONFLICT = "conflict"
    INTERNAL = "internal"

    @property
    def status_code(self) -> int:
        return _STATUS_CODES[self]


_STATUS_CODES = {
    ErrorKind.VALIDATION: 400,
    ErrorKind.NOT_FOUND: 404,
    ErrorKind.CONFLICT: 400,
    ErrorKind.INTERNAL: 500,
}


@dataclass(frozen=True)
class Ok(Generic[T]):
    """Successful outcome carrying an optional value."""

    value: T = None  # type: ignore[assignment]

    @property
    def success(self) -> bool:
        return True


@dataclass(frozen=True)
class Err:
    """Failed outcome with a category and a human readable message.

    The message is returned to API callers verbatim, so it must never
    contain internal detail such as SQL errors.
    """

    kind: ErrorKind
    message: str

    @property
    def success(self) -> bool:
        return False


Result = Union[Ok[T], Err]


__all__ = ["Err", "ErrorKind", "Ok", "Result", "Team", "UserRecord"]
