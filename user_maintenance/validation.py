"""Request validation schemas for the user maintenance handlers."""
from __future__ import annotations

import json
from typing import Any, Dict, Optional, Sequence, Type, TypeVar

from pydantic import BaseModel, ConfigDict, EmailStr, Field, ValidationError, ValidationInfo, field_validator, model_validator

from .config import DEFAULT_USER_STATUSES, Settings
from .models import Err, ErrorKind, Ok, Result

SchemaT = TypeVar("SchemaT", bound=BaseModel)

_MAX_ID = 2**63 - 1
_NAME_MAX_LENGTH = 50


def _normalize_email(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    return value.strip().lower()


def _check_status(value: Optional[str], info: ValidationInfo) -> Optional[str]:
    if value is None:
        return None
    allowed: Sequence[str] = DEFAULT_USER_STATUSES
    if info.context and info.context.get("user_statuses"):
        allowed = info.context["user_statuses"]
    if value not in allowed:
        raise ValueError(f"must be one of [{', '.join(allowed)}]")
    return value


class _Schema(BaseModel):
    model_config = ConfigDict(extra="forbid", str_strip_whitespace=True, populate_by_name=True)


class TeamKeywordQuery(_Schema):
    team: Optional[str] = Field(default=None, min_length=1, max_length=100)


class UserIdPath(_Schema):
    user_id: int = Field(..., alias="userId", gt=0, le=_MAX_ID)


class AddUserRequest(_Schema):
    first_name: str = Field(..., alias="firstName", min_length=1, max_length=_NAME_MAX_LENGTH)
    last_name: str = Field(..., alias="lastName", min_length=1, max_length=_NAME_MAX_LENGTH)
    email: EmailStr
    status: str
    team_id: int = Field(..., alias="teamId", gt=0, le=_MAX_ID)
    initials: Optional[str] = Field(default=None, min_length=1, max_length=5)

    @field_validator("email")
    @classmethod
    def _validate_email(cls, value: str) -> str:
        return _normalize_email(value)  # type: ignore[return-value]

    @field_validator("status")
    @classmethod
    def _validate_status(cls, value: str, info: ValidationInfo) -> str:
        return _check_status(value, info)  # type: ignore[return-value]

    @model_validator(mode="after")
    def _derive_initials(self):  # type: ignore[override]
        if self.initials is None:
            self.initials = (self.first_name[0] + self.last_name[0]).upper()
        return self


class UpdateUserRequest(_Schema):
    first_name: Optional[str] = Field(default=None, alias="firstName", min_length=1, max_length=_NAME_MAX_LENGTH)
    last_name: Optional[str] = Field(default=None, alias="lastName", min_length=1, max_length=_NAME_MAX_LENGTH)
    email: Optional[EmailStr] = None
    status: Optional[str] = None
    team_id: int = Field(..., alias="teamId", gt=0, le=_MAX_ID)
    initials: Optional[str] = Field(default=None, min_length=1, max_length=5)

    @field_validator("email")
    @classmethod
    def _validate_email(cls, value: Optional[str]) -> Optional[str]:
        return _normalize_email(value)

    @field_validator("status")
    @classmethod
    def _validate_status(cls, value: Optional[str], info: ValidationInfo) -> Optional[str]:
        return _check_status(value, info)

    def changes(self) -> Dict[str, Any]:
        """Return the optional fields the caller actually supplied."""

        return self.model_dump(exclude={"team_id"}, exclude_none=True)


def format_validation_error(exc: ValidationError) -> str:
    """Render the first validation problem as a single readable sentence."""

    error = exc.errors()[0]
    field = ".".join(str(part) for part in error.get("loc", ())) or "value"
    error_type = error.get("type")
    if error_type == "missing":
        return f'"{field}" is required'
    if error_type == "extra_forbidden":
        return f'"{field}" is not allowed'
    message = str(error.get("msg", "is invalid"))
    if message.startswith("Value error, "):
        message = message[len("Value error, "):]
    return f'"{field}" {message[0].lower()}{message[1:]}' if message else f'"{field}" is invalid'


def validate(
    schema: Type[SchemaT],
    data: object,
    settings: Settings | None = None,
) -> Result[SchemaT]:
    """Validate ``data`` against ``schema`` without raising."""

    if not isinstance(data, dict):
        return Err(ErrorKind.VALIDATION, '"value" must be of type object')

    statuses = settings.user_statuses if settings is not None else DEFAULT_USER_STATUSES
    try:
        model = schema.model_validate(data, context={"user_statuses": statuses})
    except ValidationError as exc:
        return Err(ErrorKind.VALIDATION, format_validation_error(exc))
    return Ok(model)


def parse_json_body(body: str) -> Result[Dict[str, Any]]:
    try:
        data = json.loads(body)
    except (TypeError, ValueError):
        return Err(ErrorKind.VALIDATION, "Request body must be valid JSON")
    if not isinstance(data, dict):
        return Err(ErrorKind.VALIDATION, '"value" must be of type object')
    return Ok(data)


__all__ = [
    "AddUserRequest",
    "TeamKeywordQuery",
    "UpdateUserRequest",
    "UserIdPath",
    "format_validation_error",
    "parse_json_body",
    "validate",
]
