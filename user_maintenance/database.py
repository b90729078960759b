"""SQLite-backed persistence for teams, users and API tokens."""
from __future__ import annotations

import base64
import hashlib
import hmac
import logging
import secrets
import sqlite3
from datetime import datetime, timezone
from pathlib import Path
from typing import List, Optional

from .config import Settings, load_settings
from .models import Err, ErrorKind, Ok, Result, Team, UserRecord

logger = logging.getLogger("user_maintenance.database")

USER_NOT_FOUND = "User not found"
TEAM_NOT_FOUND = "Team not found"
DUPLICATE_USER = "User with this email already exists"
USER_ASSOCIATED = "User is associated with other records and cannot be deleted"

_TOKEN_PREFIX = "umt_"
_TOKEN_PREFIX_LENGTH = 12
_TOKEN_ROUNDS = 10_000

_USER_SELECT = """
    SELECT u.id, u.first_name, u.last_name, u.email, u.status, u.initials,
           u.team_id, t.name AS team_name, u.created_by_user_id,
           c.first_name || ' ' || c.last_name AS created_by, u.created_at
      FROM users AS u
      JOIN teams AS t ON t.id = u.team_id
      LEFT JOIN users AS c ON c.id = u.created_by_user_id
"""


def _ensure_directory(path: Path) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)


def resolve_database_path(env_value: Optional[str]) -> Path:
    """Resolve the on-disk path for the application database."""

    if env_value:
        return Path(env_value).expanduser().resolve(strict=False)
    return load_settings().database_path


def _current_timestamp() -> datetime:
    return datetime.now(timezone.utc)


def _serialize_datetime(value: datetime) -> str:
    return value.isoformat()


def _parse_datetime(value: str) -> datetime:
    parsed = datetime.fromisoformat(value)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _generate_api_token() -> str:
    return _TOKEN_PREFIX + secrets.token_urlsafe(32)


def _hash_api_token(token: str, salt: bytes) -> bytes:
    return hashlib.pbkdf2_hmac("sha256", token.encode("utf-8"), salt, _TOKEN_ROUNDS)


class Database:
    """Simple wrapper around SQLite for persisting teams and users.

    The check methods return :class:`~user_maintenance.models.Ok` or
    :class:`~user_maintenance.models.Err` so request handlers can surface the
    failure message to the caller unchanged.
    """

    def __init__(self, path: Path) -> None:
        _ensure_directory(path)
        self._path = path

    @classmethod
    def from_settings(cls, settings: Settings) -> "Database":
        return cls(settings.database_path)

    @property
    def path(self) -> Path:
        return self._path

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self._path, check_same_thread=False)
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA foreign_keys = ON")
        return conn

    def initialize(self) -> None:
        """Create the required tables if they do not already exist."""

        with self._connect() as conn:
            conn.executescript(
                """
                CREATE TABLE IF NOT EXISTS teams (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    name TEXT NOT NULL UNIQUE COLLATE NOCASE,
                    created_by_user_id INTEGER REFERENCES users(id),
                    created_at TEXT NOT NULL
                );

                CREATE TABLE IF NOT EXISTS users (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    first_name TEXT NOT NULL,
                    last_name TEXT NOT NULL,
                    email TEXT NOT NULL UNIQUE,
                    status TEXT NOT NULL,
                    initials TEXT NOT NULL,
                    team_id INTEGER NOT NULL REFERENCES teams(id),
                    created_by_user_id INTEGER REFERENCES users(id),
                    created_at TEXT NOT NULL
                );

                CREATE TABLE IF NOT EXISTS api_tokens (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    user_id INTEGER NOT NULL REFERENCES users(id) ON DELETE CASCADE,
                    token_prefix TEXT NOT NULL,
                    token_hash TEXT NOT NULL,
                    token_salt TEXT NOT NULL,
                    created_at TEXT NOT NULL
                );

                CREATE INDEX IF NOT EXISTS idx_users_team_id ON users(team_id);
                CREATE INDEX IF NOT EXISTS idx_users_created_by ON users(created_by_user_id);
                CREATE INDEX IF NOT EXISTS idx_teams_created_by ON teams(created_by_user_id);
                CREATE INDEX IF NOT EXISTS idx_api_tokens_prefix ON api_tokens(token_prefix);
                """
            )

    # ------------------------------------------------------------------
    # Team management
    # ------------------------------------------------------------------
    def create_team(self, name: str, *, created_by_user_id: Optional[int] = None) -> Team:
        normalized_name = name.strip()
        if not normalized_name:
            raise ValueError("Team name must not be empty")

        created_at = _current_timestamp()
        with self._connect() as conn:
            try:
                cursor = conn.execute(
                    "INSERT INTO teams (name, created_by_user_id, created_at) VALUES (?, ?, ?)",
                    (normalized_name, created_by_user_id, _serialize_datetime(created_at)),
                )
            except sqlite3.IntegrityError as exc:
                raise ValueError("A team with that name already exists") from exc
            team_id = cursor.lastrowid

        return Team(
            id=int(team_id),
            name=normalized_name,
            created_at=created_at,
            created_by_user_id=created_by_user_id,
        )

    def get_team_by_name(self, name: str) -> Optional[Team]:
        with self._connect() as conn:
            row = conn.execute("SELECT * FROM teams WHERE name = ?", (name.strip(),)).fetchone()
        if row is None:
            return None
        return self._row_to_team(row)

    def check_team_by_id(self, team_id: int) -> Result[Team]:
        with self._connect() as conn:
            row = conn.execute("SELECT * FROM teams WHERE id = ?", (team_id,)).fetchone()
        if row is None:
            return Err(ErrorKind.NOT_FOUND, TEAM_NOT_FOUND)
        return Ok(self._row_to_team(row))

    # ------------------------------------------------------------------
    # User management
    # ------------------------------------------------------------------
    def list_users(self, team: Optional[str] = None) -> List[UserRecord]:
        """Return every user, optionally limited to one team.

        ``team`` matches either the team name (case-insensitive) or its id.
        """

        query = _USER_SELECT
        params: tuple = ()
        if team is not None:
            keyword = team.strip()
            query += " WHERE t.name = ? COLLATE NOCASE OR CAST(t.id AS TEXT) = ?"
            params = (keyword, keyword)
        query += " ORDER BY u.id"

        with self._connect() as conn:
            rows = conn.execute(query, params).fetchall()
        return [self._row_to_user(row) for row in rows]

    def get_user_by_id(self, user_id: int) -> Result[UserRecord]:
        with self._connect() as conn:
            row = conn.execute(_USER_SELECT + " WHERE u.id = ?", (user_id,)).fetchone()
        if row is None:
            return Err(ErrorKind.NOT_FOUND, USER_NOT_FOUND)
        return Ok(self._row_to_user(row))

    def check_user_exists(self, email: str) -> Result[None]:
        """Succeed when no user already owns ``email``."""

        with self._connect() as conn:
            row = conn.execute("SELECT id FROM users WHERE email = ?", (email.strip().lower(),)).fetchone()
        if row is not None:
            return Err(ErrorKind.CONFLICT, DUPLICATE_USER)
        return Ok()

    def create_user(
        self,
        *,
        first_name: str,
        last_name: str,
        email: str,
        status: str,
        team_id: int,
        initials: str,
        created_by_user_id: Optional[int],
    ) -> int:
        """Insert a user and return its store-assigned id."""

        created_at = _current_timestamp()
        with self._connect() as conn:
            try:
                cursor = conn.execute(
                    """
                    INSERT INTO users (
                        first_name,
                        last_name,
                        email,
                        status,
                        initials,
                        team_id,
                        created_by_user_id,
                        created_at
                    )
                    VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                    """,
                    (
                        first_name,
                        last_name,
                        email.strip().lower(),
                        status,
                        initials,
                        team_id,
                        created_by_user_id,
                        _serialize_datetime(created_at),
                    ),
                )
            except sqlite3.IntegrityError as exc:
                raise ValueError(DUPLICATE_USER) from exc
            return int(cursor.lastrowid)

    def update_user(self, user_id: int, *, team_id: int, **fields: object) -> Result[None]:
        allowed = {
            "first_name": "first_name",
            "last_name": "last_name",
            "email": "email",
            "status": "status",
            "initials": "initials",
        }

        updates: List[str] = ["team_id = ?"]
        values: List[object] = [team_id]
        for key, column in allowed.items():
            value = fields.get(key)
            if value is None:
                continue
            if column == "email":
                value = str(value).strip().lower()
            updates.append(f"{column} = ?")
            values.append(value)

        values.append(user_id)
        query = f"UPDATE users SET {', '.join(updates)} WHERE id = ?"

        try:
            with self._connect() as conn:
                cursor = conn.execute(query, values)
                if cursor.rowcount == 0:
                    return Err(ErrorKind.NOT_FOUND, USER_NOT_FOUND)
        except sqlite3.IntegrityError as exc:
            logger.warning("Rejected update for user %s: %s", user_id, exc)
            if "users.email" in str(exc):
                return Err(ErrorKind.CONFLICT, DUPLICATE_USER)
            return Err(ErrorKind.INTERNAL, "User could not be updated")
        return Ok()

    def check_user_association(self, user_id: int) -> Result[None]:
        """Succeed when no user or team records ``user_id`` as its creator."""

        with self._connect() as conn:
            row = conn.execute(
                """
                SELECT (SELECT COUNT(*) FROM users WHERE created_by_user_id = ?)
                     + (SELECT COUNT(*) FROM teams WHERE created_by_user_id = ?) AS total
                """,
                (user_id, user_id),
            ).fetchone()
        if int(row["total"]) > 0:
            return Err(ErrorKind.CONFLICT, USER_ASSOCIATED)
        return Ok()

    def delete_user_by_id(self, user_id: int) -> bool:
        with self._connect() as conn:
            cursor = conn.execute("DELETE FROM users WHERE id = ?", (user_id,))
            return cursor.rowcount > 0

    # ------------------------------------------------------------------
    # API tokens
    # ------------------------------------------------------------------
    def create_api_token(self, user_id: int) -> str:
        """Issue a bearer token for ``user_id``; only its hash is stored."""

        if not self.get_user_by_id(user_id).success:
            raise ValueError(USER_NOT_FOUND)

        token = _generate_api_token()
        salt = secrets.token_bytes(16)
        hash_bytes = _hash_api_token(token, salt)
        with self._connect() as conn:
            conn.execute(
                """
                INSERT INTO api_tokens (user_id, token_prefix, token_hash, token_salt, created_at)
                VALUES (?, ?, ?, ?, ?)
                """,
                (
                    user_id,
                    token[:_TOKEN_PREFIX_LENGTH],
                    base64.b64encode(hash_bytes).decode("ascii"),
                    base64.b64encode(salt).decode("ascii"),
                    _serialize_datetime(_current_timestamp()),
                ),
            )
        return token

    def authenticate_api_token(self, token: str) -> Optional[int]:
        """Return the id of the user owning ``token``, if any."""

        with self._connect() as conn:
            rows = conn.execute(
                "SELECT user_id, token_hash, token_salt FROM api_tokens WHERE token_prefix = ?",
                (token[:_TOKEN_PREFIX_LENGTH],),
            ).fetchall()

        for row in rows:
            salt = base64.b64decode(row["token_salt"])
            expected_hash = base64.b64decode(row["token_hash"])
            if hmac.compare_digest(expected_hash, _hash_api_token(token, salt)):
                return int(row["user_id"])
        return None

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------
    def _row_to_team(self, row: sqlite3.Row) -> Team:
        creator = row["created_by_user_id"]
        return Team(
            id=int(row["id"]),
            name=str(row["name"]),
            created_at=_parse_datetime(str(row["created_at"])),
            created_by_user_id=int(creator) if creator is not None else None,
        )

    def _row_to_user(self, row: sqlite3.Row) -> UserRecord:
        creator = row["created_by_user_id"]
        return UserRecord(
            id=int(row["id"]),
            first_name=str(row["first_name"]),
            last_name=str(row["last_name"]),
            email=str(row["email"]),
            status=str(row["status"]),
            initials=str(row["initials"]),
            team_id=int(row["team_id"]),
            team_name=str(row["team_name"]),
            created_at=_parse_datetime(str(row["created_at"])),
            created_by_user_id=int(creator) if creator is not None else None,
            created_by=row["created_by"],
        )


__all__ = ["Database", "resolve_database_path"]
