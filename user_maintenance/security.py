"""Security helpers for the user maintenance API."""
from __future__ import annotations

from fastapi import HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from .database import Database


class APIKeyAuth:
    """Resolve a bearer API token to the id of the calling user."""

    def __init__(self, database: Database):
        self._database = database
        self._bearer = HTTPBearer(auto_error=False)

    async def __call__(self, request: Request) -> int:
        credentials: HTTPAuthorizationCredentials | None = await self._bearer(request)  # type: ignore[assignment]
        if credentials is None or credentials.scheme.lower() != "bearer":
            raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Missing bearer token")

        user_id = self._database.authenticate_api_token(credentials.credentials)
        if user_id is None:
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Invalid API token")
        return user_id


__all__ = ["APIKeyAuth"]
