"""FastAPI application that exposes the user maintenance endpoints."""
from __future__ import annotations

import os
from typing import Any, Dict, Mapping, Optional

import anyio
from fastapi import Depends, FastAPI, Request, Response
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
from uvicorn.middleware.proxy_headers import ProxyHeadersMiddleware

from .config import Settings, load_settings
from .database import Database
from .handlers import UserRequest, dispatch
from .security import APIKeyAuth

_METHODS = ["GET", "HEAD", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"]


def _trusted_proxy_hosts() -> list[str] | str:
    raw = os.getenv("USER_MAINTENANCE_TRUSTED_PROXIES")
    if not raw:
        return "*"
    hosts = [item.strip() for item in raw.split(",") if item.strip()]
    return hosts or "*"


def to_http_response(result: Mapping[str, Any]) -> Response:
    """Convert a handler envelope into a Starlette response."""

    headers: Dict[str, str] = dict(result.get("headers") or {})
    media_type = headers.pop("Content-Type", "application/json")
    return Response(
        content=result["body"],
        status_code=int(result["statusCode"]),
        headers=headers,
        media_type=media_type,
    )


def create_app(
    *,
    database: Database | None = None,
    auth: APIKeyAuth | None = None,
    settings: Settings | None = None,
    initialize_database: bool = False,
) -> FastAPI:
    if settings is None:
        settings = load_settings()

    if database is None:
        database = Database.from_settings(settings)
        database.initialize()
    elif initialize_database:
        database.initialize()

    if auth is None:
        auth = APIKeyAuth(database)

    app = FastAPI(
        title="User Maintenance",
        description="Administrative API for creating, updating and removing users",
        version="1.0.0",
    )
    app.add_middleware(ProxyHeadersMiddleware, trusted_hosts=_trusted_proxy_hosts())
    app.state.database = database
    app.state.settings = settings

    async def _dispatch(
        request: Request,
        resource: str,
        *,
        path_parameters: Optional[Dict[str, str]] = None,
        caller_id: Optional[int] = None,
    ) -> Response:
        raw_body = await request.body()
        user_request = UserRequest(
            method=request.method,
            resource=resource,
            path_parameters=path_parameters,
            query_parameters=dict(request.query_params) or None,
            body=raw_body.decode("utf-8", errors="replace") if raw_body else None,
            caller_id=caller_id,
        )
        result = await anyio.to_thread.run_sync(dispatch, user_request, database, settings)
        return to_http_response(result)

    @app.get("/health")
    async def healthcheck() -> Dict[str, str]:
        return {"status": "ok"}

    @app.api_route("/user", methods=_METHODS)
    async def users_collection(request: Request, caller_id: int = Depends(auth)) -> Response:
        return await _dispatch(request, "/user", caller_id=caller_id)

    @app.api_route("/user/create", methods=_METHODS)
    async def create_user(request: Request, caller_id: int = Depends(auth)) -> Response:
        return await _dispatch(request, "/user/create", caller_id=caller_id)

    @app.api_route("/user/{userId}", methods=_METHODS)
    async def user_by_id(userId: str, request: Request, caller_id: int = Depends(auth)) -> Response:
        return await _dispatch(
            request,
            "/user/{userId}",
            path_parameters={"userId": userId},
            caller_id=caller_id,
        )

    @app.api_route("/{path:path}", methods=_METHODS, include_in_schema=False)
    async def unknown_route(path: str, request: Request) -> Response:
        return await _dispatch(request, f"/{path}")

    @app.exception_handler(StarletteHTTPException)
    async def handle_http_error(_: object, exc: StarletteHTTPException):
        return JSONResponse(
            status_code=exc.status_code,
            content={"message": str(exc.detail)},
            headers=getattr(exc, "headers", None),
        )

    return app


__all__ = ["create_app", "to_http_response"]
