"""User maintenance API: list, inspect, create, update and delete users."""

from __future__ import annotations

from typing import Any

from .database import Database, resolve_database_path


def create_app(*args: Any, **kwargs: Any):
    """Factory function that returns the configured ASGI application."""

    from .application import create_application

    return create_application(*args, **kwargs)


def lambda_handler(event: Any, context: Any = None):
    """Entry point for API-gateway style invocations."""

    from .handlers import lambda_handler as _lambda_handler

    return _lambda_handler(event, context)


__all__ = [
    "Database",
    "resolve_database_path",
    "create_app",
    "lambda_handler",
]
