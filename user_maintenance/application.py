"""Application factory used by the CLI and ASGI servers."""
from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

from fastapi import FastAPI

from .api import create_app as create_api_app
from .config import Settings, load_settings
from .database import Database
from .security import APIKeyAuth

logger = logging.getLogger("user_maintenance.application")


def create_application(
    *,
    settings: Optional[Settings] = None,
    config_path: Optional[Path] = None,
) -> FastAPI:
    """Create the ASGI application from settings."""

    if settings is None:
        settings = load_settings(config_path)

    database = Database.from_settings(settings)
    database.initialize()
    logger.info("Using user database at %s", database.path)

    return create_api_app(
        database=database,
        auth=APIKeyAuth(database),
        settings=settings,
    )


__all__ = ["create_application"]
