"""Configuration management for the user maintenance service."""
from __future__ import annotations

import os
from dataclasses import dataclass, fields, replace
from pathlib import Path
from typing import Dict, Mapping, Optional, Tuple

import yaml

_PROJECT_ROOT = Path(__file__).resolve().parent.parent

DEFAULT_USER_STATUSES: Tuple[str, ...] = ("Active", "Inactive")


def _default_database_path() -> Path:
    return (_PROJECT_ROOT / "data" / "user_maintenance.sqlite3").resolve(strict=False)


def _resolve_path(raw: str, base_path: Path | None = None) -> Path:
    candidate = Path(raw).expanduser()
    if candidate.is_absolute():
        return candidate.resolve(strict=False)
    if base_path is not None:
        return (base_path / candidate).resolve(strict=False)
    return candidate.resolve(strict=False)


def _parse_statuses(value: object) -> Tuple[str, ...]:
    if isinstance(value, str):
        items = value.split(",")
    elif isinstance(value, (list, tuple)):
        items = [str(item) for item in value]
    else:
        raise ValueError("user_statuses must be a list or a comma separated string")
    statuses = tuple(item.strip() for item in items if item.strip())
    if not statuses:
        raise ValueError("user_statuses must contain at least one status")
    return statuses


@dataclass(frozen=True)
class Settings:
    """Runtime settings handed to the data layer and request handlers."""

    database_path: Path
    log_level: str = "INFO"
    user_statuses: Tuple[str, ...] = DEFAULT_USER_STATUSES
    host: str = "0.0.0.0"
    port: int = 8000

    @staticmethod
    def from_dict(data: Mapping[str, object], base_path: Path | None = None) -> "Settings":
        """Create :class:`Settings` from raw dictionary data."""
        known = {field.name for field in fields(Settings)}
        unknown = set(data.keys()) - known
        if unknown:
            raise ValueError(f"Unknown configuration keys: {', '.join(sorted(unknown))}")

        raw_path = data.get("database_path")
        database_path = _resolve_path(str(raw_path), base_path) if raw_path else _default_database_path()

        statuses = data.get("user_statuses")
        return Settings(
            database_path=database_path,
            log_level=str(data.get("log_level", "INFO")).upper(),
            user_statuses=_parse_statuses(statuses) if statuses is not None else DEFAULT_USER_STATUSES,
            host=str(data.get("host", "0.0.0.0")),
            port=int(data.get("port", 8000)),  # type: ignore[arg-type]
        )

    def with_overrides(self, env: Mapping[str, str]) -> "Settings":
        """Apply ``USER_MAINTENANCE_*`` environment overrides."""
        overrides: Dict[str, object] = {}
        db_path = env.get("USER_MAINTENANCE_DB_PATH")
        if db_path:
            overrides["database_path"] = _resolve_path(db_path)
        log_level = env.get("USER_MAINTENANCE_LOG_LEVEL")
        if log_level:
            overrides["log_level"] = log_level.strip().upper()
        statuses = env.get("USER_MAINTENANCE_USER_STATUSES")
        if statuses:
            overrides["user_statuses"] = _parse_statuses(statuses)
        if not overrides:
            return self
        return replace(self, **overrides)


def resolve_config_path(env_value: Optional[str]) -> Path:
    """Resolve the path to the YAML settings file."""
    if env_value:
        return Path(env_value).expanduser().resolve(strict=False)
    return (_PROJECT_ROOT / "config" / "settings.yaml").resolve(strict=False)


def load_settings(
    config_path: Path | None = None,
    env: Mapping[str, str] | None = None,
) -> Settings:
    """Load settings from the YAML file (when present) and the environment."""
    if env is None:
        env = os.environ
    if config_path is None:
        config_path = resolve_config_path(env.get("USER_MAINTENANCE_CONFIG"))

    if config_path.is_file():
        with config_path.open("r", encoding="utf-8") as handle:
            raw = yaml.safe_load(handle) or {}
        if not isinstance(raw, dict):
            raise ValueError(f"Configuration file {config_path} must contain a mapping")
        settings = Settings.from_dict(raw, base_path=config_path.parent)
    else:
        settings = Settings(database_path=_default_database_path())

    return settings.with_overrides(env)


__all__ = ["DEFAULT_USER_STATUSES", "Settings", "load_settings", "resolve_config_path"]
