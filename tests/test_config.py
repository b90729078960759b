from __future__ import annotations

from pathlib import Path

import pytest

from user_maintenance.config import DEFAULT_USER_STATUSES, Settings, load_settings, resolve_config_path


def _write(path: Path, content: str) -> Path:
    path.write_text(content, encoding="utf-8")
    return path


def test_defaults_without_config_file(tmp_path: Path) -> None:
    settings = load_settings(tmp_path / "missing.yaml", env={})

    assert settings.user_statuses == DEFAULT_USER_STATUSES
    assert settings.log_level == "INFO"
    assert settings.database_path.name == "user_maintenance.sqlite3"
    assert settings.port == 8000


def test_yaml_file_is_loaded_relative_to_its_directory(tmp_path: Path) -> None:
    config = _write(
        tmp_path / "settings.yaml",
        "database_path: data/users.sqlite3\n"
        "log_level: debug\n"
        "user_statuses:\n"
        "  - Active\n"
        "  - Suspended\n"
        "port: 9000\n",
    )

    settings = load_settings(config, env={})

    assert settings.database_path == (tmp_path / "data" / "users.sqlite3").resolve()
    assert settings.log_level == "DEBUG"
    assert settings.user_statuses == ("Active", "Suspended")
    assert settings.port == 9000


def test_environment_overrides_file_values(tmp_path: Path) -> None:
    config = _write(tmp_path / "settings.yaml", "log_level: INFO\n")
    env = {
        "USER_MAINTENANCE_DB_PATH": str(tmp_path / "override.sqlite3"),
        "USER_MAINTENANCE_LOG_LEVEL": "warning",
        "USER_MAINTENANCE_USER_STATUSES": "Active, Locked ,",
    }

    settings = load_settings(config, env=env)

    assert settings.database_path == (tmp_path / "override.sqlite3").resolve()
    assert settings.log_level == "WARNING"
    assert settings.user_statuses == ("Active", "Locked")


def test_config_path_can_come_from_environment(tmp_path: Path) -> None:
    config = _write(tmp_path / "custom.yaml", "host: 127.0.0.1\n")

    settings = load_settings(env={"USER_MAINTENANCE_CONFIG": str(config)})

    assert settings.host == "127.0.0.1"
    assert resolve_config_path(str(config)) == config.resolve()


def test_unknown_keys_are_rejected(tmp_path: Path) -> None:
    config = _write(tmp_path / "settings.yaml", "databse_path: typo.sqlite3\n")

    with pytest.raises(ValueError, match="databse_path"):
        load_settings(config, env={})


def test_empty_status_list_is_rejected() -> None:
    with pytest.raises(ValueError):
        Settings.from_dict({"user_statuses": []})


def test_non_mapping_file_is_rejected(tmp_path: Path) -> None:
    config = _write(tmp_path / "settings.yaml", "- just\n- a list\n")

    with pytest.raises(ValueError):
        load_settings(config, env={})
