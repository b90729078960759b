import httpx

import main
from main import _parse_args


def test_default_command_invokes_serve() -> None:
    args = _parse_args([])
    assert args.command == "serve"


def test_default_command_accepts_options_without_subcommand() -> None:
    args = _parse_args(["--host", "127.0.0.1", "--port", "8080"])
    assert args.command == "serve"
    assert args.host == "127.0.0.1"
    assert args.port == 8080


def test_list_users_subcommand_options() -> None:
    args = _parse_args(["list-users", "--team", "Platform", "--token", "umt_abc"])
    assert args.command == "list-users"
    assert args.team == "Platform"
    assert args.token == "umt_abc"


def test_list_users_prints_table(monkeypatch, capsys) -> None:
    captured = {}
    users = [
        {
            "id": "1",
            "firstName": "Ada",
            "lastName": "Lovelace",
            "status": "Active",
            "team": {"id": "1", "value": "Platform"},
            "addedDate": "2024-01-01T00:00:00.000Z",
        }
    ]

    def fake_get(url, params=None, headers=None, timeout=None):
        captured.update({"url": url, "params": params, "headers": headers})
        return httpx.Response(200, json=users)

    monkeypatch.setattr(httpx, "get", fake_get)

    exit_code = main._list_users("http://service.local/", "umt_abc", "Platform")

    assert exit_code == 0
    assert captured["url"] == "http://service.local/user"
    assert captured["params"] == {"team": "Platform"}
    assert captured["headers"] == {"Authorization": "Bearer umt_abc"}
    output = capsys.readouterr().out
    assert "1 user(s) found" in output
    assert "Ada Lovelace" in output


def test_list_users_reports_service_errors(monkeypatch, capsys) -> None:
    monkeypatch.setattr(
        httpx,
        "get",
        lambda *_args, **_kwargs: httpx.Response(403, json={"message": "Invalid API token"}),
    )

    assert main._list_users(None, "umt_abc", None) == 1
    assert "Invalid API token" in capsys.readouterr().err


def test_list_users_requires_token(monkeypatch) -> None:
    monkeypatch.delenv("USER_MAINTENANCE_CLI_TOKEN", raising=False)

    assert main._list_users(None, None, None) == 1


def test_init_db_creates_tables(tmp_path, monkeypatch) -> None:
    db_path = tmp_path / "cli.sqlite3"
    monkeypatch.setenv("USER_MAINTENANCE_DB_PATH", str(db_path))
    monkeypatch.setenv("USER_MAINTENANCE_CONFIG", str(tmp_path / "absent.yaml"))

    assert main.main(["init-db"]) == 0
    assert db_path.exists()
