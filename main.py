"""Command-line interface for the user maintenance service."""

from __future__ import annotations
import argparse
import logging
import os
import sys
from pathlib import Path
from typing import Sequence

import httpx

from user_maintenance.config import Settings, load_settings
from user_maintenance.database import Database

logger = logging.getLogger("user_maintenance.main")

_DEFAULT_SERVICE_URL = "http://localhost:8000"


def _parse_args(argv: Sequence[str] | None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="User maintenance utilities")
    parser.add_argument(
        "--config",
        default=None,
        help="Path to the YAML settings file (default: USER_MAINTENANCE_CONFIG or config/settings.yaml)",
    )
    subparsers = parser.add_subparsers(dest="command")

    parser.set_defaults(command="serve")

    subparsers.add_parser("init-db", help="Initialise the user database")

    serve_parser = subparsers.add_parser("serve", help="Start the HTTP user maintenance service")
    serve_parser.add_argument("--host", default=None, help="Bind address for the API")
    serve_parser.add_argument(
        "--port",
        type=int,
        default=None,
        help="Port for the HTTP API (default: from settings, 8000)",
    )

    list_parser = subparsers.add_parser(
        "list-users", help="List users through a running user maintenance service"
    )
    list_parser.add_argument(
        "--service-url",
        default=None,
        help=f"Base URL of the running service (default: {_DEFAULT_SERVICE_URL})",
    )
    list_parser.add_argument(
        "--token",
        default=None,
        help="Bearer API token. Defaults to the USER_MAINTENANCE_CLI_TOKEN environment variable.",
    )
    list_parser.add_argument("--team", default=None, help="Only list users of this team")

    args_list = list(argv) if argv is not None else sys.argv[1:]
    known_commands = {"serve", "init-db", "list-users"}

    if not args_list:
        args_list = ["serve"]
    else:
        first = args_list[0]
        if first in ("-h", "--help"):
            return parser.parse_args(args_list)
        if first not in known_commands and first != "--config":
            if any(flag in args_list for flag in ("-h", "--help")):
                return parser.parse_args(args_list)
            args_list = ["serve", *args_list]

    return parser.parse_args(args_list)


def _initialise_database(settings: Settings) -> Database:
    database = Database.from_settings(settings)
    database.initialize()
    logger.info("Database initialised at %s", database.path)
    return database


def _serve(*, settings: Settings, host: str | None, port: int | None) -> None:
    from user_maintenance.application import create_application
    import uvicorn

    bind_host = host or settings.host
    bind_port = port or settings.port
    logger.info("Starting user maintenance API on http://%s:%s", bind_host, bind_port)

    app = create_application(settings=settings)
    uvicorn.run(app, host=bind_host, port=bind_port, log_level=settings.log_level.lower())


def _list_users(service_url: str | None, token: str | None, team: str | None) -> int:
    base_url = (service_url or _DEFAULT_SERVICE_URL).rstrip("/")
    token = token or os.getenv("USER_MAINTENANCE_CLI_TOKEN")
    if not token:
        print(
            "No API token available. Pass --token or set the USER_MAINTENANCE_CLI_TOKEN "
            "environment variable.",
            file=sys.stderr,
        )
        return 1

    params = {"team": team} if team else None
    try:
        response = httpx.get(
            f"{base_url}/user",
            params=params,
            headers={"Authorization": f"Bearer {token}"},
            timeout=10.0,
        )
    except httpx.HTTPError as exc:
        print(f"Failed to contact user maintenance service: {exc}", file=sys.stderr)
        return 1

    try:
        payload = response.json()
    except ValueError:
        print("Service returned an unexpected response format.", file=sys.stderr)
        return 1

    if response.status_code != 200:
        message = payload.get("message") if isinstance(payload, dict) else None
        print(f"Service responded with {response.status_code}: {message or response.text.strip()}", file=sys.stderr)
        return 1

    if not payload:
        print("No users are currently registered.")
        return 0

    print(f"{len(payload)} user(s) found:")
    print(f"{'ID':>4}  {'Name':<32}  {'Team':<20}  {'Status':<10}  Added")
    print("-" * 90)
    for user in payload:
        name = f"{user.get('firstName', '')} {user.get('lastName', '')}".strip()
        team_name = (user.get("team") or {}).get("value") or "-"
        print(f"{user.get('id', '?'):>4}  {name:<32}  {team_name:<20}  {user.get('status', ''):<10}  {user.get('addedDate', '')}")
    return 0


def main(argv: Sequence[str] | None = None) -> int:
    """Entry point for CLI usage."""

    args = _parse_args(argv)
    settings = load_settings(Path(args.config) if args.config else None)

    logging.basicConfig(level=settings.log_level, format="%(asctime)s [%(levelname)s] %(message)s")

    if args.command == "list-users":
        return _list_users(args.service_url, args.token, args.team)

    _initialise_database(settings)

    if args.command == "serve":
        _serve(settings=settings, host=getattr(args, "host", None), port=getattr(args, "port", None))
    elif args.command == "init-db":
        print("Database initialisation complete.")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
