"""Bootstrap a user directly in the database, bypassing the HTTP API."""

import argparse
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parent.parent
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from user_maintenance.config import load_settings
from user_maintenance.database import Database, resolve_database_path
from user_maintenance.models import Err
from user_maintenance.validation import AddUserRequest, validate


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Create a user maintenance account")
    parser.add_argument("first_name", help="Given name of the user")
    parser.add_argument("last_name", help="Family name of the user")
    parser.add_argument("email", help="Unique email address")
    parser.add_argument("--team", required=True, help="Team name; created when it does not exist yet")
    parser.add_argument("--status", default="Active", help="Initial status (default: Active)")
    parser.add_argument(
        "--db",
        dest="db_path",
        default=None,
        help="Path to the SQLite database (defaults to the configured database_path)",
    )
    return parser.parse_args(argv)


def main(argv=None) -> int:
    args = parse_args(argv)
    settings = load_settings()

    database = Database(resolve_database_path(args.db_path))
    database.initialize()

    team = database.get_team_by_name(args.team) or database.create_team(args.team)
    payload = validate(
        AddUserRequest,
        {
            "firstName": args.first_name,
            "lastName": args.last_name,
            "email": args.email,
            "status": args.status,
            "teamId": team.id,
        },
        settings,
    )
    if isinstance(payload, Err):
        print(f"Error: {payload.message}", file=sys.stderr)
        return 1
    user = payload.value

    try:
        user_id = database.create_user(
            first_name=user.first_name,
            last_name=user.last_name,
            email=user.email,
            status=user.status,
            team_id=team.id,
            initials=user.initials,
            created_by_user_id=None,
        )
    except ValueError as exc:  # duplicates, etc.
        print(f"Error: {exc}", file=sys.stderr)
        return 1

    print(f"Created user #{user_id}: {user.first_name} {user.last_name} <{user.email}> in team {team.name!r}")
    print("Issue an API token with scripts/create_api_key.py to call the HTTP API as this user.")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
