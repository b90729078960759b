"""Generate bearer API tokens for calling the user maintenance API."""

from __future__ import annotations

import argparse
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parent.parent
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from user_maintenance.database import Database, resolve_database_path


def _parse_args(argv: list[str] | None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Create a user maintenance API token")
    parser.add_argument("user_id", type=int, help="Id of the user who will own the token")
    parser.add_argument(
        "--db-path",
        default=None,
        help="Override the database location (defaults to the configured database_path)",
    )
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    args = _parse_args(list(argv) if argv is not None else None)

    db_path = resolve_database_path(args.db_path)
    database = Database(db_path)
    database.initialize()

    try:
        token = database.create_api_token(args.user_id)
    except ValueError:
        print(f"No user with id {args.user_id} found in {db_path}", file=sys.stderr)
        return 1

    print("Generated API token:")
    print(token)
    print("\nStore this value securely; it will not be shown again.")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
