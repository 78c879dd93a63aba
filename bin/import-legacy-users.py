"""Import accounts from a legacy users_db.json record file.

Usage: uv run python bin/import-legacy-users.py [path/to/users_db.json]

Defaults to AUTH_USERS_FILE. The import only runs against an empty accounts
table and is all-or-nothing.
"""

import sqlite3
import sys
from pathlib import Path

# Add backend to path for imports
sys.path.insert(0, str(Path(__file__).resolve().parent.parent / "backend"))

from shared.auth.settings import AuthSettings
from shared.db import Database


def main() -> None:
    if len(sys.argv) > 2:
        print(f"Usage: {sys.argv[0]} [users_db.json]")
        sys.exit(1)

    auth_settings = AuthSettings()
    legacy_path = sys.argv[1] if len(sys.argv) == 2 else auth_settings.legacy_users_file
    if not Path(legacy_path).is_file():
        print(f"Error: {legacy_path} does not exist")
        sys.exit(1)

    db = Database(auth_settings.database_path)
    db.connect()
    try:
        try:
            count = db.import_legacy_json(legacy_path)
        except (OSError, sqlite3.Error) as e:
            print(f"Error: {e}")
            sys.exit(1)

        if count == 0:
            print(f"Nothing imported: {auth_settings.database_path} already has accounts")
        else:
            print(f"Imported {count} account(s) into {auth_settings.database_path}")
    finally:
        db.close()


if __name__ == "__main__":
    main()
