"""SQLite database connection, schema, and legacy record import."""

import json
import os
import sqlite3
from pathlib import Path
from typing import Any

import structlog
from pydantic import ValidationError as PydanticValidationError

from shared.auth.models import UNKNOWN_DEVICE_NAME, Account

logger = structlog.get_logger()

_DB_FILE_PERMISSIONS = 0o600

_SCHEMA_SQL = """\
CREATE TABLE IF NOT EXISTS accounts (
    id TEXT PRIMARY KEY,
    username TEXT NOT NULL,
    email TEXT NOT NULL,
    data TEXT NOT NULL
);

CREATE UNIQUE INDEX IF NOT EXISTS idx_accounts_username
    ON accounts (username);

CREATE UNIQUE INDEX IF NOT EXISTS idx_accounts_email
    ON accounts (email COLLATE NOCASE);
"""


class Database:
    """SQLite database wrapper with schema management and legacy import support."""

    def __init__(self, path: str | Path) -> None:
        self._path = str(path)
        self._conn: sqlite3.Connection | None = None

    @property
    def connection(self) -> sqlite3.Connection:
        """Return the active connection or raise if disconnected."""
        if self._conn is None:
            raise RuntimeError("Database is not connected")
        return self._conn

    def connect(self) -> None:
        """Open the database, apply pragmas, create schema, and harden file permissions."""
        parent = Path(self._path).parent
        parent.mkdir(parents=True, exist_ok=True)

        # Autocommit mode: transactions are opened explicitly with BEGIN IMMEDIATE.
        self._conn = sqlite3.connect(self._path, check_same_thread=False, isolation_level=None)
        self._conn.execute("PRAGMA journal_mode=WAL")
        self._conn.execute("PRAGMA busy_timeout=5000")
        self._conn.executescript(_SCHEMA_SQL)

        self._harden_permissions()

    def close(self) -> None:
        """Close the database connection."""
        if self._conn is not None:
            self._conn.close()
            self._conn = None

    def import_legacy_json(self, legacy_json_path: str | None) -> int:
        """Import accounts from a legacy ``users_db.json`` record file.

        The file holds ``{"users": [...]}`` with camelCase records whose
        ``password`` field is already a bcrypt digest. Returns the number of
        accounts imported. Skips when the path is None, the file does not
        exist, or the accounts table already has data. The import runs in a
        single transaction; any failure causes a full rollback.
        """
        if legacy_json_path is None:
            return 0

        json_path = Path(legacy_json_path)
        if not json_path.exists():
            return 0

        conn = self.connection
        row = conn.execute("SELECT COUNT(*) FROM accounts").fetchone()
        if row[0] > 0:
            logger.info("accounts table already has data, skipping legacy import")
            return 0

        accounts = _parse_legacy_json(json_path, legacy_json_path)
        _insert_accounts(conn, accounts)

        count = len(accounts)
        logger.info("imported accounts from legacy file", count=count, path=legacy_json_path)
        return count

    def _harden_permissions(self) -> None:
        """Set restrictive file permissions on POSIX systems (best effort).

        Covers the WAL/SHM sibling files too, since they also hold password hashes.
        """
        if os.name != "posix":  # pragma: no cover
            return
        for suffix in ("", "-wal", "-shm"):
            p = Path(self._path + suffix)
            if p.exists():
                try:
                    p.chmod(_DB_FILE_PERMISSIONS)
                except OSError:
                    logger.warning("could not set file permissions", permissions=oct(_DB_FILE_PERMISSIONS), path=str(p))


def _parse_legacy_json(json_path: Path, display_path: str) -> list[Account]:
    try:
        data = json.loads(json_path.read_text(encoding="utf-8"))
    except OSError as exc:
        msg = f"Failed to read legacy JSON file: {display_path}"
        raise OSError(msg) from exc
    except ValueError as exc:
        msg = f"Malformed JSON in legacy file: {display_path}"
        raise OSError(msg) from exc

    users = data.get("users") if isinstance(data, dict) else None
    if not isinstance(users, list):
        msg = f"Expected a 'users' array in {display_path}"
        raise OSError(msg)

    accounts: list[Account] = []
    for index, record in enumerate(users):
        try:
            accounts.append(_account_from_legacy(record))
        except (AttributeError, KeyError, TypeError, PydanticValidationError) as exc:
            msg = f"Invalid account record at index {index} in {display_path}"
            raise OSError(msg) from exc
    return accounts


def _account_from_legacy(record: dict[str, Any]) -> Account:
    """Map one legacy record onto the Account schema.

    Legacy records store the digest under ``password``, keep full track
    objects inside playlists, and carry a ``lastModified`` on tracks.
    """
    device = record["registeredDevice"]
    tracks = [{k: v for k, v in t.items() if k != "lastModified"} for t in record.get("tracks", [])]
    playlists = [
        {**p, "tracks": [t["id"] if isinstance(t, dict) else t for t in p.get("tracks", [])]}
        for p in record.get("playlists", [])
    ]
    return Account.model_validate(
        {
            "id": record["id"],
            "username": record["username"],
            "email": record["email"],
            "passwordHash": record["password"],
            "createdAt": record.get("createdAt") or device.get("registeredAt"),
            "registeredDevice": {
                "deviceId": device["deviceId"],
                "deviceName": device.get("deviceName") or UNKNOWN_DEVICE_NAME,
                "registeredAt": device["registeredAt"],
            },
            "allowedDevices": list(dict.fromkeys(record.get("allowedDevices") or [device["deviceId"]])),
            "tracks": tracks,
            "likedTracks": record.get("likedTracks", []),
            "playlists": playlists,
            "preferences": record.get("preferences") or {},
            "profile": record.get("profile") or {"displayName": record["username"]},
            "downloadedTracks": record.get("downloadedTracks", []),
            "followers": record.get("followers", []),
            "following": record.get("following", []),
        },
    )


def _insert_accounts(conn: sqlite3.Connection, accounts: list[Account]) -> None:
    """Insert all imported accounts in a single transaction."""
    try:
        conn.execute("BEGIN")
        for account in accounts:
            conn.execute(
                "INSERT INTO accounts (id, username, email, data) VALUES (?, ?, ?, ?)",
                (account.account_id, account.username, account.email, json.dumps(account.to_record())),
            )
        conn.execute("COMMIT")
    except Exception:
        conn.execute("ROLLBACK")
        raise
