"""Tests for Database connection, schema, and legacy import."""

from __future__ import annotations

import json
import sqlite3
import sys
from typing import TYPE_CHECKING
from unittest.mock import patch

import pytest

from shared.db.connection import Database, _insert_accounts
from shared.db.account_repository import SqliteAccountRepository

if TYPE_CHECKING:
    from pathlib import Path

FAKE_BCRYPT_HASH = "$2b$10$fakehashfakehashfakehash"


def _legacy_user(user_id: str = "u1", username: str = "alice", email: str = "a@x.com") -> dict:
    track = {
        "id": f"{user_id}_t1",
        "name": "song",
        "fileName": "song.mp3",
        "type": "audio/mpeg",
        "size": 1024,
        "addedAt": "2024-01-01T00:00:00.000Z",
        "lastModified": 1704067200000,
        "duration": 180.5,
    }
    return {
        "id": user_id,
        "username": username,
        "email": email,
        "password": FAKE_BCRYPT_HASH,
        "registeredDevice": {
            "deviceId": f"{user_id}-dev",
            "deviceName": "Windows - Chrome",
            "registeredAt": "2024-01-01T00:00:00.000Z",
        },
        "allowedDevices": [f"{user_id}-dev"],
        "tracks": [track],
        "likedTracks": [track["id"]],
        "playlists": [
            {
                "id": "p1",
                "name": "mix",
                "isPublic": True,
                "tracks": [track],
                "createdAt": "2024-01-02T00:00:00.000Z",
                "description": "",
            },
        ],
        "preferences": {"volume": 40, "loopEnabled": True},
        "profile": {"displayName": username, "bio": "hi", "avatar": "A", "socialMedia": {"twitter": "@a"}},
        "downloadedTracks": [],
        "followers": [],
        "following": [],
        "createdAt": "2024-01-01T00:00:00.000Z",
    }


def _write_legacy_json(path: Path, users: list[dict]) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps({"users": users}))


class TestConnect:
    def test_creates_schema_and_connects(self, tmp_path: Path) -> None:
        db = Database(tmp_path / "test.db")
        db.connect()

        tables = db.connection.execute("SELECT name FROM sqlite_master WHERE type='table'").fetchall()
        assert ("accounts",) in tables
        db.close()

    def test_reconnect_after_close(self, tmp_path: Path) -> None:
        db = Database(tmp_path / "test.db")
        db.connect()
        db.close()
        db.connect()

        assert db.connection.execute("SELECT COUNT(*) FROM accounts").fetchone()[0] == 0
        db.close()

    def test_connection_raises_when_disconnected(self, tmp_path: Path) -> None:
        db = Database(tmp_path / "test.db")
        with pytest.raises(RuntimeError, match="not connected"):
            _ = db.connection

    def test_creates_parent_directories(self, tmp_path: Path) -> None:
        db = Database(tmp_path / "nested" / "dir" / "test.db")
        db.connect()
        assert db.connection is not None
        db.close()

    def test_username_index_is_case_sensitive(self, tmp_path: Path) -> None:
        db = Database(tmp_path / "test.db")
        db.connect()
        conn = db.connection
        conn.execute("INSERT INTO accounts VALUES ('1', 'bob', 'b1@x.com', '{}')")
        conn.execute("INSERT INTO accounts VALUES ('2', 'Bob', 'b2@x.com', '{}')")

        with pytest.raises(sqlite3.IntegrityError):
            conn.execute("INSERT INTO accounts VALUES ('3', 'bob', 'b3@x.com', '{}')")
        db.close()

    def test_email_index_is_case_insensitive(self, tmp_path: Path) -> None:
        db = Database(tmp_path / "test.db")
        db.connect()
        conn = db.connection
        conn.execute("INSERT INTO accounts VALUES ('1', 'bob', 'b@x.com', '{}')")

        with pytest.raises(sqlite3.IntegrityError):
            conn.execute("INSERT INTO accounts VALUES ('2', 'rob', 'B@X.COM', '{}')")
        db.close()


class TestLegacyImport:
    async def test_imports_accounts(self, tmp_path: Path) -> None:
        json_path = tmp_path / "users_db.json"
        _write_legacy_json(json_path, [_legacy_user("u1", "alice", "a@x.com"), _legacy_user("u2", "bob", "b@x.com")])

        db = Database(tmp_path / "test.db")
        db.connect()
        count = db.import_legacy_json(str(json_path))

        assert count == 2
        account = await SqliteAccountRepository(db).get_by_username("alice")
        assert account is not None
        assert account.password_hash == FAKE_BCRYPT_HASH
        assert account.registered_device.device_name == "Windows - Chrome"
        assert account.allowed_devices == ["u1-dev"]
        assert account.playlists[0].tracks == ["u1_t1"]
        assert account.tracks[0].duration == 180.5
        assert account.preferences.volume == 40
        db.close()

    async def test_missing_optional_fields_get_defaults(self, tmp_path: Path) -> None:
        record = {
            "id": "u1",
            "username": "alice",
            "email": "a@x.com",
            "password": FAKE_BCRYPT_HASH,
            "registeredDevice": {"deviceId": "devA", "registeredAt": "2024-01-01T00:00:00.000Z"},
        }
        json_path = tmp_path / "users_db.json"
        _write_legacy_json(json_path, [record])

        db = Database(tmp_path / "test.db")
        db.connect()
        db.import_legacy_json(str(json_path))

        account = await SqliteAccountRepository(db).get_by_id("u1")
        assert account is not None
        assert account.allowed_devices == ["devA"]
        assert account.registered_device.device_name == "Unknown Device"
        assert account.profile.display_name == "alice"
        db.close()

    def test_returns_zero_when_path_is_none(self, tmp_path: Path) -> None:
        db = Database(tmp_path / "test.db")
        db.connect()
        assert db.import_legacy_json(None) == 0
        db.close()

    def test_returns_zero_when_file_missing(self, tmp_path: Path) -> None:
        db = Database(tmp_path / "test.db")
        db.connect()
        assert db.import_legacy_json(str(tmp_path / "nonexistent.json")) == 0
        db.close()

    def test_skips_when_accounts_table_nonempty(self, tmp_path: Path) -> None:
        json_path = tmp_path / "users_db.json"
        _write_legacy_json(json_path, [_legacy_user()])

        db = Database(tmp_path / "test.db")
        db.connect()
        db.import_legacy_json(str(json_path))

        assert db.import_legacy_json(str(json_path)) == 0
        assert db.connection.execute("SELECT COUNT(*) FROM accounts").fetchone()[0] == 1
        db.close()

    def test_rollback_on_invalid_record(self, tmp_path: Path) -> None:
        json_path = tmp_path / "users_db.json"
        _write_legacy_json(json_path, [_legacy_user(), {"invalid": "data"}])

        db = Database(tmp_path / "test.db")
        db.connect()
        with pytest.raises(OSError, match="Invalid account record at index 1"):
            db.import_legacy_json(str(json_path))

        assert db.connection.execute("SELECT COUNT(*) FROM accounts").fetchone()[0] == 0
        db.close()

    def test_rollback_on_duplicate_username(self, tmp_path: Path) -> None:
        json_path = tmp_path / "users_db.json"
        _write_legacy_json(json_path, [_legacy_user("u1", "alice", "a@x.com"), _legacy_user("u2", "alice", "b@x.com")])

        db = Database(tmp_path / "test.db")
        db.connect()
        with pytest.raises(sqlite3.IntegrityError):
            db.import_legacy_json(str(json_path))

        assert db.connection.execute("SELECT COUNT(*) FROM accounts").fetchone()[0] == 0
        assert db.connection.in_transaction is False
        db.close()

    def test_raises_on_missing_users_array(self, tmp_path: Path) -> None:
        json_path = tmp_path / "users_db.json"
        json_path.write_text("[]")

        db = Database(tmp_path / "test.db")
        db.connect()
        with pytest.raises(OSError, match="Expected a 'users' array"):
            db.import_legacy_json(str(json_path))
        db.close()

    def test_raises_on_corrupt_json(self, tmp_path: Path) -> None:
        json_path = tmp_path / "users_db.json"
        json_path.write_text("{not valid json")

        db = Database(tmp_path / "test.db")
        db.connect()
        with pytest.raises(OSError, match="Malformed JSON"):
            db.import_legacy_json(str(json_path))
        db.close()

    def test_insert_accounts_rolls_back_on_error(self, tmp_path: Path) -> None:
        db = Database(tmp_path / "test.db")
        db.connect()
        with pytest.raises(AttributeError):
            _insert_accounts(db.connection, [object()])  # type: ignore[list-item]

        assert db.connection.in_transaction is False
        db.close()


@pytest.mark.skipif(sys.platform == "win32", reason="POSIX permissions only")
class TestPermissions:
    def test_db_file_has_restricted_permissions(self, tmp_path: Path) -> None:
        db_path = tmp_path / "test.db"
        db = Database(db_path)
        db.connect()

        assert db_path.stat().st_mode & 0o777 == 0o600
        db.close()

    def test_harden_permissions_warns_on_failure(self, tmp_path: Path) -> None:
        """Permission hardening logs a warning on failure instead of raising."""
        db = Database(tmp_path / "test.db")
        with patch("pathlib.Path.chmod", side_effect=OSError("permission denied")):
            db.connect()
        assert db.connection is not None
        db.close()
