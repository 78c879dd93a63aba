"""Fixtures for API tests: an app wired to a throwaway database and in-memory content."""

from __future__ import annotations

from typing import TYPE_CHECKING

import pytest
from starlette.testclient import TestClient

from api.server.app import create_app
from api.server.settings import ApiServerSettings
from api.tests.helpers import MAX_UPLOAD_BYTES
from shared.auth import AuthSettings
from shared.auth.password import MIN_BCRYPT_ROUNDS
from shared.storage import MemoryContentStore

if TYPE_CHECKING:
    from pathlib import Path

    from starlette.applications import Starlette


@pytest.fixture
def content_store() -> MemoryContentStore:
    return MemoryContentStore()


@pytest.fixture
def app(tmp_path: Path, content_store: MemoryContentStore) -> Starlette:
    settings = ApiServerSettings(
        log_dir=str(tmp_path / "logs"),
        cors_origins=["http://localhost:5173"],
        max_upload_bytes=MAX_UPLOAD_BYTES,
        app_version="1.2.3",
    )
    auth_settings = AuthSettings(
        database_path=str(tmp_path / "api.db"),
        legacy_users_file=str(tmp_path / "users_db.json"),
        bcrypt_rounds=MIN_BCRYPT_ROUNDS,
    )
    return create_app(settings=settings, auth_settings=auth_settings, content_store=content_store)


@pytest.fixture
def client(app: Starlette):
    with TestClient(app) as c:
        yield c

