"""Fixtures for client tests: the real API app served in-process over httpx."""

from __future__ import annotations

from typing import TYPE_CHECKING

import httpx
import pytest

from api.server.app import create_app
from api.server.settings import ApiServerSettings
from client.api_client import PlayerApiClient
from client.device import LocalDevice
from shared.auth import AuthSettings
from shared.auth.password import MIN_BCRYPT_ROUNDS
from shared.storage import MemoryContentStore

if TYPE_CHECKING:
    from pathlib import Path

    from starlette.applications import Starlette

BASE_URL = "http://player.test"


@pytest.fixture
def app(tmp_path: Path):
    app = create_app(
        settings=ApiServerSettings(max_upload_bytes=1024),
        auth_settings=AuthSettings(
            database_path=str(tmp_path / "client.db"),
            legacy_users_file=str(tmp_path / "users_db.json"),
            bcrypt_rounds=MIN_BCRYPT_ROUNDS,
        ),
        content_store=MemoryContentStore(),
    )
    yield app
    app.state.db.close()


def make_client(app: Starlette, device_id: str, device_name: str = "Linux - Python client") -> PlayerApiClient:
    http = httpx.AsyncClient(transport=httpx.ASGITransport(app=app), base_url=BASE_URL)
    return PlayerApiClient(http, LocalDevice(device_id, device_name))


@pytest.fixture
async def laptop(app: Starlette):
    async with make_client(app, "laptop-id", "Linux - Python client") as client:
        yield client


@pytest.fixture
async def phone(app: Starlette):
    async with make_client(app, "phone-id", "Android - Chrome") as client:
        yield client
