"""End-to-end tests for PlayerApiClient against the in-process API."""

from __future__ import annotations

import httpx
import pytest

from client.api_client import ApiError, PlayerApiClient
from client.device import LocalDevice


class TestRegisterAndLogin:
    async def test_register_sets_current_user(self, laptop):
        user = await laptop.register("alice", "a@x.com", "secret1")

        assert user["username"] == "alice"
        assert laptop.current_user == user

    async def test_login_from_same_device(self, laptop):
        registered = await laptop.register("alice", "a@x.com", "secret1")
        laptop.logout()
        assert laptop.current_user is None

        user = await laptop.login("alice", "secret1")

        assert user["id"] == registered["id"]
        assert user["profile"]["displayName"] == "alice"
        assert laptop.current_user == user

    async def test_login_from_other_device_is_refused(self, laptop, phone):
        await laptop.register("alice", "a@x.com", "secret1")

        with pytest.raises(ApiError) as exc_info:
            await phone.login("alice", "secret1")

        error = exc_info.value
        assert error.status_code == 403
        assert error.device_unauthorized is True
        assert error.allowed_device == "Linux - Python client"
        assert phone.current_user is None

    async def test_wrong_password(self, laptop):
        await laptop.register("alice", "a@x.com", "secret1")

        with pytest.raises(ApiError) as exc_info:
            await laptop.login("alice", "wrongpass")

        assert exc_info.value.code == "invalid_credentials"
        assert exc_info.value.device_unauthorized is False

    async def test_duplicate_registration(self, laptop, phone):
        await laptop.register("alice", "a@x.com", "secret1")

        with pytest.raises(ApiError) as exc_info:
            await phone.register("alice", "other@x.com", "secret1")

        assert exc_info.value.status_code == 409
        assert exc_info.value.message == "Username already exists"


class TestDeviceAccess:
    async def test_phone_gains_access(self, laptop, phone):
        user = await laptop.register("alice", "a@x.com", "secret1")

        await phone.request_device_access(user["id"], "secret1")
        logged_in = await phone.login("alice", "secret1")

        assert logged_in["id"] == user["id"]
        account = await phone.get_user(user["id"])
        assert account["allowedDevices"] == ["laptop-id", "phone-id"]


class TestLibrary:
    async def test_update_user(self, laptop):
        user = await laptop.register("alice", "a@x.com", "secret1")

        updated = await laptop.update_user(user["id"], {"preferences": {"loopEnabled": True}})

        assert updated["preferences"]["loopEnabled"] is True

    async def test_upload_track(self, laptop):
        user = await laptop.register("alice", "a@x.com", "secret1")

        track = await laptop.upload_track(user["id"], "my song.mp3", "audio/mpeg", b"ID3data")

        assert track["name"] == "my song.mp3"
        assert track["size"] == 7


class TestTransportErrors:
    async def test_connection_error(self):
        def refuse(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("refused", request=request)

        http = httpx.AsyncClient(transport=httpx.MockTransport(refuse), base_url="http://player.test")
        async with PlayerApiClient(http, LocalDevice("d", "n")) as client:
            with pytest.raises(ApiError) as exc_info:
                await client.login("alice", "secret1")

        assert exc_info.value.status_code == 0
        assert exc_info.value.code == "connection_error"

    async def test_non_json_error(self):
        http = httpx.AsyncClient(
            transport=httpx.MockTransport(lambda _request: httpx.Response(502, text="Bad Gateway")),
            base_url="http://player.test",
        )
        async with PlayerApiClient(http, LocalDevice("d", "n")) as client:
            with pytest.raises(ApiError) as exc_info:
                await client.get_user("u1")

        assert exc_info.value.status_code == 502
        assert exc_info.value.code == "error"
        assert exc_info.value.message == "Bad Gateway"
