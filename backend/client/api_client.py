"""Async HTTP client for the player API that sends this install's device identity."""

from __future__ import annotations

from http import HTTPStatus
from typing import TYPE_CHECKING, Any
from urllib.parse import quote

import httpx

if TYPE_CHECKING:
    from client.device import LocalDevice

DEFAULT_TIMEOUT_SECONDS = 10.0


class ApiError(Exception):
    """Failure response from the API, or a transport failure (status 0)."""

    def __init__(self, status_code: int, code: str, message: str, payload: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.code = code
        self.message = message
        self.payload = payload or {}

    @property
    def device_unauthorized(self) -> bool:
        return bool(self.payload.get("deviceUnauthorized"))

    @property
    def allowed_device(self) -> str | None:
        return self.payload.get("allowedDevice")


class PlayerApiClient:
    """Thin wrapper over the JSON endpoints.

    Login state is kept client-side only: the server issues no session, so
    the client remembers the authenticated account for later calls.
    """

    def __init__(self, http: httpx.AsyncClient, device: LocalDevice) -> None:
        self._http = http
        self._device = device
        self.current_user: dict[str, Any] | None = None

    @classmethod
    def connect(cls, base_url: str, device: LocalDevice, timeout: float = DEFAULT_TIMEOUT_SECONDS) -> PlayerApiClient:
        return cls(httpx.AsyncClient(base_url=base_url, timeout=timeout), device)

    async def aclose(self) -> None:
        await self._http.aclose()

    async def __aenter__(self) -> PlayerApiClient:
        return self

    async def __aexit__(self, *_exc: object) -> None:
        await self.aclose()

    async def register(self, username: str, email: str, password: str) -> dict[str, Any]:
        """Create an account locked to this device and remember it as the current user."""
        data = await self._request(
            "POST",
            "/api/register",
            json={
                "username": username,
                "email": email,
                "password": password,
                "deviceId": self._device.device_id,
                "deviceName": self._device.device_name,
            },
        )
        self.current_user = data["user"]
        return data["user"]

    async def login(self, username: str, password: str) -> dict[str, Any]:
        data = await self._request(
            "POST",
            "/api/login",
            json={
                "username": username,
                "password": password,
                "deviceId": self._device.device_id,
                "deviceName": self._device.device_name,
            },
        )
        self.current_user = data["user"]
        return data["user"]

    def logout(self) -> None:
        self.current_user = None

    async def request_device_access(self, account_id: str, password: str) -> None:
        """Add this device to an account's allow-list."""
        await self._request(
            "POST",
            "/api/request-device-access",
            json={
                "accountId": account_id,
                "password": password,
                "newDeviceId": self._device.device_id,
                "newDeviceName": self._device.device_name,
            },
        )

    async def get_user(self, account_id: str) -> dict[str, Any]:
        data = await self._request("GET", f"/api/user/{quote(account_id, safe='')}")
        return data["user"]

    async def update_user(self, account_id: str, updates: dict[str, Any]) -> dict[str, Any]:
        data = await self._request("PUT", f"/api/user/{quote(account_id, safe='')}", json=updates)
        return data["user"]

    async def upload_track(self, account_id: str, file_name: str, content_type: str, content: bytes) -> dict[str, Any]:
        data = await self._request(
            "POST",
            f"/api/user/{quote(account_id, safe='')}/tracks",
            content=content,
            headers={"Content-Type": content_type, "X-File-Name": quote(file_name)},
        )
        return data["track"]

    async def _request(self, method: str, url: str, **kwargs: Any) -> dict[str, Any]:  # noqa: ANN401
        try:
            response = await self._http.request(method, url, **kwargs)
        except httpx.RequestError as e:
            raise ApiError(0, "connection_error", "Could not connect to server") from e

        try:
            payload = response.json()
        except ValueError:
            payload = {}
        if not isinstance(payload, dict):
            payload = {}

        if response.status_code >= HTTPStatus.BAD_REQUEST or not payload.get("success"):
            raise ApiError(
                response.status_code,
                str(payload.get("code", "error")),
                str(payload.get("message") or response.reason_phrase),
                payload,
            )
        return payload
