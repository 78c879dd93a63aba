"""Shared helpers for API tests."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from starlette.testclient import TestClient

MAX_UPLOAD_BYTES = 1024
CHROME_WINDOWS_UA = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) "
    "Chrome/120.0.0.0 Safari/537.36"
)


def register(
    client: TestClient,
    username: str = "alice",
    email: str = "a@x.com",
    password: str = "secret1",
    device_id: str = "devA",
    device_name: str | None = "Chrome/Win",
) -> dict[str, Any]:
    """Register through the API and return the created user."""
    body = {"username": username, "email": email, "password": password, "deviceId": device_id}
    if device_name is not None:
        body["deviceName"] = device_name
    response = client.post("/api/register", json=body)
    assert response.status_code == 201, response.text
    return response.json()["user"]
