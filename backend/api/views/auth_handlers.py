"""Auth endpoints: register, login, and device access requests."""

from __future__ import annotations

from http import HTTPStatus
from typing import TYPE_CHECKING, Any

from starlette.responses import JSONResponse

from api.views.responses import error_response, parse_json_body, string_field
from shared.auth.device import describe_device
from shared.auth.errors import DeviceUnauthorizedError, UserNotFoundError

if TYPE_CHECKING:
    from starlette.requests import Request

    from shared.auth.service import AuthService


def _device_name(request: Request, body: dict[str, Any], field: str = "deviceName") -> str:
    """Client-supplied device name, else one derived from the User-Agent header."""
    return string_field(body, field) or describe_device(request.headers.get("user-agent", ""))


async def register(request: Request) -> JSONResponse:
    """POST /api/register {username, email, password, deviceId, deviceName}."""
    auth_service: AuthService = request.app.state.auth_service
    body = await parse_json_body(request)

    account = await auth_service.register(
        string_field(body, "username"),
        string_field(body, "email"),
        string_field(body, "password"),
        string_field(body, "deviceId"),
        _device_name(request, body),
    )
    return JSONResponse(
        {"success": True, "message": "Account created successfully", "user": account.public_view()},
        status_code=HTTPStatus.CREATED,
    )


async def login(request: Request) -> JSONResponse:
    """POST /api/login {username, password, deviceId, deviceName}.

    A wrong device answers 403 with ``deviceUnauthorized`` and the name of the
    device the account is locked to. Unknown usernames answer 401 here rather
    than 404 so the endpoint only ever reports authentication failures.
    """
    auth_service: AuthService = request.app.state.auth_service
    body = await parse_json_body(request)

    try:
        account = await auth_service.login(
            string_field(body, "username"),
            string_field(body, "password"),
            string_field(body, "deviceId"),
            _device_name(request, body),
        )
    except DeviceUnauthorizedError as e:
        return error_response(e, deviceUnauthorized=True, allowedDevice=e.allowed_device)
    except UserNotFoundError as e:
        return error_response(e, status_code=HTTPStatus.UNAUTHORIZED)

    return JSONResponse({"success": True, "message": "Login successful", "user": account.session_view()})


async def request_device_access(request: Request) -> JSONResponse:
    """POST /api/request-device-access {accountId, password, newDeviceId, newDeviceName}."""
    auth_service: AuthService = request.app.state.auth_service
    body = await parse_json_body(request)

    await auth_service.request_device_access(
        string_field(body, "accountId", "userId"),
        string_field(body, "password"),
        string_field(body, "newDeviceId"),
        _device_name(request, body, "newDeviceName"),
    )
    return JSONResponse({"success": True, "message": "Device access granted"})
