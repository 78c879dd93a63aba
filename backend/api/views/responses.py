"""JSON request parsing and the mapping from account errors to responses."""

from __future__ import annotations

import json
from http import HTTPStatus
from typing import TYPE_CHECKING, Any

import structlog
from starlette.responses import JSONResponse

from shared.auth.errors import (
    AccountError,
    AuthenticationError,
    AuthorizationError,
    ConflictError,
    StorageError,
    TrackNotFoundError,
    UserNotFoundError,
    ValidationError,
)

if TYPE_CHECKING:
    from starlette.requests import Request

logger = structlog.get_logger()

SERVER_ERROR_MESSAGE = "Server error"

# Most specific first.
_STATUS_BY_ERROR: list[tuple[type[AccountError], HTTPStatus]] = [
    (TrackNotFoundError, HTTPStatus.NOT_FOUND),
    (UserNotFoundError, HTTPStatus.NOT_FOUND),
    (ValidationError, HTTPStatus.BAD_REQUEST),
    (ConflictError, HTTPStatus.CONFLICT),
    (AuthenticationError, HTTPStatus.UNAUTHORIZED),
    (AuthorizationError, HTTPStatus.FORBIDDEN),
]


def status_for(exc: AccountError) -> HTTPStatus:
    return next(
        (status for error_type, status in _STATUS_BY_ERROR if isinstance(exc, error_type)),
        HTTPStatus.INTERNAL_SERVER_ERROR,
    )


def failure(message: str, code: str, status_code: int, **extra: Any) -> JSONResponse:  # noqa: ANN401
    return JSONResponse({"success": False, "message": message, "code": code, **extra}, status_code=status_code)


def error_response(exc: AccountError, status_code: int | None = None, **extra: Any) -> JSONResponse:  # noqa: ANN401
    """Render an account error. Storage failures never expose their message."""
    if isinstance(exc, StorageError):
        return failure(SERVER_ERROR_MESSAGE, exc.code, HTTPStatus.INTERNAL_SERVER_ERROR)
    return failure(exc.message, exc.code, status_code or status_for(exc), **extra)


async def account_error_handler(request: Request, exc: Exception) -> JSONResponse:
    """App-level handler for AccountError raised from any view."""
    if not isinstance(exc, AccountError):  # pragma: no cover - registered for AccountError only
        raise exc
    if isinstance(exc, StorageError):
        logger.exception("storage failure", path=request.url.path, exc_info=exc)
    return error_response(exc)


async def unexpected_error_handler(request: Request, exc: Exception) -> JSONResponse:
    """Last-resort handler answering with an opaque 500.

    Starlette re-raises the exception after this response is sent and the
    server logs the traceback, so nothing is logged here.
    """
    return failure(SERVER_ERROR_MESSAGE, "server_error", HTTPStatus.INTERNAL_SERVER_ERROR)


async def parse_json_body(request: Request) -> dict[str, Any]:
    """Parse a JSON object body. Raises ValidationError when the body is not one."""
    try:
        body = await request.json()
    except (ValueError, json.JSONDecodeError) as exc:
        raise ValidationError("Invalid JSON body") from exc
    if not isinstance(body, dict):
        raise ValidationError("JSON body must be an object")
    return body


def string_field(body: dict[str, Any], *names: str) -> str:
    """Return the first present string field among ``names``; empty when absent or not a string."""
    for name in names:
        value = body.get(name)
        if isinstance(value, str):
            return value
    return ""
