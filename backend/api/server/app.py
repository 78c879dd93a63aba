from __future__ import annotations

import contextlib
from http import HTTPStatus
from typing import TYPE_CHECKING, cast

import structlog
from starlette.applications import Starlette
from starlette.exceptions import HTTPException
from starlette.middleware.cors import CORSMiddleware
from starlette.responses import JSONResponse, Response
from starlette.routing import Route

from api.server.middleware import RequestContextMiddleware, SecurityHeadersMiddleware, SlashNormalizationMiddleware
from api.server.settings import ApiServerSettings
from api.views.auth_handlers import login, register, request_device_access
from api.views.responses import account_error_handler, failure, unexpected_error_handler
from api.views.track_handlers import delete_track, get_track, upload_track
from api.views.user_handlers import (
    follow,
    get_user,
    public_playlists,
    search_users,
    toggle_like,
    unfollow,
    update_user,
)
from shared.auth import AccountError, AuthService, AuthSettings, BcryptHasher
from shared.db import Database, SqliteAccountRepository
from shared.library import LibraryService
from shared.logging import setup_logging
from shared.storage import LocalContentStore, MemoryContentStore

logger = structlog.get_logger()

if TYPE_CHECKING:
    from collections.abc import AsyncGenerator

    from starlette.requests import Request

    from shared.storage import ContentStore


async def _http_error_handler(_request: Request, exc: Exception) -> Response:
    """Render routing and method errors in the same JSON shape as account errors."""
    http_exc = cast("HTTPException", exc)
    if http_exc.status_code in {HTTPStatus.NO_CONTENT, HTTPStatus.NOT_MODIFIED}:
        return Response(status_code=http_exc.status_code, headers=http_exc.headers)
    code = HTTPStatus(http_exc.status_code).phrase.lower().replace(" ", "_")
    response = failure(http_exc.detail or "", code, http_exc.status_code)
    if http_exc.headers:
        response.headers.update(http_exc.headers)
    return response


async def health(request: Request) -> JSONResponse:
    settings: ApiServerSettings = request.app.state.settings
    return JSONResponse({"status": "ok", "version": settings.app_version})


def _create_content_store(settings: ApiServerSettings) -> ContentStore:
    if settings.content_dir:
        return LocalContentStore(settings.content_dir)
    return MemoryContentStore()


def create_app(
    settings: ApiServerSettings | None = None,
    auth_settings: AuthSettings | None = None,
    content_store: ContentStore | None = None,
) -> Starlette:
    if settings is None:  # pragma: no cover
        settings = ApiServerSettings()
    if auth_settings is None:  # pragma: no cover
        auth_settings = AuthSettings()
    if content_store is None:
        content_store = _create_content_store(settings)

    routes = [
        Route("/api/health", health, methods=["GET"], name="health"),
        Route("/api/register", register, methods=["POST"], name="register"),
        Route("/api/login", login, methods=["POST"], name="login"),
        Route("/api/request-device-access", request_device_access, methods=["POST"], name="request_device_access"),
        Route("/api/users", search_users, methods=["GET"], name="search_users"),
        Route("/api/playlists/public", public_playlists, methods=["GET"], name="public_playlists"),
        Route("/api/user/{user_id}", get_user, methods=["GET"], name="get_user"),
        Route("/api/user/{user_id}", update_user, methods=["PUT"], name="update_user"),
        Route("/api/user/{user_id}/tracks", upload_track, methods=["POST"], name="upload_track"),
        Route("/api/user/{user_id}/tracks/{track_id}", get_track, methods=["GET"], name="get_track"),
        Route("/api/user/{user_id}/tracks/{track_id}", delete_track, methods=["DELETE"], name="delete_track"),
        Route("/api/user/{user_id}/likes/{track_id}", toggle_like, methods=["POST"], name="toggle_like"),
        Route("/api/user/{user_id}/follow/{target_id}", follow, methods=["POST"], name="follow"),
        Route("/api/user/{user_id}/follow/{target_id}", unfollow, methods=["DELETE"], name="unfollow"),
    ]

    db = Database(auth_settings.database_path)
    db.connect()
    db.import_legacy_json(auth_settings.legacy_users_file)
    account_repo = SqliteAccountRepository(db)
    auth_service = AuthService(account_repo, password_hasher=BcryptHasher(auth_settings.bcrypt_rounds))
    library_service = LibraryService(account_repo, content_store)

    @contextlib.asynccontextmanager
    async def lifespan(_app: Starlette) -> AsyncGenerator[None]:  # pragma: no cover
        yield
        db.close()

    app = Starlette(
        routes=routes,
        lifespan=lifespan,
        exception_handlers={
            AccountError: account_error_handler,
            HTTPException: _http_error_handler,
            Exception: unexpected_error_handler,
        },
    )
    app.add_middleware(SlashNormalizationMiddleware)  # type: ignore[arg-type]
    app.add_middleware(
        CORSMiddleware,  # type: ignore[arg-type]
        allow_origins=settings.cors_origins,
        allow_methods=["GET", "POST", "PUT", "DELETE"],
        allow_headers=["Content-Type", "X-File-Name", "X-Request-ID"],
    )
    app.add_middleware(SecurityHeadersMiddleware)  # type: ignore[arg-type]
    app.add_middleware(RequestContextMiddleware)  # type: ignore[arg-type]

    app.state.db = db
    app.state.settings = settings
    app.state.auth_settings = auth_settings
    app.state.auth_service = auth_service
    app.state.library_service = library_service
    app.state.content_store = content_store

    logger.info("api server ready", database=auth_settings.database_path, content_dir=settings.content_dir or None)
    return app


def get_app() -> Starlette:  # pragma: no cover
    """Factory function for uvicorn --factory api.server.app:get_app."""
    s = ApiServerSettings()
    auth = AuthSettings()
    setup_logging(log_dir=s.log_dir)
    return create_app(settings=s, auth_settings=auth)
