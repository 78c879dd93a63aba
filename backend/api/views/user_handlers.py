"""Account data endpoints: profile reads and updates, search, likes, follows, public playlists."""

from __future__ import annotations

from typing import TYPE_CHECKING

from starlette.responses import JSONResponse

from api.views.responses import parse_json_body

if TYPE_CHECKING:
    from starlette.requests import Request

    from shared.library.service import LibraryService


def _library(request: Request) -> LibraryService:
    return request.app.state.library_service


async def get_user(request: Request) -> JSONResponse:
    """GET /api/user/{user_id} - full account without the password hash."""
    account = await _library(request).get_account(request.path_params["user_id"])
    return JSONResponse({"success": True, "user": account.full_view()})


async def update_user(request: Request) -> JSONResponse:
    """PUT /api/user/{user_id} - partial update of profile, preferences, playlists, likes, downloads."""
    body = await parse_json_body(request)
    account = await _library(request).update_account(request.path_params["user_id"], body)
    return JSONResponse({"success": True, "user": account.full_view()})


async def search_users(request: Request) -> JSONResponse:
    """GET /api/users?q= - search by username or display name."""
    accounts = await _library(request).search_accounts(request.query_params.get("q", ""))
    return JSONResponse({"success": True, "users": [a.summary_view() for a in accounts]})


async def public_playlists(request: Request) -> JSONResponse:
    """GET /api/playlists/public."""
    playlists = await _library(request).list_public_playlists()
    return JSONResponse({"success": True, "playlists": playlists})


async def toggle_like(request: Request) -> JSONResponse:
    """POST /api/user/{user_id}/likes/{track_id}."""
    liked = await _library(request).toggle_like(request.path_params["user_id"], request.path_params["track_id"])
    return JSONResponse({"success": True, "liked": liked})


async def follow(request: Request) -> JSONResponse:
    """POST /api/user/{user_id}/follow/{target_id}."""
    await _library(request).follow(request.path_params["user_id"], request.path_params["target_id"])
    return JSONResponse({"success": True, "following": True})


async def unfollow(request: Request) -> JSONResponse:
    """DELETE /api/user/{user_id}/follow/{target_id}."""
    await _library(request).unfollow(request.path_params["user_id"], request.path_params["target_id"])
    return JSONResponse({"success": True, "following": False})
