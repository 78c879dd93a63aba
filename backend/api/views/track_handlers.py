"""Track upload, playback, and removal endpoints."""

from __future__ import annotations

from http import HTTPStatus
from typing import TYPE_CHECKING
from urllib.parse import unquote

from starlette.responses import JSONResponse, Response

from api.views.responses import failure

if TYPE_CHECKING:
    from starlette.requests import Request

    from shared.library.service import LibraryService

FILE_NAME_HEADER = "x-file-name"


class _UploadTooLargeError(Exception):
    pass


async def _read_limited_body(request: Request, limit: int) -> bytes:
    """Read the request body, giving up as soon as it exceeds ``limit`` bytes."""
    declared = request.headers.get("content-length")
    if declared is not None and declared.isdigit() and int(declared) > limit:
        raise _UploadTooLargeError
    chunks = bytearray()
    async for chunk in request.stream():
        chunks.extend(chunk)
        if len(chunks) > limit:
            raise _UploadTooLargeError
    return bytes(chunks)


async def upload_track(request: Request) -> Response:
    """POST /api/user/{user_id}/tracks - raw file bytes; name in X-File-Name, type in Content-Type."""
    library: LibraryService = request.app.state.library_service
    max_bytes: int = request.app.state.settings.max_upload_bytes

    try:
        data = await _read_limited_body(request, max_bytes)
    except _UploadTooLargeError:
        return failure(
            f"File exceeds the {max_bytes} byte upload limit",
            "upload_too_large",
            HTTPStatus.REQUEST_ENTITY_TOO_LARGE,
        )

    content_type = request.headers.get("content-type", "").split(";")[0].strip()
    file_name = unquote(request.headers.get(FILE_NAME_HEADER, "")).strip()
    track = await library.add_track(request.path_params["user_id"], file_name, content_type, data)
    return JSONResponse(
        {"success": True, "track": track.model_dump(mode="json", by_alias=True)},
        status_code=HTTPStatus.CREATED,
    )


async def get_track(request: Request) -> Response:
    """GET /api/user/{user_id}/tracks/{track_id} - stored bytes with their content type."""
    library: LibraryService = request.app.state.library_service
    track, data = await library.get_track_content(request.path_params["user_id"], request.path_params["track_id"])
    return Response(data, media_type=track.content_type)


async def delete_track(request: Request) -> JSONResponse:
    """DELETE /api/user/{user_id}/tracks/{track_id}."""
    library: LibraryService = request.app.state.library_service
    await library.remove_track(request.path_params["user_id"], request.path_params["track_id"])
    return JSONResponse({"success": True})
