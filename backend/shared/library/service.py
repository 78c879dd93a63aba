"""Library service: the account data contract plus tracks, likes, follows, and public playlists."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any
from uuid import uuid4

import structlog
from anyio import to_thread
from pydantic import ValidationError as PydanticValidationError

from shared.auth.errors import TrackNotFoundError, UserNotFoundError, ValidationError
from shared.auth.models import AUTH_OWNED_FIELDS, IMMUTABLE_FIELDS, Account, Track

if TYPE_CHECKING:
    from shared.auth.repository import AccountRepository
    from shared.storage import ContentStore

# Nested objects merged into the stored value; everything else is replaced.
MERGED_FIELDS = frozenset({"profile", "preferences"})
REPLACED_FIELDS = frozenset({"playlists", "likedTracks", "downloadedTracks"})
UPDATABLE_FIELDS = MERGED_FIELDS | REPLACED_FIELDS

PLAYABLE_TYPE_PREFIXES = ("audio/", "video/")

logger = structlog.get_logger()


class LibraryService:
    """Per-account application data that sits outside the auth core."""

    def __init__(self, account_repo: AccountRepository, content_store: ContentStore) -> None:
        self._account_repo = account_repo
        self._content = content_store

    async def get_account(self, account_id: str) -> Account:
        account = await self._account_repo.get_by_id(account_id)
        if account is None:
            raise UserNotFoundError
        return account

    async def update_account(self, account_id: str, updates: dict[str, Any]) -> Account:
        """Apply a partial update from a client.

        Auth-owned and immutable fields are rejected, never silently dropped.
        """
        _check_update_fields(updates)
        updated = await self._account_repo.update_account(account_id, lambda a: _apply_updates(a, updates))
        if updated is None:
            raise UserNotFoundError
        logger.info("account updated", account_id=account_id, fields=sorted(updates))
        return updated

    async def search_accounts(self, query: str) -> list[Account]:
        """Case-insensitive substring match on username or display name."""
        needle = query.strip().lower()
        accounts = await self._account_repo.list_accounts()
        return [a for a in accounts if needle in a.username.lower() or needle in a.profile.display_name.lower()]

    async def list_public_playlists(self) -> list[dict[str, Any]]:
        """Every public playlist, annotated with its owner."""
        result = []
        for account in await self._account_repo.list_accounts():
            owner_profile = account.profile.model_dump(mode="json", by_alias=True)
            result.extend(
                {
                    **playlist.model_dump(mode="json", by_alias=True),
                    "ownerId": account.account_id,
                    "ownerUsername": account.username,
                    "ownerProfile": owner_profile,
                }
                for playlist in account.playlists
                if playlist.is_public
            )
        return result

    # -- tracks --

    async def add_track(self, account_id: str, file_name: str, content_type: str, data: bytes) -> Track:
        """Store uploaded bytes and append the track's metadata to the account."""
        if not file_name:
            raise ValidationError("File name is required")
        if not content_type.startswith(PLAYABLE_TYPE_PREFIXES):
            raise ValidationError("Only audio and video files are supported")

        track = Track(
            track_id=uuid4().hex,
            name=file_name,
            file_name=file_name,
            content_type=content_type,
            size=len(data),
        )
        await to_thread.run_sync(self._content.put, track.track_id, data)
        try:
            updated = await self._account_repo.update_account(
                account_id,
                lambda a: a.model_copy(update={"tracks": [*a.tracks, track]}),
            )
        except BaseException:
            await to_thread.run_sync(self._content.delete, track.track_id)
            raise
        if updated is None:
            await to_thread.run_sync(self._content.delete, track.track_id)
            raise UserNotFoundError

        logger.info("track added", account_id=account_id, track_id=track.track_id, size=track.size)
        return track

    async def get_track_content(self, account_id: str, track_id: str) -> tuple[Track, bytes]:
        account = await self.get_account(account_id)
        track = account.find_track(track_id)
        if track is None:
            raise TrackNotFoundError("Track not found")
        data = await to_thread.run_sync(self._content.get, track_id)
        if data is None:
            raise TrackNotFoundError("Track content is no longer available")
        return track, data

    async def remove_track(self, account_id: str, track_id: str) -> None:
        """Remove a track with its likes, playlist entries, and stored bytes."""
        updated = await self._account_repo.update_account(account_id, lambda a: _without_track(a, track_id))
        if updated is None:
            raise UserNotFoundError
        await to_thread.run_sync(self._content.delete, track_id)
        logger.info("track removed", account_id=account_id, track_id=track_id)

    async def toggle_like(self, account_id: str, track_id: str) -> bool:
        """Like or unlike a track. Returns whether the track is liked afterwards."""
        if not track_id:
            raise ValidationError("Track id is required")

        def toggle(account: Account) -> Account:
            liked = account.liked_tracks
            new_liked = [t for t in liked if t != track_id] if track_id in liked else [*liked, track_id]
            return account.model_copy(update={"liked_tracks": new_liked})

        updated = await self._account_repo.update_account(account_id, toggle)
        if updated is None:
            raise UserNotFoundError
        return track_id in updated.liked_tracks

    # -- social graph --

    async def follow(self, account_id: str, target_id: str) -> None:
        """Follow another account. Following twice is a no-op."""
        if account_id == target_id:
            raise ValidationError("You cannot follow yourself")

        def add_edge(accounts: list[Account]) -> list[Account]:
            follower, target = accounts
            if target_id in follower.following:
                return accounts
            return [
                follower.model_copy(update={"following": [*follower.following, target_id]}),
                target.model_copy(update={"followers": [*target.followers, account_id]}),
            ]

        if await self._account_repo.update_accounts([account_id, target_id], add_edge) is None:
            raise UserNotFoundError
        logger.info("account followed", account_id=account_id, target_id=target_id)

    async def unfollow(self, account_id: str, target_id: str) -> None:
        if account_id == target_id:
            raise ValidationError("You cannot unfollow yourself")

        def remove_edge(accounts: list[Account]) -> list[Account]:
            follower, target = accounts
            return [
                follower.model_copy(update={"following": [f for f in follower.following if f != target_id]}),
                target.model_copy(update={"followers": [f for f in target.followers if f != account_id]}),
            ]

        if await self._account_repo.update_accounts([account_id, target_id], remove_edge) is None:
            raise UserNotFoundError
        logger.info("account unfollowed", account_id=account_id, target_id=target_id)


def _check_update_fields(updates: dict[str, Any]) -> None:
    if not isinstance(updates, dict) or not updates:
        raise ValidationError("Update must be a non-empty JSON object")
    protected = sorted(updates.keys() & (AUTH_OWNED_FIELDS | IMMUTABLE_FIELDS))
    if protected:
        raise ValidationError(f"Field(s) cannot be updated here: {', '.join(protected)}")
    unknown = sorted(updates.keys() - UPDATABLE_FIELDS)
    if unknown:
        raise ValidationError(f"Unknown field(s): {', '.join(unknown)}")
    for field in MERGED_FIELDS & updates.keys():
        if not isinstance(updates[field], dict):
            raise ValidationError(f"Field '{field}' must be a JSON object")


def _apply_updates(account: Account, updates: dict[str, Any]) -> Account:
    record = account.to_record()
    for field, value in updates.items():
        record[field] = {**record[field], **value} if field in MERGED_FIELDS else value
    try:
        return Account.model_validate(record)
    except PydanticValidationError as exc:
        error = exc.errors()[0]
        location = ".".join(str(part) for part in error["loc"])
        raise ValidationError(f"Invalid value for {location}: {error['msg']}") from exc


def _without_track(account: Account, track_id: str) -> Account:
    if account.find_track(track_id) is None:
        raise TrackNotFoundError("Track not found")
    playlists = [p.model_copy(update={"tracks": [t for t in p.tracks if t != track_id]}) for p in account.playlists]
    return account.model_copy(
        update={
            "tracks": [t for t in account.tracks if t.track_id != track_id],
            "liked_tracks": [t for t in account.liked_tracks if t != track_id],
            "playlists": playlists,
        },
    )
