"""Tracks, likes, follows, and playlists attached to accounts."""

from shared.library.service import LibraryService

__all__ = ["LibraryService"]
