"""Content stores for uploaded track bytes.

Track metadata lives on the account record; the bytes live here, keyed by
track id. A store is created once by the application factory and injected
into the services that need it.
"""

import contextlib
import os
import re
import tempfile
import threading
from pathlib import Path
from typing import Protocol

import structlog

logger = structlog.get_logger()

# Owner-only directory permissions for content storage.
_CONTENT_DIR_MODE = 0o700

# Owner-only file permissions for content files.
_CONTENT_FILE_MODE = 0o600

_CONTENT_ID_PATTERN = re.compile(r"^[A-Za-z0-9_-]+$")


class ContentStore(Protocol):
    """Protocol for persisting uploaded file contents."""

    def put(self, content_id: str, data: bytes) -> None: ...

    def get(self, content_id: str) -> bytes | None: ...

    def delete(self, content_id: str) -> None: ...


class MemoryContentStore:
    """Keeps contents in process memory. Lost on restart."""

    def __init__(self) -> None:
        self._blobs: dict[str, bytes] = {}
        self._lock = threading.Lock()

    def put(self, content_id: str, data: bytes) -> None:
        with self._lock:
            self._blobs[content_id] = bytes(data)

    def get(self, content_id: str) -> bytes | None:
        with self._lock:
            return self._blobs.get(content_id)

    def delete(self, content_id: str) -> None:
        with self._lock:
            self._blobs.pop(content_id, None)

    def __len__(self) -> int:
        return len(self._blobs)


class LocalContentStore:
    """Writes contents to the local filesystem.

    Files are created with owner-only read/write (0o600) inside an
    owner-only directory (0o700) as a filesystem hygiene measure.
    """

    def __init__(self, content_dir: str | Path) -> None:
        self._content_dir = Path(content_dir).resolve()

    def put(self, content_id: str, data: bytes) -> None:
        """Save content atomically under the configured directory.

        Creates the directory lazily on first write with owner-only
        permissions. Writes via temp-file-then-rename so readers never see a
        partial file.
        """
        target = self._path_for(content_id)
        self._content_dir.mkdir(mode=_CONTENT_DIR_MODE, parents=True, exist_ok=True)
        self._content_dir.chmod(_CONTENT_DIR_MODE)

        fd, tmp_path = tempfile.mkstemp(dir=str(self._content_dir), suffix=".tmp", prefix=".content_")
        fd_owned = True
        try:
            with os.fdopen(fd, "wb") as f:
                fd_owned = False  # os.fdopen took ownership; it will close fd
                f.write(data)
                f.flush()
                os.fsync(f.fileno())
            os.chmod(tmp_path, _CONTENT_FILE_MODE)  # noqa: PTH101
            Path(tmp_path).replace(target)
        except BaseException:
            if fd_owned:
                with contextlib.suppress(OSError):
                    os.close(fd)
            with contextlib.suppress(OSError):
                Path(tmp_path).unlink()
            raise
        logger.debug("saved content", content_id=content_id, size=len(data))

    def get(self, content_id: str) -> bytes | None:
        target = self._path_for(content_id)
        try:
            return target.read_bytes()
        except FileNotFoundError:
            return None

    def delete(self, content_id: str) -> None:
        self._path_for(content_id).unlink(missing_ok=True)

    def _path_for(self, content_id: str) -> Path:
        """Reject ids that could resolve outside the content root."""
        if not _CONTENT_ID_PATTERN.match(content_id):
            raise ValueError(f"Invalid content id: {content_id!r}")
        target = (self._content_dir / content_id).resolve()
        if not target.is_relative_to(self._content_dir):
            raise ValueError(f"Path traversal rejected: '{content_id}' resolves outside content directory")
        return target
