"""Persisted device identity for API clients."""

from __future__ import annotations

import contextlib
import json
import locale
import os
import platform
import tempfile
import time
from dataclasses import dataclass
from pathlib import Path

import structlog

from shared.auth.device import create_device_fingerprint
from shared.auth.models import UNKNOWN_DEVICE_NAME

_IDENTITY_FILE_MODE = 0o600

logger = structlog.get_logger()


@dataclass(frozen=True)
class LocalDevice:
    device_id: str
    device_name: str


def environment_components() -> list[str]:
    """Details of the current machine that feed the fingerprint."""
    return [
        platform.system(),
        platform.release(),
        platform.machine(),
        platform.node(),
        locale.getlocale()[0] or "",
        str(time.timezone),
        str(os.cpu_count() or 0),
    ]


def local_device_name() -> str:
    system = platform.system()
    os_name = {"Windows": "Windows", "Darwin": "macOS", "Linux": "Linux"}.get(system, system or "Unknown OS")
    return f"{os_name} - Python client"


class DeviceIdentityStore:
    """Keeps this install's device identity in a small JSON file.

    The identity is generated on first use and reused afterwards, the way a
    browser keeps its id in local storage.
    """

    def __init__(self, path: str | Path) -> None:
        self._path = Path(path)

    def load_or_create(self) -> LocalDevice:
        device = self._load()
        if device is not None:
            return device
        device = LocalDevice(
            device_id=create_device_fingerprint(environment_components()),
            device_name=local_device_name(),
        )
        self._save(device)
        logger.info("created device identity", device_name=device.device_name, path=str(self._path))
        return device

    def reset(self) -> LocalDevice:
        """Discard the stored identity and mint a new one."""
        self._path.unlink(missing_ok=True)
        return self.load_or_create()

    def _load(self) -> LocalDevice | None:
        """Return the stored identity, or None when missing or unreadable."""
        try:
            data = json.loads(self._path.read_text(encoding="utf-8"))
        except FileNotFoundError:
            return None
        except (OSError, ValueError):
            logger.warning("ignoring unreadable device identity file", path=str(self._path))
            return None
        if not isinstance(data, dict) or not isinstance(data.get("deviceId"), str) or not data["deviceId"]:
            logger.warning("ignoring malformed device identity file", path=str(self._path))
            return None
        name = data.get("deviceName")
        return LocalDevice(data["deviceId"], name if isinstance(name, str) and name else UNKNOWN_DEVICE_NAME)

    def _save(self, device: LocalDevice) -> None:
        """Write atomically with owner-only permissions."""
        self._path.parent.mkdir(parents=True, exist_ok=True)
        content = json.dumps({"deviceId": device.device_id, "deviceName": device.device_name}).encode("utf-8")
        fd, tmp_path = tempfile.mkstemp(dir=self._path.parent, prefix=".device_", suffix=".tmp")
        try:
            with os.fdopen(fd, "wb") as f:
                f.write(content)
                f.flush()
                os.fchmod(f.fileno(), _IDENTITY_FILE_MODE)
            Path(tmp_path).replace(self._path)
        except BaseException:
            with contextlib.suppress(OSError):
                Path(tmp_path).unlink()
            raise
