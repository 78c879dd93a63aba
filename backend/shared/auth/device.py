"""Device fingerprints and display names.

A device id is a best-effort fingerprint: a digest of environment details
plus a random nonce, minted once per install and kept by the client.
Nothing stops a user from deleting or copying it, so device binding guards
against casual account sharing and is not proof of which machine is calling.
"""

from __future__ import annotations

import hashlib
import secrets
import time
from typing import TYPE_CHECKING

from shared.auth.models import UNKNOWN_DEVICE_NAME

if TYPE_CHECKING:
    from collections.abc import Iterable

_BASE36_DIGITS = "0123456789abcdefghijklmnopqrstuvwxyz"

# First match wins. iOS user agents also mention "Mac OS X", Android ones "Linux".
_OS_MARKERS = (
    ("iPhone", "iOS"),
    ("iPad", "iOS"),
    ("Android", "Android"),
    ("Windows", "Windows"),
    ("Mac", "macOS"),
    ("Darwin", "macOS"),
    ("Linux", "Linux"),
)
# Edge and Chrome user agents also mention "Safari"; Edge ones also "Chrome".
_BROWSER_MARKERS = (
    ("Edg", "Edge"),
    ("Firefox", "Firefox"),
    ("Chrome", "Chrome"),
    ("Safari", "Safari"),
)


def describe_device(user_agent: str) -> str:
    """Human-readable "OS - Browser" label for a user agent string."""
    os_name = next((name for marker, name in _OS_MARKERS if marker in user_agent), None)
    browser = next((name for marker, name in _BROWSER_MARKERS if marker in user_agent), None)
    if os_name is None and browser is None:
        return UNKNOWN_DEVICE_NAME
    return f"{os_name or 'Unknown OS'} - {browser or 'Unknown Browser'}"


def to_base36(value: int) -> str:
    if value < 0:
        raise ValueError("value must be non-negative")
    if value == 0:
        return "0"
    digits = []
    while value:
        value, remainder = divmod(value, 36)
        digits.append(_BASE36_DIGITS[remainder])
    return "".join(reversed(digits))


def create_device_fingerprint(components: Iterable[str], *, now: float | None = None) -> str:
    """Derive a device id from environment components.

    The random nonce makes two installs on identical machines diverge; the
    timestamp suffix records when the id was minted.
    """
    digest = hashlib.blake2b(digest_size=8)
    for component in (*components, secrets.token_hex(8)):
        digest.update(component.encode("utf-8"))
        digest.update(b"|")
    created_ms = int((time.time() if now is None else now) * 1000)
    return f"{to_base36(int.from_bytes(digest.digest(), 'big'))}_{to_base36(created_ms)}"
