"""Typed failures raised by the account core.

Every error carries a stable ``code`` for API clients and a message that is
safe to show to end users. Storage failures keep their internals in the
exception chain only.
"""

from __future__ import annotations


class AccountError(Exception):
    """Base class for all account-core failures."""

    code = "account_error"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ValidationError(AccountError):
    """Missing or malformed input. The caller may retry with corrected input."""

    code = "validation_error"


class ConflictError(AccountError):
    code = "conflict"


class DuplicateUsernameError(ConflictError):
    code = "duplicate_username"

    def __init__(self, username: str) -> None:
        super().__init__("Username already exists")
        self.username = username


class DuplicateEmailError(ConflictError):
    code = "duplicate_email"

    def __init__(self, email: str) -> None:
        super().__init__("Email already registered")
        self.email = email


class TrackNotFoundError(AccountError):
    """The track, or its stored content, does not exist."""

    code = "track_not_found"


class AuthenticationError(AccountError):
    """Unknown account or wrong password.

    The two subclasses are surfaced distinctly, which reveals whether a
    username exists. Callers wanting a stricter posture can catch the base
    class and report a single message.
    """

    code = "authentication_error"


class UserNotFoundError(AuthenticationError):
    code = "user_not_found"

    def __init__(self, message: str = "User not found") -> None:
        super().__init__(message)


class InvalidCredentialsError(AuthenticationError):
    code = "invalid_credentials"

    def __init__(self) -> None:
        super().__init__("Invalid password")


class AuthorizationError(AccountError):
    code = "authorization_error"


class DeviceUnauthorizedError(AuthorizationError):
    """The device is not in the account's allow-list."""

    code = "device_unauthorized"

    def __init__(self, allowed_device: str) -> None:
        super().__init__("This account can only be accessed from the device where it was registered")
        self.allowed_device = allowed_device


class StorageError(AccountError):
    """Read or write failure in the record store or content store."""

    code = "storage_error"
