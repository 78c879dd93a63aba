"""Device-bound account authentication shared by the API server and scripts."""

from shared.auth.errors import (
    AccountError,
    AuthenticationError,
    AuthorizationError,
    ConflictError,
    DeviceUnauthorizedError,
    DuplicateEmailError,
    DuplicateUsernameError,
    InvalidCredentialsError,
    StorageError,
    TrackNotFoundError,
    UserNotFoundError,
    ValidationError,
)
from shared.auth.models import Account, DeviceIdentity, Playlist, Preferences, Profile, Track
from shared.auth.password import BcryptHasher, PasswordHasher
from shared.auth.repository import AccountRepository
from shared.auth.service import AuthService
from shared.auth.settings import AuthSettings

__all__ = [
    "Account",
    "AccountError",
    "AccountRepository",
    "AuthService",
    "AuthSettings",
    "AuthenticationError",
    "AuthorizationError",
    "BcryptHasher",
    "ConflictError",
    "DeviceIdentity",
    "DeviceUnauthorizedError",
    "DuplicateEmailError",
    "DuplicateUsernameError",
    "InvalidCredentialsError",
    "PasswordHasher",
    "Playlist",
    "Preferences",
    "Profile",
    "StorageError",
    "Track",
    "TrackNotFoundError",
    "UserNotFoundError",
    "ValidationError",
]
