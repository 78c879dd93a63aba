"""Auth service coordinating registration, login, and device authorization."""

from __future__ import annotations

import re
from typing import TYPE_CHECKING
from uuid import uuid4

import structlog

from shared.auth.errors import (
    DeviceUnauthorizedError,
    DuplicateEmailError,
    DuplicateUsernameError,
    InvalidCredentialsError,
    UserNotFoundError,
    ValidationError,
)
from shared.auth.models import UNKNOWN_DEVICE_NAME, Account, DeviceIdentity, Profile

if TYPE_CHECKING:
    from shared.auth.password import PasswordHasher
    from shared.auth.repository import AccountRepository

USERNAME_MIN_LENGTH = 3
USERNAME_PATTERN = re.compile(r"^[a-zA-Z0-9_]+$")

EMAIL_MAX_LENGTH = 254
EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")

PASSWORD_MIN_LENGTH = 6
PASSWORD_MAX_LENGTH = 72  # bcrypt truncates at 72 bytes

logger = structlog.get_logger()


class AuthService:
    """Register accounts bound to a device and authenticate them from allowed devices only.

    Login is a pure query: it never creates server-side state. The device
    allow-list only grows through request_device_access.
    """

    def __init__(self, account_repo: AccountRepository, *, password_hasher: PasswordHasher) -> None:
        self._account_repo = account_repo
        self._hasher = password_hasher

    async def register(
        self,
        username: str,
        email: str,
        password: str,
        device_id: str,
        device_name: str | None = None,
    ) -> Account:
        """Create an account whose only allowed device is the one registering it."""
        _require_fields(username=username, email=email, password=password, deviceId=device_id)
        _validate_username(username)
        _validate_email(email)
        _validate_password(password)

        # Fast path; the repository repeats both checks inside its write transaction.
        if await self._account_repo.get_by_username(username) is not None:
            raise DuplicateUsernameError(username)
        if await self._account_repo.get_by_email(email) is not None:
            raise DuplicateEmailError(email)

        device = DeviceIdentity(device_id=device_id, device_name=device_name or UNKNOWN_DEVICE_NAME)
        account = Account(
            account_id=str(uuid4()),
            username=username,
            email=email,
            password_hash=await self._hasher.hash(password),
            registered_device=device,
            allowed_devices=[device.device_id],
            profile=Profile(display_name=username),
        )
        await self._account_repo.create_account(account)
        logger.info(
            "account registered",
            account_id=account.account_id,
            username=username,
            device_name=device.device_name,
        )
        return account

    async def login(self, username: str, password: str, device_id: str, device_name: str | None = None) -> Account:
        """Authenticate from a device.

        Checks run in a fixed order and each failure short-circuits: the
        account must exist, then the password must match, then the device
        must be on the allow-list.
        """
        _require_fields(username=username, password=password, deviceId=device_id)

        account = await self._account_repo.get_by_username(username)
        if account is None:
            raise UserNotFoundError("Username not found")
        if not await self._hasher.verify(password, account.password_hash):
            logger.info("login rejected", account_id=account.account_id, reason="invalid_credentials")
            raise InvalidCredentialsError
        if not account.is_device_allowed(device_id):
            logger.warning(
                "login from unauthorized device",
                account_id=account.account_id,
                device_name=device_name or UNKNOWN_DEVICE_NAME,
            )
            raise DeviceUnauthorizedError(account.registered_device.device_name)

        logger.info("login succeeded", account_id=account.account_id)
        return account

    async def request_device_access(
        self,
        account_id: str,
        password: str,
        new_device_id: str,
        new_device_name: str | None = None,
    ) -> Account:
        """Add a device to the allow-list after re-checking the password.

        Idempotent. The caller-supplied device id is trusted as-is; there is
        no proof that the requester is using that device.
        """
        _require_fields(accountId=account_id, password=password, newDeviceId=new_device_id)

        account = await self._account_repo.get_by_id(account_id)
        if account is None:
            raise UserNotFoundError
        if not await self._hasher.verify(password, account.password_hash):
            logger.info("device access rejected", account_id=account_id, reason="invalid_credentials")
            raise InvalidCredentialsError

        updated = await self._account_repo.update_account(account_id, lambda a: _grant_device(a, new_device_id))
        if updated is None:
            raise UserNotFoundError
        logger.info(
            "device access granted",
            account_id=account_id,
            device_name=new_device_name or UNKNOWN_DEVICE_NAME,
            allowed_devices=len(updated.allowed_devices),
        )
        return updated


def _grant_device(account: Account, device_id: str) -> Account:
    if account.is_device_allowed(device_id):
        return account
    return account.model_copy(update={"allowed_devices": [*account.allowed_devices, device_id]})


def _require_fields(**fields: str | None) -> None:
    """Raise ValidationError naming every missing or empty field."""
    missing = [name for name, value in fields.items() if not isinstance(value, str) or not value]
    if missing:
        raise ValidationError(f"Missing required fields: {', '.join(missing)}")


def _validate_username(username: str) -> None:
    """Validate username: at least 3 chars, alphanumeric + underscores."""
    if len(username) < USERNAME_MIN_LENGTH:
        raise ValidationError(f"Username must be at least {USERNAME_MIN_LENGTH} characters")
    if not USERNAME_PATTERN.fullmatch(username):
        raise ValidationError("Username can only contain letters, numbers, and underscores")


def _validate_email(email: str) -> None:
    if len(email) > EMAIL_MAX_LENGTH or not EMAIL_PATTERN.fullmatch(email):
        raise ValidationError("Please enter a valid email")


def _validate_password(password: str) -> None:
    """Validate password: 6-72 chars, max 72 UTF-8 bytes (bcrypt limit)."""
    if len(password) < PASSWORD_MIN_LENGTH or len(password) > PASSWORD_MAX_LENGTH:
        raise ValidationError(
            f"Password must be between {PASSWORD_MIN_LENGTH} and {PASSWORD_MAX_LENGTH} characters",
        )
    if len(password.encode("utf-8")) > PASSWORD_MAX_LENGTH:
        raise ValidationError(f"Password must not exceed {PASSWORD_MAX_LENGTH} bytes when encoded")
