"""Account records and the device identity they are bound to."""

from datetime import UTC, datetime
from typing import Any, Self

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel

UNKNOWN_DEVICE_NAME = "Unknown Device"
DEFAULT_BIO = "Welcome to xiecchuot player!"
DEFAULT_AVATAR = "\U0001f464"

# Fields owned by the auth core. The generic account update path never writes them.
AUTH_OWNED_FIELDS = frozenset({"password", "passwordHash", "allowedDevices", "registeredDevice"})
IMMUTABLE_FIELDS = frozenset({"id", "username", "email", "createdAt"})


def utc_now() -> datetime:
    return datetime.now(tz=UTC)


class _Record(BaseModel):
    model_config = ConfigDict(
        frozen=True,
        extra="forbid",
        alias_generator=to_camel,
        populate_by_name=True,
    )


class DeviceIdentity(_Record):
    """The device that created an account."""

    device_id: str = Field(min_length=1)
    device_name: str = UNKNOWN_DEVICE_NAME  # display only, never used for authorization
    registered_at: datetime = Field(default_factory=utc_now)


class SocialLinks(_Record):
    twitter: str = ""
    instagram: str = ""
    youtube: str = ""


class Profile(_Record):
    display_name: str
    bio: str = DEFAULT_BIO
    avatar: str = DEFAULT_AVATAR
    social_media: SocialLinks = Field(default_factory=SocialLinks)


class Preferences(_Record):
    volume: int = Field(default=70, ge=0, le=100)
    loop_enabled: bool = False


class Track(_Record):
    """Metadata for an uploaded file. The bytes live in the content store."""

    track_id: str = Field(alias="id")
    name: str
    file_name: str
    content_type: str = Field(alias="type")
    size: int = Field(ge=0)
    added_at: datetime = Field(default_factory=utc_now)
    duration: float = 0.0


class Playlist(_Record):
    playlist_id: str = Field(alias="id")
    name: str = Field(min_length=1)
    is_public: bool = False
    tracks: list[str] = Field(default_factory=list)  # track ids
    created_at: datetime = Field(default_factory=utc_now)
    description: str = ""


class DownloadedTrack(_Record):
    track_id: str
    source_user_id: str
    downloaded_at: datetime = Field(default_factory=utc_now)


class Account(_Record):
    """User account stored in the account repository."""

    account_id: str = Field(alias="id")
    username: str
    email: str
    password_hash: str  # bcrypt digest
    created_at: datetime = Field(default_factory=utc_now)
    registered_device: DeviceIdentity
    allowed_devices: list[str]
    tracks: list[Track] = Field(default_factory=list)
    liked_tracks: list[str] = Field(default_factory=list)
    playlists: list[Playlist] = Field(default_factory=list)
    preferences: Preferences = Field(default_factory=Preferences)
    profile: Profile
    downloaded_tracks: list[DownloadedTrack] = Field(default_factory=list)
    followers: list[str] = Field(default_factory=list)
    following: list[str] = Field(default_factory=list)

    @model_validator(mode="after")
    def _validate_device_binding(self) -> Self:
        if not self.password_hash:
            raise ValueError("Accounts must have a password hash")
        if not self.allowed_devices:
            raise ValueError("allowed_devices must not be empty")
        if len(set(self.allowed_devices)) != len(self.allowed_devices):
            raise ValueError("allowed_devices must not contain duplicates")
        if self.registered_device.device_id not in self.allowed_devices:
            raise ValueError("allowed_devices must contain the registered device")
        return self

    def is_device_allowed(self, device_id: str) -> bool:
        return device_id in self.allowed_devices

    def find_track(self, track_id: str) -> Track | None:
        return next((t for t in self.tracks if t.track_id == track_id), None)

    def to_record(self) -> dict[str, Any]:
        """Full camelCase JSON representation, including the password hash. Storage only."""
        return self.model_dump(mode="json", by_alias=True)

    def public_view(self) -> dict[str, Any]:
        """Identity returned after registration."""
        return {"id": self.account_id, "username": self.username, "email": self.email}

    def session_view(self) -> dict[str, Any]:
        """Identity returned after login."""
        data = self.model_dump(mode="json", by_alias=True, include={"profile", "preferences"})
        return {**self.public_view(), **data}

    def full_view(self) -> dict[str, Any]:
        """Everything except the password hash."""
        return self.model_dump(mode="json", by_alias=True, exclude={"password_hash"})

    def summary_view(self) -> dict[str, Any]:
        """What other users see in search results."""
        profile = self.profile.model_dump(mode="json", by_alias=True)
        return {"id": self.account_id, "username": self.username, "profile": profile}
