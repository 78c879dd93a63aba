"""API server configuration via environment variables."""

from __future__ import annotations

from typing import TYPE_CHECKING

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings

from shared.validators import RawListEnvSettingsSource, parse_origin_list

if TYPE_CHECKING:
    from pydantic_settings.sources.base import PydanticBaseSettingsSource

DEFAULT_MAX_UPLOAD_BYTES = 50 * 1024 * 1024


class ApiServerSettings(BaseSettings):
    model_config = {"env_prefix": "API_"}

    log_dir: str = "backend/logs/api"
    cors_origins: list[str] = []
    # Empty keeps uploaded track bytes in process memory.
    content_dir: str = ""
    max_upload_bytes: int = Field(default=DEFAULT_MAX_UPLOAD_BYTES, gt=0)
    app_version: str = "dev"

    @field_validator("cors_origins", mode="before")
    @classmethod
    def validate_cors_origins(cls, v: str | list[str]) -> list[str]:
        return parse_origin_list(v)

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,  # noqa: ARG003
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        return (init_settings, RawListEnvSettingsSource(settings_cls), dotenv_settings, file_secret_settings)
