"""Auth settings shared by the API server and the maintenance scripts."""

from pydantic import Field
from pydantic_settings import BaseSettings

from shared.auth.password import DEFAULT_BCRYPT_ROUNDS, MAX_BCRYPT_ROUNDS, MIN_BCRYPT_ROUNDS


class AuthSettings(BaseSettings):
    model_config = {"env_prefix": "AUTH_", "populate_by_name": True}

    # SQLite database file path
    database_path: str = "backend/storage.db"

    # Flat JSON record file from the previous server, imported once into SQLite
    legacy_users_file: str = Field(default="data/users_db.json", validation_alias="AUTH_USERS_FILE")

    # bcrypt cost factor; tests lower it to the minimum for speed
    bcrypt_rounds: int = Field(default=DEFAULT_BCRYPT_ROUNDS, ge=MIN_BCRYPT_ROUNDS, le=MAX_BCRYPT_ROUNDS)
