"""Fixtures shared by the account-core tests: a throwaway SQLite database and fast bcrypt."""

from __future__ import annotations

from typing import TYPE_CHECKING

import pytest

from shared.auth.password import MIN_BCRYPT_ROUNDS, BcryptHasher
from shared.auth.service import AuthService
from shared.db import Database, SqliteAccountRepository
from shared.library import LibraryService
from shared.storage import MemoryContentStore

if TYPE_CHECKING:
    from pathlib import Path


@pytest.fixture
def db(tmp_path: Path):
    database = Database(tmp_path / "test.db")
    database.connect()
    yield database
    database.close()


@pytest.fixture
def account_repo(db: Database) -> SqliteAccountRepository:
    return SqliteAccountRepository(db)


@pytest.fixture
def hasher() -> BcryptHasher:
    return BcryptHasher(rounds=MIN_BCRYPT_ROUNDS)


@pytest.fixture
def auth_service(account_repo, hasher) -> AuthService:
    return AuthService(account_repo, password_hasher=hasher)


@pytest.fixture
def content_store() -> MemoryContentStore:
    return MemoryContentStore()


@pytest.fixture
def library_service(account_repo, content_store) -> LibraryService:
    return LibraryService(account_repo, content_store)
