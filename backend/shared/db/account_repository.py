"""SQLite-backed account repository."""

from __future__ import annotations

import asyncio
import json
import sqlite3
from typing import TYPE_CHECKING

import structlog

from shared.auth.errors import DuplicateEmailError, DuplicateUsernameError, StorageError
from shared.auth.models import Account
from shared.auth.repository import AccountRepository

if TYPE_CHECKING:
    from collections.abc import Sequence

    from shared.auth.repository import AccountsUpdate
    from shared.db.connection import Database

logger = structlog.get_logger()


class SqliteAccountRepository(AccountRepository):
    """SQLite implementation of AccountRepository.

    Every write runs under an asyncio lock inside a ``BEGIN IMMEDIATE``
    transaction, so a read-check-write sequence can never interleave with
    another writer. The UNIQUE indexes on username and email back this up
    for writers in other processes; IntegrityError maps to the matching
    domain conflict error.
    """

    def __init__(self, db: Database) -> None:
        self._db = db
        self._lock = asyncio.Lock()

    async def create_account(self, account: Account) -> None:
        """Insert an account. Raises DuplicateUsernameError or DuplicateEmailError on conflicts."""
        async with self._lock:
            conn = self._db.connection
            try:
                conn.execute("BEGIN IMMEDIATE")
                try:
                    if self._fetch_one("SELECT data FROM accounts WHERE username = ?", (account.username,)):
                        raise DuplicateUsernameError(account.username)
                    if self._fetch_one("SELECT data FROM accounts WHERE email = ? COLLATE NOCASE", (account.email,)):
                        raise DuplicateEmailError(account.email)
                    conn.execute(
                        "INSERT INTO accounts (id, username, email, data) VALUES (?, ?, ?, ?)",
                        (account.account_id, account.username, account.email, _dump(account)),
                    )
                    conn.execute("COMMIT")
                except BaseException:
                    if conn.in_transaction:
                        conn.execute("ROLLBACK")
                    raise
            except sqlite3.IntegrityError as exc:
                raise _map_integrity_error(exc, account) from exc
            except sqlite3.Error as exc:
                raise StorageError("Failed to save account") from exc

    async def get_by_id(self, account_id: str) -> Account | None:
        return self._load_one("SELECT data FROM accounts WHERE id = ?", (account_id,))

    async def get_by_username(self, username: str) -> Account | None:
        """Look up an account by username (case-sensitive)."""
        return self._load_one("SELECT data FROM accounts WHERE username = ?", (username,))

    async def get_by_email(self, email: str) -> Account | None:
        """Look up an account by email (case-insensitive)."""
        return self._load_one("SELECT data FROM accounts WHERE email = ? COLLATE NOCASE", (email,))

    async def list_accounts(self) -> list[Account]:
        try:
            rows = self._db.connection.execute("SELECT data FROM accounts ORDER BY rowid").fetchall()
        except sqlite3.Error as exc:
            raise StorageError("Failed to read accounts") from exc
        return [_load(row[0]) for row in rows]

    async def update_accounts(self, account_ids: Sequence[str], update: AccountsUpdate) -> list[Account] | None:
        async with self._lock:
            conn = self._db.connection
            try:
                conn.execute("BEGIN IMMEDIATE")
                try:
                    current: list[Account] = []
                    for account_id in account_ids:
                        row = self._fetch_one("SELECT data FROM accounts WHERE id = ?", (account_id,))
                        if row is None:
                            conn.execute("ROLLBACK")
                            return None
                        current.append(_load(row[0]))

                    updated = update(current)
                    for before, after in zip(current, updated, strict=True):
                        if after.account_id != before.account_id:
                            raise ValueError("update must not change account ids")
                        conn.execute(
                            "UPDATE accounts SET username = ?, email = ?, data = ? WHERE id = ?",
                            (after.username, after.email, _dump(after), after.account_id),
                        )
                    conn.execute("COMMIT")
                except BaseException:
                    if conn.in_transaction:
                        conn.execute("ROLLBACK")
                    raise
            except sqlite3.Error as exc:
                raise StorageError("Failed to update account") from exc
        return updated

    # -- private helpers --

    def _fetch_one(self, sql: str, params: tuple[str, ...]) -> tuple[str] | None:
        return self._db.connection.execute(sql, params).fetchone()

    def _load_one(self, sql: str, params: tuple[str, ...]) -> Account | None:
        try:
            row = self._fetch_one(sql, params)
        except sqlite3.Error as exc:
            raise StorageError("Failed to read account") from exc
        if row is None:
            return None
        return _load(row[0])


def _dump(account: Account) -> str:
    return json.dumps(account.to_record())


def _load(data: str) -> Account:
    return Account.model_validate(json.loads(data))


def _map_integrity_error(exc: sqlite3.IntegrityError, account: Account) -> Exception:
    error_msg = str(exc).lower()
    if "accounts.username" in error_msg or "idx_accounts_username" in error_msg:
        return DuplicateUsernameError(account.username)
    if "accounts.email" in error_msg or "idx_accounts_email" in error_msg:
        return DuplicateEmailError(account.email)
    logger.error("account insert violated a constraint", account_id=account.account_id, error=str(exc))
    return StorageError("Failed to save account")
