"""SQLite database layer: connection management and repository implementations."""

from shared.db.account_repository import SqliteAccountRepository
from shared.db.connection import Database

__all__ = [
    "Database",
    "SqliteAccountRepository",
]
