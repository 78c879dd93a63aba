"""Abstract interface for account persistence."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Callable, Sequence

    from shared.auth.models import Account

type AccountUpdate = Callable[[Account], Account]
type AccountsUpdate = Callable[[list[Account]], list[Account]]


class AccountRepository(ABC):
    """Abstract interface for account persistence.

    Implementations must keep username and email unique across all accounts
    and must apply each write as a whole record or not at all.
    """

    @abstractmethod
    async def create_account(self, account: Account) -> None:
        """Insert a new account.

        Raises DuplicateUsernameError / DuplicateEmailError when the username
        or email is taken, StorageError on backend failures.
        """

    @abstractmethod
    async def get_by_id(self, account_id: str) -> Account | None: ...

    @abstractmethod
    async def get_by_username(self, username: str) -> Account | None: ...

    @abstractmethod
    async def get_by_email(self, email: str) -> Account | None: ...

    @abstractmethod
    async def list_accounts(self) -> list[Account]: ...

    @abstractmethod
    async def update_accounts(self, account_ids: Sequence[str], update: AccountsUpdate) -> list[Account] | None:
        """Atomically read, transform and write back several accounts.

        ``update`` receives the current records in the order of ``account_ids``
        and returns their replacements in the same order. Returns None without
        writing when any id is unknown. Exceptions raised by ``update`` abort
        the transaction.
        """

    async def update_account(self, account_id: str, update: AccountUpdate) -> Account | None:
        """Single-record form of update_accounts."""
        result = await self.update_accounts([account_id], lambda accounts: [update(accounts[0])])
        return None if result is None else result[0]
