"""Account Repository Interface

Defines the contract for account persistence and per-owner locking.
"""

from abc import ABC, abstractmethod
from typing import Optional
from storefront.domain.account import Account


class AccountRepository(ABC):
    """
    Repository interface for Account persistence

    The account row is the serialization point for an owner's ledger:
    callers lock it (SELECT FOR UPDATE) and then bump its version.
    """

    @abstractmethod
    async def get_by_owner_id(self, owner_id: str, for_update: bool = False) -> Optional[Account]:
        """
        Retrieve account by owner ID

        Args:
            owner_id: Owner identifier
            for_update: If True, lock the row with SELECT FOR UPDATE

        Returns:
            Account if found, None otherwise
        """
        pass

    @abstractmethod
    async def create(self, account: Account) -> Account:
        pass

    @abstractmethod
    async def bump_version(self, account_id: int, expected_version: int) -> bool:
        """
        Compare-and-set increment of the account version

        Returns:
            True if the row still had expected_version and was incremented,
            False if another writer got there first
        """
        pass
