"""Transaction Repository Interface

Defines the contract for ledger transaction persistence.
"""

from abc import ABC, abstractmethod
from datetime import datetime
from decimal import Decimal
from typing import Iterable, List, Optional
from storefront.domain.transaction import Transaction, TransactionKind, TransactionStatus


class TransactionRepository(ABC):
    """
    Repository interface for Transaction persistence

    Transactions are never deleted. Uniqueness of idempotency_key and of
    (gateway, gateway_transaction_id) is enforced by the storage layer.
    """

    @abstractmethod
    async def create(self, transaction: Transaction) -> Transaction:
        """
        Raises:
            ConcurrencyConflictError: If idempotency_key or gateway id already exists
        """
        pass

    @abstractmethod
    async def update(self, transaction: Transaction) -> Transaction:
        pass

    @abstractmethod
    async def get_by_id(self, transaction_id: int, for_update: bool = False) -> Optional[Transaction]:
        pass

    @abstractmethod
    async def get_by_reference(self, reference: str, for_update: bool = False) -> Optional[Transaction]:
        """Retrieve transaction by its external reference (e.g. COM-1A2B3C4D5E6F)"""
        pass

    @abstractmethod
    async def get_by_idempotency_key(
        self, idempotency_key: str, for_update: bool = False
    ) -> Optional[Transaction]:
        pass

    @abstractmethod
    async def get_by_gateway_id(
        self, gateway: str, gateway_transaction_id: str, for_update: bool = False
    ) -> Optional[Transaction]:
        pass

    @abstractmethod
    async def get_by_order_id(
        self, order_id: int, kind: Optional[TransactionKind] = None
    ) -> List[Transaction]:
        pass

    @abstractmethod
    async def get_by_owner_id(
        self, owner_id: str, limit: int = 20, offset: int = 0
    ) -> tuple[list[Transaction], int]:
        """
        Paginated history for an owner, most recent first

        Returns:
            Tuple of (transactions, total count)
        """
        pass

    @abstractmethod
    async def sum_net_amount(
        self,
        owner_id: str,
        statuses: Iterable[TransactionStatus] = (TransactionStatus.COMPLETED,),
        kinds: Optional[Iterable[TransactionKind]] = None,
    ) -> Decimal:
        """
        Sum of net_amount for an owner in one aggregate statement

        With the default arguments this is the owner's balance.
        """
        pass

    @abstractmethod
    async def get_completed_balances(self) -> dict[str, Decimal]:
        """Balance of every owner with at least one completed transaction"""
        pass

    @abstractmethod
    async def get_stale_pending(
        self, kind: TransactionKind, older_than: datetime, limit: int = 100
    ) -> List[Transaction]:
        pass
