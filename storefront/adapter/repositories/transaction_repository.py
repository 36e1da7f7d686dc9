"""SQLAlchemy implementation of TransactionRepository

Provides persistence for ledger Transactions. Idempotency is enforced by the
unique constraints on idempotency_key and (gateway, gateway_transaction_id).
"""

from datetime import datetime
from decimal import Decimal
from typing import Iterable, List, Optional
from sqlalchemy.exc import IntegrityError
from sqlmodel import select, func
from sqlmodel.ext.asyncio.session import AsyncSession
from storefront.app.repositories.transaction_repository import TransactionRepository
from storefront.domain.errors import ConcurrencyConflictError
from storefront.domain.transaction import Transaction, TransactionKind, TransactionStatus


class SqlAlchemyTransactionRepository(TransactionRepository):
    """
    SQLAlchemy implementation of TransactionRepository

    Features:
    - Row locking for status transitions (SELECT FOR UPDATE)
    - Balance derivation in a single aggregate statement
    - Unique-key violations surface as ConcurrencyConflictError
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(self, transaction: Transaction) -> Transaction:
        """
        Create a new transaction

        Raises:
            ConcurrencyConflictError: If idempotency_key or gateway id already
                exists; a retry will find the winning row
        """
        self.session.add(transaction)
        try:
            await self.session.flush()
        except IntegrityError as e:
            raise ConcurrencyConflictError(
                f"Duplicate transaction for key {transaction.idempotency_key}",
                reason=str(e.orig),
            ) from e
        await self.session.refresh(transaction)
        return transaction

    async def update(self, transaction: Transaction) -> Transaction:
        transaction.updated_at = datetime.utcnow()
        self.session.add(transaction)
        try:
            await self.session.flush()
        except IntegrityError as e:
            raise ConcurrencyConflictError(
                f"Gateway reference of transaction {transaction.transaction_id} is already in use",
                reason=str(e.orig),
            ) from e
        await self.session.refresh(transaction)
        return transaction

    async def get_by_id(self, transaction_id: int, for_update: bool = False) -> Optional[Transaction]:
        stmt = select(Transaction).where(Transaction.id == transaction_id)
        return await self._one(stmt, for_update)

    async def get_by_reference(self, reference: str, for_update: bool = False) -> Optional[Transaction]:
        stmt = select(Transaction).where(Transaction.transaction_id == reference)
        return await self._one(stmt, for_update)

    async def get_by_idempotency_key(
        self, idempotency_key: str, for_update: bool = False
    ) -> Optional[Transaction]:
        """
        Retrieve transaction by idempotency key

        Deposits are keyed by the funding correlation id, so this is also the
        webhook lookup by order_id.
        """
        stmt = select(Transaction).where(Transaction.idempotency_key == idempotency_key)
        return await self._one(stmt, for_update)

    async def get_by_gateway_id(
        self, gateway: str, gateway_transaction_id: str, for_update: bool = False
    ) -> Optional[Transaction]:
        stmt = (
            select(Transaction)
            .where(Transaction.gateway == gateway)
            .where(Transaction.gateway_transaction_id == gateway_transaction_id)
        )
        return await self._one(stmt, for_update)

    async def get_by_order_id(
        self, order_id: int, kind: Optional[TransactionKind] = None
    ) -> List[Transaction]:
        stmt = select(Transaction).where(Transaction.order_id == order_id)
        if kind is not None:
            stmt = stmt.where(Transaction.kind == kind)
        stmt = stmt.order_by(Transaction.id).execution_options(populate_existing=True)
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def get_by_owner_id(
        self, owner_id: str, limit: int = 20, offset: int = 0
    ) -> tuple[list[Transaction], int]:
        """
        Retrieve transactions for an owner with pagination

        Returns:
            Tuple of (list of Transaction, total count)
        """
        count_stmt = select(func.count()).select_from(Transaction).where(
            Transaction.owner_id == owner_id
        )
        count_result = await self.session.execute(count_stmt)
        total = count_result.scalar()

        stmt = (
            select(Transaction)
            .where(Transaction.owner_id == owner_id)
            .order_by(Transaction.created_at.desc(), Transaction.id.desc())
            .limit(limit)
            .offset(offset)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all()), total

    async def sum_net_amount(
        self,
        owner_id: str,
        statuses: Iterable[TransactionStatus] = (TransactionStatus.COMPLETED,),
        kinds: Optional[Iterable[TransactionKind]] = None,
    ) -> Decimal:
        stmt = (
            select(func.coalesce(func.sum(Transaction.net_amount), 0))
            .where(Transaction.owner_id == owner_id)
            .where(Transaction.status.in_(list(statuses)))
        )
        if kinds is not None:
            stmt = stmt.where(Transaction.kind.in_(list(kinds)))

        result = await self.session.execute(stmt)
        return Decimal(str(result.scalar_one()))

    async def get_completed_balances(self) -> dict[str, Decimal]:
        stmt = (
            select(Transaction.owner_id, func.sum(Transaction.net_amount))
            .where(Transaction.status == TransactionStatus.COMPLETED)
            .group_by(Transaction.owner_id)
        )
        result = await self.session.execute(stmt)
        return {owner_id: Decimal(str(total)) for owner_id, total in result.all()}

    async def get_stale_pending(
        self, kind: TransactionKind, older_than: datetime, limit: int = 100
    ) -> List[Transaction]:
        stmt = (
            select(Transaction)
            .where(Transaction.kind == kind)
            .where(Transaction.status == TransactionStatus.PENDING)
            .where(Transaction.created_at < older_than)
            .order_by(Transaction.created_at)
            .limit(limit)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def _one(self, stmt, for_update: bool) -> Optional[Transaction]:
        if for_update:
            stmt = stmt.with_for_update().execution_options(populate_existing=True)
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()
