"""Ledger

Append-oriented store of signed monetary movements per owner. The balance is
never stored; it is the sum of net_amount over the owner's completed
transactions and is computed in one aggregate statement.

Every mutation first locks the owner's Account row (SELECT FOR UPDATE) and
bumps its version with a compare-and-set, so mutations for one owner are
serialized and a lost race surfaces as ConcurrencyConflictError.

Lock order is account row, then transaction row.
"""

import logging
from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, Optional
from storefront.app.repositories.account_repository import AccountRepository
from storefront.app.repositories.transaction_repository import TransactionRepository
from storefront.domain.account import Account
from storefront.domain.base import generate_uuid, generate_reference
from storefront.domain.errors import (
    AlreadyTerminalError,
    ConcurrencyConflictError,
    InsufficientFundsError,
    NotFoundError,
    ValidationError,
)
from storefront.domain.transaction import (
    CREDIT_KINDS,
    DEBIT_KINDS,
    REFERENCE_PREFIXES,
    Transaction,
    TransactionKind,
    TransactionStatus,
)

logger = logging.getLogger(__name__)


class Ledger:
    """
    Ledger of account transactions

    Business Rules:
    1. Credits (deposit, refund, commission) are positive, debits (purchase,
       payout request) negative, adjustments either sign
    2. A transaction leaves pending exactly once; terminal rows never change
    3. A debit only completes if the balance covers it; otherwise the row
       is marked failed and InsufficientFundsError is raised
    4. idempotency_key is unique; recording the same key twice returns the
       first row
    """

    def __init__(
        self,
        account_repo: AccountRepository,
        transaction_repo: TransactionRepository,
        settlement_currency: str = "USD",
    ):
        self.account_repo = account_repo
        self.transaction_repo = transaction_repo
        self.settlement_currency = settlement_currency

    async def get_or_create_account(self, owner_id: str, referred_by: Optional[str] = None) -> Account:
        account = await self.account_repo.get_by_owner_id(owner_id)
        if account:
            return account

        if referred_by == owner_id:
            referred_by = None

        logger.info(f"Opening ledger account for owner {owner_id}")
        return await self.account_repo.create(Account(owner_id=owner_id, referred_by=referred_by))

    async def record_pending(
        self,
        owner_id: str,
        kind: TransactionKind,
        amount: Decimal,
        fee: Decimal = Decimal("0"),
        currency: Optional[str] = None,
        *,
        order_id: Optional[int] = None,
        idempotency_key: Optional[str] = None,
        gateway: Optional[str] = None,
        gateway_transaction_id: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
        description: Optional[str] = None,
    ) -> Transaction:
        """
        Create a pending transaction

        Args:
            owner_id: Owner whose balance the transaction moves
            kind: Movement type; determines the allowed amount sign
            amount: Signed amount in settlement currency
            fee: Fee withheld (>= 0); net_amount = amount - fee
            idempotency_key: Unique key; a replay returns the existing row

        Returns:
            The pending Transaction (or the existing one for a replayed key)

        Raises:
            ValidationError: Sign contradicts kind, negative fee, or foreign currency
        """
        currency = (currency or self.settlement_currency).upper()
        self._validate_amount(kind, amount, fee, currency)

        if idempotency_key:
            existing = await self.transaction_repo.get_by_idempotency_key(idempotency_key)
            if existing:
                if existing.owner_id != owner_id or existing.kind != kind:
                    raise ValidationError(
                        f"Idempotency key {idempotency_key} already used for another transaction",
                        reason=f"existing={existing.transaction_id}",
                    )
                return existing
        else:
            idempotency_key = f"{kind.value}:{generate_uuid()}"

        await self.lock_owner(owner_id)

        transaction = Transaction(
            transaction_id=generate_reference(REFERENCE_PREFIXES[kind]),
            owner_id=owner_id,
            order_id=order_id,
            kind=kind,
            amount=amount,
            fee=fee,
            net_amount=amount - fee,
            currency=currency,
            status=TransactionStatus.PENDING,
            gateway=gateway,
            gateway_transaction_id=gateway_transaction_id,
            idempotency_key=idempotency_key,
            details=dict(details or {}),
            description=description,
        )
        created = await self.transaction_repo.create(transaction)
        logger.info(
            f"Recorded pending {kind.value} {created.transaction_id} for {owner_id}: {amount} {currency}"
        )
        return created

    async def complete(self, transaction_id: int) -> Decimal:
        """
        Move a pending transaction to completed

        Returns:
            The balance delta (net_amount)

        Raises:
            NotFoundError: Unknown transaction
            AlreadyTerminalError: Transaction is not pending
            InsufficientFundsError: Debit exceeds balance (row is marked failed)
        """
        transaction = await self._lock_pending(transaction_id)

        if transaction.net_amount < 0:
            balance = await self.balance_of(transaction.owner_id)
            if balance + transaction.net_amount < 0:
                transaction.status = TransactionStatus.FAILED
                transaction.failure_reason = "insufficient_funds"
                await self.transaction_repo.update(transaction)
                logger.warning(
                    f"Debit {transaction.transaction_id} failed for {transaction.owner_id}: "
                    f"required {-transaction.net_amount}, available {balance}"
                )
                raise InsufficientFundsError(required=-transaction.net_amount, available=balance)

        transaction.status = TransactionStatus.COMPLETED
        transaction.completed_at = datetime.utcnow()
        await self.transaction_repo.update(transaction)

        logger.info(
            f"Completed {transaction.kind.value} {transaction.transaction_id} "
            f"for {transaction.owner_id}: {transaction.net_amount}"
        )
        return transaction.net_amount

    async def fail(self, transaction_id: int, reason: str) -> Transaction:
        return await self._terminate(transaction_id, TransactionStatus.FAILED, reason)

    async def cancel(self, transaction_id: int, reason: str) -> Transaction:
        return await self._terminate(transaction_id, TransactionStatus.CANCELLED, reason)

    async def annotate(
        self,
        transaction_id: int,
        details: Dict[str, Any],
        *,
        gateway_transaction_id: Optional[str] = None,
        payment_currency: Optional[str] = None,
        payment_amount: Optional[Decimal] = None,
    ) -> Transaction:
        """
        Merge gateway annotations into a pending transaction

        Raises:
            AlreadyTerminalError: Terminal rows are never mutated
        """
        transaction = await self.transaction_repo.get_by_id(transaction_id, for_update=True)
        if transaction is None:
            raise NotFoundError(f"Transaction {transaction_id} not found")
        if transaction.is_terminal:
            raise AlreadyTerminalError(transaction.id, transaction.status.value)

        # JSON columns only track reassignment
        transaction.details = {**(transaction.details or {}), **details}
        if gateway_transaction_id:
            transaction.gateway_transaction_id = gateway_transaction_id
        if payment_currency:
            transaction.payment_currency = payment_currency
        if payment_amount is not None:
            transaction.payment_amount = payment_amount

        return await self.transaction_repo.update(transaction)

    async def balance_of(self, owner_id: str) -> Decimal:
        return await self.transaction_repo.sum_net_amount(owner_id)

    async def available_commission(self, owner_id: str) -> Decimal:
        """Completed commissions minus payout requests that are open or paid"""
        earned = await self.transaction_repo.sum_net_amount(
            owner_id,
            statuses=(TransactionStatus.COMPLETED,),
            kinds=(TransactionKind.REFERRAL_COMMISSION,),
        )
        requested = await self.transaction_repo.sum_net_amount(
            owner_id,
            statuses=(TransactionStatus.PENDING, TransactionStatus.COMPLETED),
            kinds=(TransactionKind.PAYOUT_REQUEST,),
        )
        return earned + requested

    async def _terminate(self, transaction_id: int, status: TransactionStatus, reason: str) -> Transaction:
        transaction = await self._lock_pending(transaction_id)

        transaction.status = status
        transaction.failure_reason = reason[:255] if reason else None
        updated = await self.transaction_repo.update(transaction)

        logger.info(f"Transaction {transaction.transaction_id} -> {status.value} ({reason})")
        return updated

    async def _lock_pending(self, transaction_id: int) -> Transaction:
        transaction = await self.transaction_repo.get_by_id(transaction_id)
        if transaction is None:
            raise NotFoundError(f"Transaction {transaction_id} not found")

        await self.lock_owner(transaction.owner_id)

        transaction = await self.transaction_repo.get_by_id(transaction_id, for_update=True)
        if transaction.is_terminal:
            raise AlreadyTerminalError(transaction.id, transaction.status.value)
        return transaction

    async def lock_owner(self, owner_id: str) -> Account:
        account = await self.account_repo.get_by_owner_id(owner_id, for_update=True)
        if account is None:
            await self.get_or_create_account(owner_id)
            account = await self.account_repo.get_by_owner_id(owner_id, for_update=True)

        if not await self.account_repo.bump_version(account.id, account.version):
            raise ConcurrencyConflictError(
                f"Concurrent ledger update for owner {owner_id}",
                reason=f"account_id={account.id}, version={account.version}",
            )
        return account

    def _validate_amount(self, kind: TransactionKind, amount: Decimal, fee: Decimal, currency: str) -> None:
        if currency != self.settlement_currency.upper():
            raise ValidationError(
                f"Only {self.settlement_currency} is supported as settlement currency",
                reason=f"currency={currency}",
            )
        if fee < 0:
            raise ValidationError("Fee must not be negative", reason=f"fee={fee}")
        if amount == 0:
            raise ValidationError("Amount must not be zero")
        if kind in CREDIT_KINDS and amount < 0:
            raise ValidationError(f"{kind.value} must be a positive amount", reason=f"amount={amount}")
        if kind in DEBIT_KINDS and amount > 0:
            raise ValidationError(f"{kind.value} must be a negative amount", reason=f"amount={amount}")
