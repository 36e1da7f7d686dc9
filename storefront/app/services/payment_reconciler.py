"""Payment Reconciler

Opens hosted invoices for account funding and turns gateway payment
notifications into ledger transitions. Webhook pushes and status polls go
through the same derivation in apply_callback.

Delivery is at-least-once and may be out of order: a notification for a
transaction that already left pending is acknowledged as a no-op and never
regresses it.
"""

import hashlib
import hmac
import logging
import uuid
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Optional
from pydantic import BaseModel, Field
from storefront.app.repositories.transaction_repository import TransactionRepository
from storefront.app.services.ledger import Ledger
from storefront.app.services.payment_gateway import (
    GatewayCallback,
    GatewayPaymentStatus,
    InvoiceRequest,
    PaymentGateway,
)
from storefront.domain.errors import (
    AlreadyTerminalError,
    GatewayError,
    NotFoundError,
    SignatureVerificationError,
    ValidationError,
)
from storefront.domain.transaction import Transaction, TransactionKind

logger = logging.getLogger(__name__)

COMPLETING_STATUSES = frozenset(
    {GatewayPaymentStatus.CONFIRMED, GatewayPaymentStatus.FINISHED, GatewayPaymentStatus.COMPLETED}
)
FAILING_STATUSES = frozenset({GatewayPaymentStatus.FAILED, GatewayPaymentStatus.EXPIRED})


class CallbackResult(str, Enum):
    APPLIED = "applied"
    NOOP = "noop"
    REJECTED = "rejected"


class CallbackOutcome(BaseModel):
    result: CallbackResult
    reason: Optional[str] = None
    transaction_id: Optional[str] = None
    status: Optional[str] = None


class InvoiceHandle(BaseModel):
    transaction_id: str
    order_ref: str
    invoice_id: str
    invoice_url: str
    amount: Decimal
    currency: str
    status: str


class StatusSnapshot(BaseModel):
    transaction_id: str
    order_ref: str
    payment_id: Optional[str] = None
    status: str
    gateway_status: Optional[str] = None
    amount: Decimal
    currency: str
    actually_paid: Optional[Decimal] = None
    payment_currency: Optional[str] = None
    updated_at: datetime
    completed_at: Optional[datetime] = None


class PaymentReconciler:
    """
    Reconciles gateway payments with pending deposit transactions

    Business Rules:
    1. Deposits are keyed by the funding correlation id (order_ref)
    2. Callbacks are authenticated by HMAC-SHA512 of the raw body
    3. confirmed/finished/completed complete, failed/expired fail, refunded
       and cancelled cancel the deposit; other statuses only annotate it
    4. A non-pending deposit is never changed by a callback
    """

    def __init__(
        self,
        ledger: Ledger,
        transaction_repo: TransactionRepository,
        gateway: PaymentGateway,
        ipn_secret: Optional[str],
        min_deposit: Decimal = Decimal("10"),
        max_deposit: Decimal = Decimal("10000"),
        settlement_currency: str = "USD",
        callback_url: Optional[str] = None,
        success_url: Optional[str] = None,
        cancel_url: Optional[str] = None,
    ):
        self.ledger = ledger
        self.transaction_repo = transaction_repo
        self.gateway = gateway
        self.ipn_secret = ipn_secret
        self.min_deposit = Decimal(str(min_deposit))
        self.max_deposit = Decimal(str(max_deposit))
        self.settlement_currency = settlement_currency
        self.callback_url = callback_url
        self.success_url = success_url
        self.cancel_url = cancel_url

    async def create_invoice(
        self, owner_id: str, amount: Decimal, order_ref: Optional[str] = None
    ) -> InvoiceHandle:
        """
        Record a pending deposit and open a hosted invoice for it

        Calling again with the same order_ref, owner and amount returns the
        existing invoice.

        Raises:
            ValidationError: Amount outside the allowed deposit range, or order_ref
                already used by another owner or for another amount
            GatewayError: Gateway failed; the deposit stays pending
        """
        if amount < self.min_deposit or amount > self.max_deposit:
            raise ValidationError(
                f"Deposit amount must be between {self.min_deposit} and {self.max_deposit} "
                f"{self.settlement_currency}",
                reason=f"amount={amount}",
            )

        order_ref = order_ref or f"FUND_{uuid.uuid4().hex[:10].upper()}_{owner_id}"

        existing = await self.transaction_repo.get_by_idempotency_key(order_ref)
        if existing:
            self._ensure_same_deposit(existing, owner_id, amount)
        if existing and existing.details.get("invoice_url"):
            return self._to_invoice_handle(existing)
        if existing and existing.is_terminal:
            raise ValidationError(
                f"Funding reference {order_ref} is already {existing.status.value}",
                reason=f"transaction_id={existing.transaction_id}",
            )

        transaction = existing or await self.ledger.record_pending(
            owner_id,
            TransactionKind.DEPOSIT,
            amount,
            idempotency_key=order_ref,
            gateway=self.gateway.name,
            description=f"Account funding via {self.gateway.name}",
        )

        request = InvoiceRequest(
            price_amount=transaction.amount,
            price_currency=self.settlement_currency,
            order_id=order_ref,
            order_description=f"Account funding {transaction.transaction_id}",
            ipn_callback_url=self.callback_url,
            success_url=self.success_url,
            cancel_url=self.cancel_url,
        )

        try:
            invoice = await self.gateway.create_invoice(request)
        except GatewayError as e:
            logger.error(
                f"Invoice creation failed for {order_ref}; deposit "
                f"{transaction.transaction_id} stays pending: {e.message}"
            )
            raise

        transaction = await self.ledger.annotate(
            transaction.id,
            {"invoice_id": invoice.invoice_id, "invoice_url": invoice.invoice_url},
            gateway_transaction_id=invoice.invoice_id,
        )
        logger.info(f"Opened invoice {invoice.invoice_id} for deposit {transaction.transaction_id}")
        return self._to_invoice_handle(transaction)

    def verify_signature(self, raw_payload: bytes, signature: Optional[str]) -> bool:
        """HMAC-SHA512 of the raw body, hex encoded, compared in constant time"""
        if not self.ipn_secret or not signature:
            return False

        expected = hmac.new(
            self.ipn_secret.encode("utf-8"), raw_payload, hashlib.sha512
        ).hexdigest()
        return hmac.compare_digest(expected, signature.strip().lower())

    def ensure_signature(self, raw_payload: bytes, signature: Optional[str]) -> None:
        if not self.verify_signature(raw_payload, signature):
            logger.warning("Rejected payment callback with invalid signature")
            raise SignatureVerificationError("Invalid payment callback signature")

    async def apply_callback(self, callback: GatewayCallback) -> CallbackOutcome:
        """
        Apply a gateway notification to its deposit

        Returns:
            CallbackOutcome: applied, noop (already terminal) or rejected
            (UNKNOWN_ORDER when no deposit matches)
        """
        transaction = await self._find_deposit(callback)
        if transaction is None:
            logger.warning(
                f"Payment callback for unknown order: payment_id={callback.payment_id}, "
                f"order_id={callback.order_id}"
            )
            return CallbackOutcome(result=CallbackResult.REJECTED, reason="UNKNOWN_ORDER")

        if transaction.is_terminal:
            logger.info(
                f"Ignoring {callback.payment_status.value} callback for "
                f"{transaction.transaction_id}: already {transaction.status.value}"
            )
            return self._outcome(CallbackResult.NOOP, transaction)

        status = callback.payment_status
        annotations = {
            "payment_status": status.value,
            "last_callback_at": datetime.utcnow().isoformat(),
        }
        if callback.payment_id:
            annotations["payment_id"] = callback.payment_id
        if callback.actually_paid is not None:
            annotations["actually_paid"] = str(callback.actually_paid)
        if callback.pay_amount is not None:
            annotations["pay_amount"] = str(callback.pay_amount)

        try:
            transaction = await self.ledger.annotate(
                transaction.id,
                annotations,
                gateway_transaction_id=callback.payment_id,
                payment_currency=callback.pay_currency,
                payment_amount=callback.actually_paid if callback.actually_paid is not None else callback.pay_amount,
            )

            if status in COMPLETING_STATUSES:
                await self.ledger.complete(transaction.id)
            elif status in FAILING_STATUSES:
                await self.ledger.fail(transaction.id, f"payment_{status.value}")
            elif status in (GatewayPaymentStatus.REFUNDED, GatewayPaymentStatus.CANCELLED):
                # never credited, so a gateway refund only closes the deposit
                await self.ledger.cancel(transaction.id, f"payment_{status.value}")
            elif status == GatewayPaymentStatus.PARTIALLY_PAID:
                logger.warning(
                    f"Deposit {transaction.transaction_id} partially paid: "
                    f"{callback.actually_paid} of {callback.pay_amount} {callback.pay_currency}"
                )
        except AlreadyTerminalError:
            return self._outcome(CallbackResult.NOOP, transaction)

        transaction = await self.transaction_repo.get_by_id(transaction.id)
        logger.info(
            f"Applied {status.value} callback to {transaction.transaction_id}: "
            f"now {transaction.status.value}"
        )
        return self._outcome(CallbackResult.APPLIED, transaction)

    async def get_status(self, payment_id: str) -> StatusSnapshot:
        """
        Current state of a deposit by gateway payment id (or funding reference)

        Raises:
            NotFoundError: No deposit matches
        """
        transaction = await self._get_deposit(payment_id)
        return self._to_snapshot(transaction)

    async def refresh_status(self, payment_id: str) -> StatusSnapshot:
        """
        Poll the gateway and apply the result like a pushed callback

        Raises:
            NotFoundError: No deposit matches
            ValidationError: The customer has not started a payment yet
            GatewayError: Gateway unreachable
        """
        transaction = await self._get_deposit(payment_id)
        if transaction.is_terminal:
            return self._to_snapshot(transaction)

        gateway_payment_id = (transaction.details or {}).get("payment_id")
        if not gateway_payment_id:
            raise ValidationError(
                f"No payment has been made yet for deposit {transaction.transaction_id}",
                reason=f"order_ref={transaction.idempotency_key}",
            )

        callback = await self.gateway.get_payment_status(gateway_payment_id)
        if not callback.order_id:
            callback.order_id = transaction.idempotency_key

        await self.apply_callback(callback)
        return await self.get_status(gateway_payment_id)

    async def _get_deposit(self, payment_id: str) -> Transaction:
        transaction = await self.transaction_repo.get_by_gateway_id(self.gateway.name, payment_id)
        if transaction is None:
            transaction = await self.transaction_repo.get_by_idempotency_key(payment_id)
        if transaction is None or transaction.kind != TransactionKind.DEPOSIT:
            raise NotFoundError(f"Payment {payment_id} not found")
        return transaction

    async def _find_deposit(self, callback: GatewayCallback) -> Optional[Transaction]:
        transaction = None
        for gateway_id in (callback.payment_id, callback.invoice_id):
            if gateway_id and transaction is None:
                transaction = await self.transaction_repo.get_by_gateway_id(self.gateway.name, gateway_id)
        if transaction is None and callback.order_id:
            transaction = await self.transaction_repo.get_by_idempotency_key(callback.order_id)

        if transaction is None or transaction.kind != TransactionKind.DEPOSIT:
            return None
        return transaction

    def _ensure_same_deposit(self, existing: Transaction, owner_id: str, amount: Decimal) -> None:
        if existing.kind != TransactionKind.DEPOSIT or existing.owner_id != owner_id:
            raise ValidationError(
                f"Funding reference {existing.idempotency_key} belongs to another deposit",
                reason=f"transaction_id={existing.transaction_id}",
            )
        if existing.amount != amount:
            raise ValidationError(
                f"Funding reference {existing.idempotency_key} was opened for {existing.amount} "
                f"{existing.currency}",
                reason=f"requested={amount}, existing={existing.amount}",
            )

    def _outcome(self, result: CallbackResult, transaction: Transaction) -> CallbackOutcome:
        return CallbackOutcome(
            result=result,
            transaction_id=transaction.transaction_id,
            status=transaction.status.value,
        )

    def _to_invoice_handle(self, transaction: Transaction) -> InvoiceHandle:
        return InvoiceHandle(
            transaction_id=transaction.transaction_id,
            order_ref=transaction.idempotency_key,
            invoice_id=transaction.details.get("invoice_id", ""),
            invoice_url=transaction.details.get("invoice_url", ""),
            amount=transaction.amount,
            currency=transaction.currency,
            status=transaction.status.value,
        )

    def _to_snapshot(self, transaction: Transaction) -> StatusSnapshot:
        details = transaction.details or {}
        actually_paid = details.get("actually_paid")
        return StatusSnapshot(
            transaction_id=transaction.transaction_id,
            order_ref=transaction.idempotency_key,
            payment_id=details.get("payment_id"),
            status=transaction.status.value,
            gateway_status=details.get("payment_status"),
            amount=transaction.amount,
            currency=transaction.currency,
            actually_paid=Decimal(actually_paid) if actually_paid is not None else None,
            payment_currency=transaction.payment_currency,
            updated_at=transaction.updated_at,
            completed_at=transaction.completed_at,
        )
