"""Order Fulfillment Engine

Drives an order through its lifecycle:

    pending -> processing -> completed                (automatic delivery)
    pending -> processing -> pending_delivery -> completed   (manual delivery)
    pending -> cancelled
    processing | pending_delivery | completed -> refunded

Each transition runs inside the caller's unit of work, writes an OrderEvent
and is logged. Orders are locked (SELECT FOR UPDATE) before any transition.
"""

import logging
import uuid
from datetime import datetime
from decimal import Decimal
from typing import Optional, Sequence
from storefront.app.repositories.delivery_file_repository import DeliveryFileRepository
from storefront.app.repositories.order_event_repository import OrderEventRepository
from storefront.app.repositories.order_repository import OrderRepository
from storefront.app.repositories.product_repository import ProductRepository
from storefront.app.repositories.transaction_repository import TransactionRepository
from storefront.app.services.inventory_allocator import InventoryAllocator
from storefront.app.services.ledger import Ledger
from storefront.app.services.notification_service import NotificationService
from storefront.domain.access_code import FINALIZED_STATUSES
from storefront.domain.base import generate_reference
from storefront.domain.delivery_file import DeliveryFile
from storefront.domain.errors import (
    InsufficientFundsError,
    InvalidStateTransitionError,
    InventoryExhaustedError,
    NotFoundError,
    ValidationError,
)
from storefront.domain.order import Order, OrderStatus, PaymentStatus
from storefront.domain.order_event import OrderEvent
from storefront.domain.product import DeliveryMode
from storefront.domain.transaction import TransactionKind

logger = logging.getLogger(__name__)

SYSTEM_ACTOR = "system"

REFUNDABLE_STATUSES = frozenset(
    {OrderStatus.COMPLETED, OrderStatus.PROCESSING, OrderStatus.PENDING_DELIVERY}
)


class OrderFulfillmentEngine:
    """
    Order state machine with inventory reservation and ledger compensation

    Business Rules:
    1. Payment is a synchronous ledger debit of net_amount
    2. Automatic orders complete only with `quantity` finalized codes;
       manual orders only with at least one delivery file
    3. Cancellation is allowed while pending and unpaid; it releases codes
       and cancels pending purchase transactions
    4. Refunds never exceed net_amount - refunded_amount; uncompleted orders
       can only be refunded in full
    """

    def __init__(
        self,
        ledger: Ledger,
        allocator: InventoryAllocator,
        order_repo: OrderRepository,
        product_repo: ProductRepository,
        transaction_repo: TransactionRepository,
        event_repo: OrderEventRepository,
        delivery_file_repo: DeliveryFileRepository,
        notification_service: Optional[NotificationService] = None,
    ):
        self.ledger = ledger
        self.allocator = allocator
        self.order_repo = order_repo
        self.product_repo = product_repo
        self.transaction_repo = transaction_repo
        self.event_repo = event_repo
        self.delivery_file_repo = delivery_file_repo
        self.notification_service = notification_service

    async def place_order(
        self,
        owner_id: str,
        product_id: int,
        quantity: int,
        discount_amount: Decimal = Decimal("0"),
        actor: Optional[str] = None,
    ) -> Order:
        """
        Create a pending order

        Automatic-delivery products get a best-effort hold of `quantity`
        codes; when stock is short the order is created without a hold and
        reservation is retried at fulfillment.

        Raises:
            ValidationError: Bad quantity/discount or inactive product
            NotFoundError: Unknown product
        """
        if quantity < 1:
            raise ValidationError("Quantity must be at least 1", reason=f"quantity={quantity}")

        product = await self.product_repo.get_by_id(product_id)
        if product is None:
            raise NotFoundError(f"Product {product_id} not found")
        if not product.is_active:
            raise ValidationError(f"Product {product.sku} is not available for purchase")

        total_amount = product.price * quantity
        if discount_amount < 0 or discount_amount > total_amount:
            raise ValidationError(
                "Discount must be between 0 and the order total",
                reason=f"discount={discount_amount}, total={total_amount}",
            )

        await self.ledger.get_or_create_account(owner_id)

        order = await self.order_repo.create(
            Order(
                order_number=generate_reference("ORD"),
                owner_id=owner_id,
                product_id=product.id,
                quantity=quantity,
                unit_price=product.price,
                total_amount=total_amount,
                discount_amount=discount_amount,
                net_amount=total_amount - discount_amount,
                delivery_mode=product.delivery_mode,
            )
        )
        await self._record_event(order, "order_created", None, OrderStatus.PENDING, actor or owner_id)

        if product.delivery_mode == DeliveryMode.AUTOMATIC:
            try:
                await self.allocator.reserve(product.id, quantity, order.id)
                await self._record_event(
                    order, "codes_reserved", OrderStatus.PENDING, OrderStatus.PENDING,
                    SYSTEM_ACTOR, f"{quantity} codes held",
                )
            except InventoryExhaustedError as e:
                logger.info(
                    f"Order {order.order_number} placed without a hold: {e.message}"
                )

        logger.info(
            f"Order {order.order_number} placed by {owner_id}: {quantity} x {product.sku}, "
            f"net {order.net_amount}"
        )
        return order

    async def pay(self, order_number: str, actor: Optional[str] = None) -> Order:
        """
        Pay a pending order from the owner's balance and advance it

        Raises:
            InvalidStateTransitionError: Order not pending or already paid
            InsufficientFundsError: Balance too low; the purchase transaction is
                failed and payment_status is failed, status stays pending
        """
        order = await self._load(order_number)
        actor = actor or order.owner_id

        if order.status != OrderStatus.PENDING or order.payment_status == PaymentStatus.PAID:
            raise InvalidStateTransitionError(
                f"Order {order_number} cannot be paid",
                reason=f"status={order.status.value}, payment_status={order.payment_status.value}",
            )

        if order.net_amount > 0:
            purchase = await self.ledger.record_pending(
                order.owner_id,
                TransactionKind.PURCHASE,
                -order.net_amount,
                order_id=order.id,
                idempotency_key=f"purchase:{order.order_number}:{uuid.uuid4().hex[:8]}",
                description=f"Payment for order {order.order_number}",
            )
            try:
                await self.ledger.complete(purchase.id)
            except InsufficientFundsError as e:
                order.payment_status = PaymentStatus.FAILED
                await self.order_repo.update(order)
                await self._record_event(
                    order, "payment_failed", OrderStatus.PENDING, OrderStatus.PENDING, actor, e.message
                )
                logger.warning(f"Payment for order {order_number} failed: {e.message}")
                raise

        order.payment_status = PaymentStatus.PAID
        order.paid_at = datetime.utcnow()
        await self._transition(order, OrderStatus.PROCESSING, "payment_received", actor)

        if order.is_manual_delivery:
            await self._transition(
                order, OrderStatus.PENDING_DELIVERY, "awaiting_manual_delivery", SYSTEM_ACTOR
            )
            return order

        try:
            await self._fulfill(order, SYSTEM_ACTOR)
        except InventoryExhaustedError:
            # Shortage is recorded on the timeline; the order waits in processing
            pass
        return order

    async def fulfill(self, order_number: str, actor: Optional[str] = None) -> Order:
        """
        Reserve missing codes, finalize them and complete the order

        Raises:
            InvalidStateTransitionError: Not an automatic, paid, processing order
            InventoryExhaustedError: Shortage; the order stays processing and an
                inventory_shortage event is written
        """
        order = await self._load(order_number)
        return await self._fulfill(order, actor or SYSTEM_ACTOR)

    async def assign_codes(
        self, order_number: str, code_ids: Sequence[int], actor: Optional[str] = None
    ) -> Order:
        """
        Operator assigns specific available codes to a processing order

        Raises:
            ValidationError: More codes than still missing, or unusable codes
        """
        order = await self._load(order_number)
        self._require(
            order,
            not order.is_manual_delivery
            and order.status == OrderStatus.PROCESSING
            and order.payment_status == PaymentStatus.PAID,
            "Cannot assign codes to this order",
        )

        held = await self.allocator.codes_for_order(order.id)
        missing = order.quantity - len(held)
        if len(set(code_ids)) > missing:
            raise ValidationError(
                "Too many access codes selected for this order quantity",
                reason=f"selected={len(set(code_ids))}, missing={missing}",
            )

        assigned = await self.allocator.assign(order.product_id, order.id, code_ids)
        await self._record_event(
            order, "codes_assigned", order.status, order.status, actor or SYSTEM_ACTOR,
            f"codes {assigned}",
        )
        return order

    async def deliver_files(
        self,
        order_number: str,
        references: Sequence[str],
        notes: Optional[str] = None,
        actor: Optional[str] = None,
    ) -> Order:
        """
        Record operator-uploaded delivery files and complete a manual order

        Raises:
            ValidationError: No file reference given
            InvalidStateTransitionError: Not a paid manual order awaiting delivery
        """
        references = [ref.strip() for ref in references if ref and ref.strip()]
        if not references:
            raise ValidationError("At least one delivery file is required")

        order = await self._load(order_number)
        self._require(
            order,
            order.is_manual_delivery
            and order.status == OrderStatus.PENDING_DELIVERY
            and order.payment_status == PaymentStatus.PAID,
            "Order is not awaiting manual delivery",
        )

        for reference in references:
            await self.delivery_file_repo.create(
                DeliveryFile(order_id=order.id, reference=reference, notes=notes)
            )
        if notes:
            order.append_note(f"Delivery notes: {notes}")

        await self._complete(order, actor or SYSTEM_ACTOR, f"{len(references)} files delivered")
        return order

    async def cancel(self, order_number: str, actor: Optional[str] = None, reason: Optional[str] = None) -> Order:
        """
        Cancel an unpaid pending order

        Releases held codes and cancels any pending purchase transaction.

        Raises:
            InvalidStateTransitionError: Order already paid or past pending
        """
        order = await self._load(order_number)
        self._require(order, order.can_be_cancelled, "Order cannot be cancelled")

        await self.allocator.release(order.id)

        purchases = await self.transaction_repo.get_by_order_id(order.id, TransactionKind.PURCHASE)
        for purchase in purchases:
            if purchase.is_pending:
                await self.ledger.cancel(purchase.id, "order_cancelled")

        order.cancelled_at = datetime.utcnow()
        if reason:
            order.append_note(f"Cancellation reason: {reason}")
        await self._transition(order, OrderStatus.CANCELLED, "order_cancelled", actor or order.owner_id, reason)
        return order

    async def refund(
        self,
        order_number: str,
        amount: Optional[Decimal] = None,
        actor: Optional[str] = None,
        reason: Optional[str] = None,
    ) -> Order:
        """
        Credit part or all of the paid amount back to the owner

        Args:
            amount: Refund amount; None refunds everything still refundable

        Raises:
            InvalidStateTransitionError: Order not paid or in a non-refundable state
            ValidationError: Amount outside (0, net_amount - refunded_amount], or a
                partial refund of an uncompleted order
        """
        order = await self._load(order_number)
        actor = actor or SYSTEM_ACTOR
        self._require(
            order,
            order.payment_status == PaymentStatus.PAID and order.status in REFUNDABLE_STATUSES,
            "Order cannot be refunded in its current state",
        )

        refundable = order.refundable_amount
        amount = refundable if amount is None else amount
        if amount <= 0 or amount > refundable:
            raise ValidationError(
                f"Refund amount must be greater than 0 and at most {refundable}",
                reason=f"amount={amount}, refundable={refundable}",
            )

        completed = order.status == OrderStatus.COMPLETED
        if not completed and amount != refundable:
            raise ValidationError("Orders that are not completed can only be refunded in full")

        refund = await self.ledger.record_pending(
            order.owner_id,
            TransactionKind.REFUND,
            amount,
            order_id=order.id,
            idempotency_key=f"refund:{order.order_number}:{uuid.uuid4().hex[:8]}",
            details={"reason": reason, "actor": actor},
            description=f"Refund for order {order.order_number}",
        )
        await self.ledger.complete(refund.id)

        order.refunded_amount = order.refunded_amount + amount
        if order.refunded_amount == order.net_amount:
            if not completed:
                await self.allocator.release(order.id)
            order.payment_status = PaymentStatus.REFUNDED
            order.append_note(f"Full refund: {reason}" if reason else "Full refund")
            await self._transition(order, OrderStatus.REFUNDED, "order_refunded", actor, reason)
        else:
            order.append_note(f"Partial refund of ${amount}: {reason}" if reason else f"Partial refund of ${amount}")
            await self.order_repo.update(order)
            await self._record_event(order, "partial_refund", order.status, order.status, actor, f"{amount}")

        logger.info(f"Refunded {amount} on order {order_number} to {order.owner_id}")
        return order

    async def _fulfill(self, order: Order, actor: str) -> Order:
        self._require(
            order,
            not order.is_manual_delivery
            and order.status == OrderStatus.PROCESSING
            and order.payment_status == PaymentStatus.PAID,
            "Order is not ready for delivery",
        )

        held = await self.allocator.codes_for_order(order.id)
        missing = order.quantity - len(held)
        if missing > 0:
            try:
                await self.allocator.reserve(order.product_id, missing, order.id)
            except InventoryExhaustedError as e:
                await self._record_event(
                    order, "inventory_shortage", order.status, order.status, SYSTEM_ACTOR, e.message
                )
                if self.notification_service:
                    await self.notification_service.send_operator_alert(
                        "inventory_shortage",
                        f"Order {order.order_number} is waiting for {e.shortfall} access codes",
                        {
                            "order_number": order.order_number,
                            "product_id": order.product_id,
                            "requested": e.requested,
                            "available": e.available,
                        },
                    )
                raise

        held = await self.allocator.codes_for_order(order.id)
        await self.allocator.finalize(order.id, [code.id for code in held])
        await self._complete(order, actor, f"{order.quantity} codes delivered")
        return order

    async def _complete(self, order: Order, actor: str, cause: str) -> None:
        if order.is_manual_delivery:
            ready = await self.delivery_file_repo.count_by_order_id(order.id) >= 1
        else:
            codes = await self.allocator.codes_for_order(order.id)
            finalized = [code for code in codes if code.status in FINALIZED_STATUSES]
            ready = len(finalized) == order.quantity

        if not ready:
            raise InvalidStateTransitionError(
                f"Order {order.order_number} does not meet its completion requirements",
                reason=f"delivery_mode={order.delivery_mode.value}, quantity={order.quantity}",
            )

        order.completed_at = datetime.utcnow()
        await self._transition(order, OrderStatus.COMPLETED, "order_completed", actor, cause)

    async def _transition(
        self,
        order: Order,
        to_status: OrderStatus,
        event: str,
        actor: str,
        cause: Optional[str] = None,
    ) -> None:
        from_status = order.status
        order.status = to_status
        await self.order_repo.update(order)
        await self._record_event(order, event, from_status, to_status, actor, cause)
        logger.info(
            f"Order {order.order_number}: {from_status.value} -> {to_status.value} "
            f"({event}, actor={actor})"
        )

    async def _record_event(
        self,
        order: Order,
        event: str,
        from_status: Optional[OrderStatus],
        to_status: OrderStatus,
        actor: str,
        cause: Optional[str] = None,
    ) -> None:
        await self.event_repo.create(
            OrderEvent(
                order_id=order.id,
                event=event,
                from_status=from_status.value if from_status else None,
                to_status=to_status.value,
                actor=actor,
                cause=cause,
            )
        )

    async def _load(self, order_number: str) -> Order:
        order = await self.order_repo.get_by_order_number(order_number, for_update=True)
        if order is None:
            raise NotFoundError(f"Order {order_number} not found")
        return order

    def _require(self, order: Order, condition: bool, message: str) -> None:
        if not condition:
            raise InvalidStateTransitionError(
                f"{message} ({order.order_number})",
                reason=f"status={order.status.value}, payment_status={order.payment_status.value}",
            )
