"""Referral Commission Accrual

Posts a pending referral_commission transaction to the referrer of an
order's owner once the order completes. Runs in its own unit of work after
the completion commit; a failure here never rolls back the order and is
picked up again by the commission retry worker.
"""

import logging
from decimal import Decimal, ROUND_HALF_UP
from typing import List, Optional
from storefront.app.repositories.account_repository import AccountRepository
from storefront.app.repositories.order_repository import OrderRepository
from storefront.app.services.ledger import Ledger
from storefront.domain.errors import InvalidStateTransitionError, ValidationError
from storefront.domain.order import Order, OrderStatus
from storefront.domain.transaction import Transaction, TransactionKind

logger = logging.getLogger(__name__)

CENT = Decimal("0.01")


class ReferralCommissionAccrual:
    """
    Referral commission bookkeeping

    Business Rules:
    1. amount = round(order.net_amount * rate, 2), half up
    2. At most one commission per order (idempotency key commission:<order_number>)
    3. No commission without a referrer, for self-referrals, for a
       non-positive rate, or for zero-value orders
    4. A payout request takes everything currently available and must reach
       the minimum payout
    """

    def __init__(
        self,
        ledger: Ledger,
        account_repo: AccountRepository,
        order_repo: OrderRepository,
        commission_rate: Decimal = Decimal("0.10"),
        minimum_payout: Decimal = Decimal("50"),
    ):
        self.ledger = ledger
        self.account_repo = account_repo
        self.order_repo = order_repo
        self.commission_rate = Decimal(str(commission_rate))
        self.minimum_payout = Decimal(str(minimum_payout))

    async def accrue(self, order: Order) -> Optional[Transaction]:
        """
        Post the commission for a completed order

        Returns:
            The pending commission transaction, or None when none is due
        """
        if order.status != OrderStatus.COMPLETED:
            raise InvalidStateTransitionError(
                f"Commission accrues only on completed orders ({order.order_number})",
                reason=f"status={order.status.value}",
            )

        if self.commission_rate <= 0 or order.net_amount <= 0:
            return None

        account = await self.account_repo.get_by_owner_id(order.owner_id)
        if account is None or not account.referred_by or account.referred_by == order.owner_id:
            return None

        amount = (order.net_amount * self.commission_rate).quantize(CENT, rounding=ROUND_HALF_UP)
        if amount <= 0:
            return None

        commission = await self.ledger.record_pending(
            account.referred_by,
            TransactionKind.REFERRAL_COMMISSION,
            amount,
            order_id=order.id,
            idempotency_key=f"commission:{order.order_number}",
            details={
                "order_number": order.order_number,
                "referred_owner_id": order.owner_id,
                "rate": str(self.commission_rate),
            },
            description=f"Referral commission for order {order.order_number}",
        )
        logger.info(
            f"Accrued commission {commission.transaction_id} of {amount} for "
            f"{account.referred_by} on order {order.order_number}"
        )
        return commission

    async def find_unaccrued(self, limit: int = 100) -> List[Order]:
        return await self.order_repo.get_completed_without_commission(limit)

    async def request_payout(self, owner_id: str) -> Transaction:
        """
        Request payout of all available commission

        Raises:
            ValidationError: Available commission below the minimum payout
        """
        await self.ledger.lock_owner(owner_id)

        available = await self.ledger.available_commission(owner_id)
        if available < self.minimum_payout:
            raise ValidationError(
                f"Minimum payout amount is ${self.minimum_payout}",
                reason=f"available={available}",
            )

        payout = await self.ledger.record_pending(
            owner_id,
            TransactionKind.PAYOUT_REQUEST,
            -available,
            details={"requested_amount": str(available)},
            description="Referral commission payout request",
        )
        logger.info(f"Payout request {payout.transaction_id} of {available} for {owner_id}")
        return payout
