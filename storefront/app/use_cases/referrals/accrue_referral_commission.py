"""AccrueReferralCommission Use Case

Posts the referral commission for a completed order in its own unit of work.
"""

import logging
from storefront.libs.result import Result, Return, Error
from storefront.app.repositories.order_repository import OrderRepository
from storefront.app.services.referral_commission import ReferralCommissionAccrual
from storefront.app.services.unit_of_work import UnitOfWork
from storefront.app.use_cases.common import to_error, with_concurrency_retry
from storefront.app.use_cases.ledger.dtos import TransactionDTO
from storefront.domain.errors import NotFoundError, StorefrontError
from .dtos import AccrueCommissionResponseDTO

logger = logging.getLogger(__name__)


class AccrueReferralCommission:
    """
    Use Case: Accrue referral commission for one order

    Business Rules:
    1. Idempotent per order (commission:<order_number>)
    2. Failure never touches the order; it is logged as a reconciliation
       discrepancy and left for the retry worker
    """

    def __init__(
        self,
        uow: UnitOfWork,
        referrals: ReferralCommissionAccrual,
        order_repo: OrderRepository,
        retry_attempts: int = 3,
    ):
        self.uow = uow
        self.referrals = referrals
        self.order_repo = order_repo
        self.retry_attempts = retry_attempts

    async def execute(self, order_number: str) -> Result[AccrueCommissionResponseDTO]:
        async def operation() -> AccrueCommissionResponseDTO:
            order = await self.order_repo.get_by_order_number(order_number)
            if order is None:
                raise NotFoundError(f"Order {order_number} not found")

            commission = await self.referrals.accrue(order)
            response = AccrueCommissionResponseDTO(
                order_number=order_number,
                accrued=commission is not None,
                commission=TransactionDTO.from_entity(commission) if commission else None,
            )
            await self.uow.commit()
            return response

        try:
            return Return.ok(await with_concurrency_retry(self.uow, self.retry_attempts, operation))
        except StorefrontError as e:
            await self.uow.rollback()
            logger.error(
                f"Reconciliation discrepancy: commission for order {order_number} "
                f"not accrued ({e.code}: {e.message})"
            )
            return Return.err(to_error(e))
        except Exception as e:
            await self.uow.rollback()
            logger.error(
                f"Reconciliation discrepancy: commission for order {order_number} not accrued: {e}"
            )
            return Return.err(
                Error(
                    code="ACCRUE_COMMISSION_FAILED",
                    message="Failed to accrue referral commission",
                    reason=str(e),
                )
            )
