"""RetryReferralCommissions Use Case

Sweeps completed orders that should carry a referral commission but do not,
and accrues each one in its own unit of work.
"""

import logging
import time
from datetime import datetime
from storefront.libs.result import Result, Return, Error
from storefront.app.services.referral_commission import ReferralCommissionAccrual
from storefront.app.services.unit_of_work import UnitOfWork
from .accrue_referral_commission import AccrueReferralCommission
from .dtos import CommissionRetryResultDTO

logger = logging.getLogger(__name__)


class RetryReferralCommissions:

    def __init__(
        self,
        uow: UnitOfWork,
        referrals: ReferralCommissionAccrual,
        accrue: AccrueReferralCommission,
        batch_size: int = 100,
    ):
        self.uow = uow
        self.referrals = referrals
        self.accrue = accrue
        self.batch_size = batch_size

    async def execute(self) -> Result[CommissionRetryResultDTO]:
        start_time = time.time()
        run_time = datetime.utcnow()

        try:
            orders = await self.referrals.find_unaccrued(self.batch_size)
            order_numbers = [order.order_number for order in orders]
            # Release the read snapshot before accruing one by one
            await self.uow.rollback()
        except Exception as e:
            await self.uow.rollback()
            return Return.err(
                Error(
                    code="COMMISSION_RETRY_FAILED",
                    message="Failed to list orders missing referral commission",
                    reason=str(e),
                )
            )

        accrued = 0
        failures: list[str] = []
        for order_number in order_numbers:
            result = await self.accrue.execute(order_number)
            if result.is_err():
                failures.append(order_number)
            elif result.value.accrued:
                accrued += 1

        execution_time_ms = int((time.time() - start_time) * 1000)
        if order_numbers:
            logger.info(
                f"Commission retry: {accrued}/{len(order_numbers)} accrued, "
                f"{len(failures)} failed in {execution_time_ms}ms"
            )

        return Return.ok(
            CommissionRetryResultDTO(
                orders_checked=len(order_numbers),
                commissions_accrued=accrued,
                failures=failures,
                run_time=run_time,
                execution_time_ms=execution_time_ms,
            )
        )
