"""Referral Commission Retry Worker

Accrues referral commissions that were not posted when their order
completed (e.g. the accrual failed after the order commit).
"""

import asyncio
import logging
from datetime import datetime
from typing import Optional
from sqlalchemy.ext.asyncio import create_async_engine
from sqlalchemy.orm import sessionmaker
from sqlmodel.ext.asyncio.session import AsyncSession

from config import ApplicationConfig
from storefront.adapter.services.core import StorefrontCore
from storefront.app.use_cases.referrals import (
    AccrueReferralCommission,
    CommissionRetryResultDTO,
    RetryReferralCommissions,
)

logger = logging.getLogger(__name__)


class CommissionRetryWorker:
    """
    Background worker sweeping completed orders without referral commission

    Usage:
        worker = CommissionRetryWorker()
        result = await worker.run_once()
        await worker.run_forever(interval_seconds=900)
    """

    def __init__(self, db_uri: Optional[str] = None, batch_size: int = 100):
        self.db_uri = db_uri or ApplicationConfig.DB_URI
        self.batch_size = batch_size

        self.engine = create_async_engine(self.db_uri, echo=False, future=True)
        self.async_session_factory = sessionmaker(
            self.engine, class_=AsyncSession, expire_on_commit=False, autoflush=False
        )

        logger.info("CommissionRetryWorker initialized")

    async def run_once(self) -> CommissionRetryResultDTO:
        if not ApplicationConfig.COMMISSION_RETRY_ENABLED:
            logger.info("Commission retry is disabled, skipping")
            return CommissionRetryResultDTO(
                orders_checked=0,
                commissions_accrued=0,
                failures=[],
                run_time=datetime.utcnow(),
                execution_time_ms=0,
            )

        async with self.async_session_factory() as session:
            core = StorefrontCore(session, ApplicationConfig)
            accrue = AccrueReferralCommission(
                core.uow, core.referrals, core.order_repo, core.retry_attempts
            )
            use_case = RetryReferralCommissions(
                core.uow, core.referrals, accrue, batch_size=self.batch_size
            )

            result = await use_case.execute()

            if result.is_err():
                logger.error(f"Commission retry failed: {result.error.message}")
                raise RuntimeError(f"Commission retry failed: {result.error.message}")

            response = result.value
            if response.failures:
                logger.error(
                    f"Commission still missing for {len(response.failures)} orders: "
                    f"{', '.join(response.failures)}"
                )
            return response

    async def run_forever(self, interval_seconds: int = 900):
        logger.info(f"Starting commission retry with {interval_seconds}s interval")

        while True:
            try:
                result = await self.run_once()
                logger.info(
                    f"Commission retry cycle complete. "
                    f"Checked {result.orders_checked} orders, "
                    f"accrued {result.commissions_accrued} in {result.execution_time_ms}ms"
                )
            except Exception as e:
                logger.error(f"Commission retry cycle failed: {e}")

            await asyncio.sleep(interval_seconds)

    async def shutdown(self):
        await self.engine.dispose()
        logger.info("CommissionRetryWorker shutdown complete")


async def main():
    """
    Usage:
        python -m storefront.worker.commission_retry --once
        python -m storefront.worker.commission_retry --interval 600
    """
    import argparse

    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    parser = argparse.ArgumentParser(description="Referral Commission Retry Worker")
    parser.add_argument("--once", action="store_true", help="Run once and exit")
    parser.add_argument(
        "--interval", type=int, default=int(ApplicationConfig.COMMISSION_RETRY_INTERVAL_SECONDS),
        help="Interval between runs in seconds"
    )
    parser.add_argument("--batch-size", type=int, default=100, help="Orders per run")
    args = parser.parse_args()

    worker = CommissionRetryWorker(batch_size=args.batch_size)

    try:
        if args.once:
            result = await worker.run_once()
            print("Commission retry complete:")
            print(f"  Orders checked: {result.orders_checked}")
            print(f"  Commissions accrued: {result.commissions_accrued}")
            print(f"  Failures: {len(result.failures)}")
        else:
            await worker.run_forever(interval_seconds=args.interval)
    except KeyboardInterrupt:
        logger.info("Received shutdown signal")
    finally:
        await worker.shutdown()


if __name__ == "__main__":
    asyncio.run(main())
