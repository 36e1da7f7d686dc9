"""Ledger Reconciliation Background Worker

Periodically checks derived balances and stale deposits and reports what it
finds. Nothing is modified. Can be run as a standalone script or integrated
with a scheduler.
"""

import asyncio
import logging
from datetime import datetime
from typing import Optional
from sqlalchemy.ext.asyncio import create_async_engine
from sqlalchemy.orm import sessionmaker
from sqlmodel.ext.asyncio.session import AsyncSession

from config import ApplicationConfig
from storefront.adapter.repositories import (
    SqlAlchemyOrderRepository,
    SqlAlchemyTransactionRepository,
)
from storefront.adapter.services.notification_service import create_notification_service
from storefront.adapter.services.unit_of_work import SqlAlchemyUnitOfWork
from storefront.app.services.notification_service import NotificationService
from storefront.app.use_cases.ledger import ReconcileLedger, ReconciliationResultDTO

logger = logging.getLogger(__name__)


class LedgerReconcilerWorker:
    """
    Background worker for ledger reconciliation

    Features:
    - Reports owners whose derived balance is negative
    - Reports deposits pending longer than STALE_DEPOSIT_HOURS
    - Counts completed orders still missing their referral commission
    - Can run once or continuously

    Usage:
        # Run once
        worker = LedgerReconcilerWorker()
        result = await worker.run_once()

        # Run continuously
        worker = LedgerReconcilerWorker()
        await worker.run_forever(interval_seconds=86400)  # Daily
    """

    def __init__(
        self,
        db_uri: Optional[str] = None,
        notification_service: Optional[NotificationService] = None,
    ):
        """
        Initialize the worker

        Args:
            db_uri: Database URI (defaults to ApplicationConfig.DB_URI)
            notification_service: Operator alerts (defaults to the configured webhook)
        """
        self.db_uri = db_uri or ApplicationConfig.DB_URI

        self.engine = create_async_engine(self.db_uri, echo=False, future=True)
        self.async_session_factory = sessionmaker(
            self.engine, class_=AsyncSession, expire_on_commit=False, autoflush=False
        )
        self.notification_service = notification_service or create_notification_service(
            ApplicationConfig.OPERATOR_NOTIFICATION_WEBHOOK
        )

        logger.info("LedgerReconcilerWorker initialized")

    async def run_once(self) -> ReconciliationResultDTO:
        if not ApplicationConfig.RECONCILIATION_ENABLED:
            logger.info("Ledger reconciliation is disabled, skipping")
            return ReconciliationResultDTO(
                accounts_checked=0,
                negative_balances=[],
                stale_deposits=[],
                orders_missing_commission=0,
                discrepancies_found=0,
                reconciliation_time=datetime.utcnow(),
                execution_time_ms=0,
            )

        async with self.async_session_factory() as session:
            use_case = ReconcileLedger(
                uow=SqlAlchemyUnitOfWork(session),
                transaction_repo=SqlAlchemyTransactionRepository(session),
                order_repo=SqlAlchemyOrderRepository(session),
                notification_service=self.notification_service,
                stale_deposit_hours=int(ApplicationConfig.STALE_DEPOSIT_HOURS),
            )

            result = await use_case.execute()

            if result.is_err():
                logger.error(f"Reconciliation failed: {result.error.message}")
                raise RuntimeError(f"Reconciliation failed: {result.error.message}")

            response = result.value

            if response.discrepancies_found > 0:
                logger.error(f"ALERT: {response.discrepancies_found} ledger discrepancies found!")
                for b in response.negative_balances:
                    logger.error(f"  - Owner {b.owner_id}: negative balance {b.balance}")
                for d in response.stale_deposits:
                    logger.error(
                        f"  - Deposit {d.transaction_id} of {d.amount} for {d.owner_id} "
                        f"pending since {d.created_at.isoformat()} (gateway: {d.gateway_status})"
                    )

            return response

    async def run_forever(self, interval_seconds: int = 86400):
        logger.info(f"Starting continuous ledger reconciliation with {interval_seconds}s interval")

        while True:
            try:
                result = await self.run_once()
                logger.info(
                    f"Reconciliation cycle complete. "
                    f"Checked {result.accounts_checked} accounts, "
                    f"found {result.discrepancies_found} discrepancies "
                    f"in {result.execution_time_ms}ms"
                )
            except Exception as e:
                logger.error(f"Reconciliation cycle failed: {e}")

            await asyncio.sleep(interval_seconds)

    async def shutdown(self):
        """Cleanup resources"""
        await self.engine.dispose()
        logger.info("LedgerReconcilerWorker shutdown complete")


async def main():
    """
    Entry point for running the worker as a standalone script

    Usage:
        # Run once
        python -m storefront.worker.ledger_reconciler --once

        # Run continuously with custom interval (in seconds)
        python -m storefront.worker.ledger_reconciler --interval 3600
    """
    import argparse

    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    parser = argparse.ArgumentParser(description="Ledger Reconciliation Worker")
    parser.add_argument("--once", action="store_true", help="Run once and exit")
    parser.add_argument(
        "--interval", type=int, default=int(ApplicationConfig.RECONCILIATION_INTERVAL_SECONDS),
        help="Interval between runs in seconds (default: RECONCILIATION_INTERVAL_SECONDS)"
    )
    args = parser.parse_args()

    worker = LedgerReconcilerWorker()

    try:
        if args.once:
            result = await worker.run_once()
            print("Reconciliation complete:")
            print(f"  Accounts checked: {result.accounts_checked}")
            print(f"  Negative balances: {len(result.negative_balances)}")
            print(f"  Stale deposits: {len(result.stale_deposits)}")
            print(f"  Orders missing commission: {result.orders_missing_commission}")
            print(f"  Execution time: {result.execution_time_ms}ms")
        else:
            await worker.run_forever(interval_seconds=args.interval)
    except KeyboardInterrupt:
        logger.info("Received shutdown signal")
    finally:
        await worker.shutdown()


if __name__ == "__main__":
    asyncio.run(main())
