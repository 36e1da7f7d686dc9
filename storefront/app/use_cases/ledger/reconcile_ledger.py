"""ReconcileLedger Use Case

Checks the ledger for states that core operations must never produce or
that need an operator: negative balances, deposits stuck in pending, and
completed orders whose referral commission was never accrued.
"""

import logging
import time
from datetime import datetime, timedelta
from typing import Optional
from storefront.libs.result import Result, Return, Error
from storefront.app.repositories.order_repository import OrderRepository
from storefront.app.repositories.transaction_repository import TransactionRepository
from storefront.app.services.notification_service import NotificationService
from storefront.app.services.unit_of_work import UnitOfWork
from storefront.domain.transaction import TransactionKind
from .dtos import NegativeBalanceDTO, ReconciliationResultDTO, StaleDepositDTO

logger = logging.getLogger(__name__)


class ReconcileLedger:
    """
    Use Case: Reconcile ledger state

    Business Rules:
    1. Does NOT modify any data (read-only reconciliation)
    2. Stale pending deposits (including partially paid ones) are reported,
       never auto-failed; a late terminal callback may still settle them
    3. Operators are alerted when anything is found

    Flow:
    1. Sum completed transactions per owner, flag negative balances
    2. List pending deposits older than the stale threshold
    3. Count completed orders missing their referral commission
    4. Return reconciliation result
    """

    def __init__(
        self,
        uow: UnitOfWork,
        transaction_repo: TransactionRepository,
        order_repo: OrderRepository,
        notification_service: Optional[NotificationService] = None,
        stale_deposit_hours: int = 24,
        scan_limit: int = 500,
    ):
        self.uow = uow
        self.transaction_repo = transaction_repo
        self.order_repo = order_repo
        self.notification_service = notification_service
        self.stale_deposit_hours = stale_deposit_hours
        self.scan_limit = scan_limit

    async def execute(self) -> Result[ReconciliationResultDTO]:
        start_time = time.time()
        reconciliation_time = datetime.utcnow()

        try:
            logger.info("Starting ledger reconciliation")

            # Step 1: Negative balances
            balances = await self.transaction_repo.get_completed_balances()
            negative_balances = [
                NegativeBalanceDTO(owner_id=owner_id, balance=balance)
                for owner_id, balance in sorted(balances.items())
                if balance < 0
            ]
            for item in negative_balances:
                logger.error(f"Negative balance for owner {item.owner_id}: {item.balance}")

            # Step 2: Stale pending deposits
            cutoff = reconciliation_time - timedelta(hours=self.stale_deposit_hours)
            stale = await self.transaction_repo.get_stale_pending(
                TransactionKind.DEPOSIT, cutoff, self.scan_limit
            )
            stale_deposits = [
                StaleDepositDTO(
                    transaction_id=t.transaction_id,
                    owner_id=t.owner_id,
                    amount=t.amount,
                    gateway_status=(t.details or {}).get("payment_status"),
                    created_at=t.created_at,
                )
                for t in stale
            ]
            for item in stale_deposits:
                logger.warning(
                    f"Deposit {item.transaction_id} of {item.owner_id} pending since "
                    f"{item.created_at.isoformat()} (gateway status: {item.gateway_status})"
                )

            # Step 3: Orders missing their commission
            unaccrued = await self.order_repo.get_completed_without_commission(self.scan_limit)
            for order in unaccrued:
                logger.warning(f"Order {order.order_number} completed without referral commission")

            # Step 4: Build response
            discrepancies = len(negative_balances) + len(stale_deposits) + len(unaccrued)
            execution_time_ms = int((time.time() - start_time) * 1000)

            response = ReconciliationResultDTO(
                accounts_checked=len(balances),
                negative_balances=negative_balances,
                stale_deposits=stale_deposits,
                orders_missing_commission=len(unaccrued),
                discrepancies_found=discrepancies,
                reconciliation_time=reconciliation_time,
                execution_time_ms=execution_time_ms,
            )

            if discrepancies:
                logger.warning(
                    f"Reconciliation complete. Found {discrepancies} discrepancies "
                    f"across {len(balances)} accounts in {execution_time_ms}ms"
                )
                if self.notification_service:
                    await self.notification_service.send_operator_alert(
                        "ledger_discrepancy",
                        f"Ledger reconciliation found {discrepancies} discrepancies",
                        {
                            "negative_balances": len(negative_balances),
                            "stale_deposits": len(stale_deposits),
                            "orders_missing_commission": len(unaccrued),
                        },
                    )
            else:
                logger.info(
                    f"Reconciliation complete. All {len(balances)} accounts consistent "
                    f"in {execution_time_ms}ms"
                )

            return Return.ok(response)

        except Exception as e:
            logger.error(f"Reconciliation failed: {e}")
            await self.uow.rollback()
            return Return.err(
                Error(
                    code="RECONCILIATION_FAILED",
                    message="Failed to reconcile ledger",
                    reason=str(e),
                )
            )
