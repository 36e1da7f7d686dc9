"""SettleTransaction Use Case

Operator completes, fails or cancels a pending referral commission or payout
request. Deposits are settled by the payment gateway, purchases and refunds
by the order flow and adjustments when they are recorded, so those kinds are
refused here.
"""

import logging
from storefront.libs.result import Result, Return, Error
from storefront.app.repositories.transaction_repository import TransactionRepository
from storefront.app.services.ledger import Ledger
from storefront.app.services.unit_of_work import UnitOfWork
from storefront.app.use_cases.common import to_error, with_concurrency_retry
from storefront.app.use_cases.ledger.dtos import (
    SettlementAction,
    SettleTransactionCommandDTO,
    TransactionDTO,
)
from storefront.domain.errors import (
    InsufficientFundsError,
    NotFoundError,
    StorefrontError,
    ValidationError,
)
from storefront.domain.transaction import TransactionKind

logger = logging.getLogger(__name__)

SETTLEABLE_KINDS = frozenset({TransactionKind.REFERRAL_COMMISSION, TransactionKind.PAYOUT_REQUEST})


class SettleTransaction:
    """
    Use Case: Settle a pending transaction by hand

    Flow:
    1. Look up the transaction by reference
    2. Refuse kinds owned by the gateway or the order flow
    3. Apply the ledger transition and commit
    """

    def __init__(
        self,
        uow: UnitOfWork,
        ledger: Ledger,
        transaction_repo: TransactionRepository,
        retry_attempts: int = 3,
    ):
        self.uow = uow
        self.ledger = ledger
        self.transaction_repo = transaction_repo
        self.retry_attempts = retry_attempts

    async def execute(self, command: SettleTransactionCommandDTO) -> Result[TransactionDTO]:
        async def operation() -> TransactionDTO:
            transaction = await self.transaction_repo.get_by_reference(command.transaction_id)
            if transaction is None:
                raise NotFoundError(f"Transaction {command.transaction_id} not found")
            if transaction.kind not in SETTLEABLE_KINDS:
                raise ValidationError(
                    f"{transaction.kind.value} transactions cannot be settled manually",
                    reason=f"transaction_id={transaction.transaction_id}",
                )

            reason = command.reason or f"settled_by_{command.actor or 'operator'}"
            if command.action == SettlementAction.COMPLETE:
                await self.ledger.complete(transaction.id)
            elif command.action == SettlementAction.FAIL:
                await self.ledger.fail(transaction.id, reason)
            else:
                await self.ledger.cancel(transaction.id, reason)

            settled = await self.transaction_repo.get_by_id(transaction.id)
            response = TransactionDTO.from_entity(settled)
            await self.uow.commit()

            logger.info(
                f"Transaction {settled.transaction_id} settled as {settled.status.value} "
                f"by {command.actor or 'operator'}"
            )
            return response

        try:
            return Return.ok(await with_concurrency_retry(self.uow, self.retry_attempts, operation))
        except InsufficientFundsError as e:
            # The debit was marked failed; keep that
            await self.uow.commit()
            return Return.err(to_error(e))
        except StorefrontError as e:
            await self.uow.rollback()
            return Return.err(to_error(e))
        except Exception as e:
            await self.uow.rollback()
            return Return.err(
                Error(
                    code="SETTLE_TRANSACTION_FAILED",
                    message="Failed to settle transaction",
                    reason=str(e),
                )
            )
