"""AdjustBalance Use Case

Operator credit or debit of an owner's balance (goodwill credits, initial
balances, corrections). The adjustment is recorded and completed in one
step; a debit the balance does not cover is kept as a failed row.
"""

import logging
from storefront.libs.result import Result, Return, Error
from storefront.app.repositories.account_repository import AccountRepository
from storefront.app.repositories.transaction_repository import TransactionRepository
from storefront.app.services.ledger import Ledger
from storefront.app.services.unit_of_work import UnitOfWork
from storefront.app.use_cases.common import to_error, with_concurrency_retry
from storefront.app.use_cases.ledger.dtos import AdjustBalanceCommandDTO, TransactionDTO
from storefront.domain.errors import InsufficientFundsError, NotFoundError, StorefrontError
from storefront.domain.transaction import TransactionKind

logger = logging.getLogger(__name__)


class AdjustBalance:
    """
    Use Case: Adjust an owner's balance by hand

    Flow:
    1. Require an open account
    2. Record a pending adjustment (a replayed key returns the first one)
    3. Complete it; debits must be covered by the balance
    4. Commit
    """

    def __init__(
        self,
        uow: UnitOfWork,
        ledger: Ledger,
        account_repo: AccountRepository,
        transaction_repo: TransactionRepository,
        retry_attempts: int = 3,
    ):
        self.uow = uow
        self.ledger = ledger
        self.account_repo = account_repo
        self.transaction_repo = transaction_repo
        self.retry_attempts = retry_attempts

    async def execute(self, command: AdjustBalanceCommandDTO) -> Result[TransactionDTO]:
        actor = command.actor or "operator"

        async def operation() -> TransactionDTO:
            # Step 1: Adjustments never open accounts
            account = await self.account_repo.get_by_owner_id(command.owner_id)
            if account is None:
                raise NotFoundError(f"No account found for owner {command.owner_id}")

            # Step 2: Record
            adjustment = await self.ledger.record_pending(
                command.owner_id,
                TransactionKind.ADJUSTMENT,
                command.amount,
                idempotency_key=command.idempotency_key,
                details={"reason": command.reason, "actor": actor},
                description=command.reason,
            )

            # Step 3: Complete (skipped for a replay that is already settled)
            if adjustment.is_pending:
                await self.ledger.complete(adjustment.id)

            settled = await self.transaction_repo.get_by_id(adjustment.id)
            response = TransactionDTO.from_entity(settled)

            # Step 4: Commit
            await self.uow.commit()

            logger.info(
                f"Balance of {command.owner_id} adjusted by {command.amount} "
                f"({settled.transaction_id}, {settled.status.value}) by {actor}: {command.reason}"
            )
            return response

        try:
            return Return.ok(await with_concurrency_retry(self.uow, self.retry_attempts, operation))
        except InsufficientFundsError as e:
            # The uncovered debit stays recorded as failed
            await self.uow.commit()
            return Return.err(to_error(e))
        except StorefrontError as e:
            await self.uow.rollback()
            return Return.err(to_error(e))
        except Exception as e:
            await self.uow.rollback()
            return Return.err(
                Error(
                    code="ADJUST_BALANCE_FAILED",
                    message="Failed to adjust balance",
                    reason=str(e),
                )
            )
