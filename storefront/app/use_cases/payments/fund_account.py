"""FundAccount Use Case

Records a pending deposit and opens a hosted gateway invoice for it.
"""

import logging
from storefront.libs.result import Result, Return, Error
from storefront.app.services.ledger import Ledger
from storefront.app.services.payment_reconciler import PaymentReconciler
from storefront.app.services.unit_of_work import UnitOfWork
from storefront.app.use_cases.common import to_error, with_concurrency_retry
from storefront.domain.errors import GatewayError, StorefrontError
from .dtos import FundAccountCommandDTO, InvoiceResponseDTO

logger = logging.getLogger(__name__)


class FundAccount:
    """
    Use Case: Fund account balance via crypto invoice

    Business Rules:
    1. Amount must be within the configured deposit range
    2. The deposit is recorded before the gateway is called
    3. Gateway failure keeps the pending deposit (committed) and returns
       GATEWAY_ERROR; nothing is credited until a confirming callback
    """

    def __init__(
        self,
        uow: UnitOfWork,
        ledger: Ledger,
        reconciler: PaymentReconciler,
        retry_attempts: int = 3,
    ):
        self.uow = uow
        self.ledger = ledger
        self.reconciler = reconciler
        self.retry_attempts = retry_attempts

    async def execute(self, command: FundAccountCommandDTO) -> Result[InvoiceResponseDTO]:
        async def operation() -> InvoiceResponseDTO:
            # Step 1: Make sure the owner has an account
            await self.ledger.get_or_create_account(command.owner_id)

            # Step 2: Pending deposit + hosted invoice
            handle = await self.reconciler.create_invoice(
                command.owner_id, command.amount, command.order_ref
            )

            # Step 3: Commit
            await self.uow.commit()
            return InvoiceResponseDTO(**handle.model_dump())

        try:
            return Return.ok(await with_concurrency_retry(self.uow, self.retry_attempts, operation))
        except GatewayError as e:
            await self.uow.commit()
            return Return.err(to_error(e))
        except StorefrontError as e:
            await self.uow.rollback()
            return Return.err(to_error(e))
        except Exception as e:
            await self.uow.rollback()
            return Return.err(
                Error(
                    code="FUND_ACCOUNT_FAILED",
                    message="Failed to create funding invoice",
                    reason=str(e),
                )
            )
