"""RefreshPaymentStatus Use Case

Polls the gateway for a deposit and applies the answer exactly like a pushed
notification.
"""

from storefront.libs.result import Result, Return, Error
from storefront.app.services.payment_reconciler import PaymentReconciler
from storefront.app.services.unit_of_work import UnitOfWork
from storefront.app.use_cases.common import to_error, with_concurrency_retry
from storefront.domain.errors import StorefrontError
from .dtos import PaymentStatusResponseDTO
from .get_payment_status import to_status_dto


class RefreshPaymentStatus:

    def __init__(self, uow: UnitOfWork, reconciler: PaymentReconciler, retry_attempts: int = 3):
        self.uow = uow
        self.reconciler = reconciler
        self.retry_attempts = retry_attempts

    async def execute(self, payment_id: str) -> Result[PaymentStatusResponseDTO]:
        async def operation() -> PaymentStatusResponseDTO:
            snapshot = await self.reconciler.refresh_status(payment_id)
            await self.uow.commit()
            return to_status_dto(snapshot)

        try:
            return Return.ok(await with_concurrency_retry(self.uow, self.retry_attempts, operation))
        except StorefrontError as e:
            await self.uow.rollback()
            return Return.err(to_error(e))
        except Exception as e:
            await self.uow.rollback()
            return Return.err(
                Error(
                    code="REFRESH_PAYMENT_FAILED",
                    message="Failed to refresh payment status",
                    reason=str(e),
                )
            )
