"""Get Payment Status Use Case"""

from storefront.libs.result import Result, Return
from storefront.app.services.payment_reconciler import PaymentReconciler, StatusSnapshot
from storefront.app.use_cases.common import to_error
from storefront.domain.errors import NotFoundError
from .dtos import PaymentStatusResponseDTO


class GetPaymentStatus:
    """
    Read the state of a deposit from the ledger (no gateway call)
    """

    def __init__(self, reconciler: PaymentReconciler):
        self.reconciler = reconciler

    async def execute(self, payment_id: str) -> Result[PaymentStatusResponseDTO]:
        try:
            snapshot = await self.reconciler.get_status(payment_id)
        except NotFoundError as e:
            return Return.err(to_error(e))
        return Return.ok(to_status_dto(snapshot))


def to_status_dto(snapshot: StatusSnapshot) -> PaymentStatusResponseDTO:
    return PaymentStatusResponseDTO(**snapshot.model_dump())
