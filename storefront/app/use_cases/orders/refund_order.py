"""RefundOrder Use Case"""

from storefront.libs.result import Result
from .base import OrderUseCase
from .dtos import OrderResponseDTO, RefundOrderCommandDTO


class RefundOrder(OrderUseCase):
    """
    Use Case: Refund a paid order to the owner's balance

    Business Rules:
    1. 0 < amount <= net_amount - refunded_amount
    2. Orders not yet completed can only be refunded in full
    3. Delivered credentials are not reclaimed
    """

    error_code = "REFUND_ORDER_FAILED"
    error_message = "Failed to refund order"

    async def execute(self, command: RefundOrderCommandDTO) -> Result[OrderResponseDTO]:
        return await self._run(
            lambda: self.fulfillment.refund(
                command.order_number, command.amount, command.actor, command.reason
            )
        )
