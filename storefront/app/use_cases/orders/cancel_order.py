"""CancelOrder Use Case"""

from storefront.libs.result import Result
from .base import OrderUseCase
from .dtos import CancelOrderCommandDTO, OrderResponseDTO


class CancelOrder(OrderUseCase):
    """Cancel a pending, unpaid order and release its codes"""

    error_code = "CANCEL_ORDER_FAILED"
    error_message = "Failed to cancel order"

    async def execute(self, command: CancelOrderCommandDTO) -> Result[OrderResponseDTO]:
        return await self._run(
            lambda: self.fulfillment.cancel(command.order_number, command.actor, command.reason)
        )
