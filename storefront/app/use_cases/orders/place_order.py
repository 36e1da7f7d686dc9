"""PlaceOrder Use Case"""

from storefront.libs.result import Result
from .base import OrderUseCase
from .dtos import OrderResponseDTO, PlaceOrderCommandDTO


class PlaceOrder(OrderUseCase):
    """
    Use Case: Create a pending order

    Automatic-delivery orders try to hold their codes right away; a shortage
    does not prevent placing the order.
    """

    error_code = "PLACE_ORDER_FAILED"
    error_message = "Failed to place order"

    async def execute(self, command: PlaceOrderCommandDTO) -> Result[OrderResponseDTO]:
        return await self._run(
            lambda: self.fulfillment.place_order(
                command.owner_id,
                command.product_id,
                command.quantity,
                command.discount_amount,
                actor=command.owner_id,
            )
        )
