"""FulfillOrder Use Case"""

from storefront.libs.result import Result
from storefront.domain.errors import InventoryExhaustedError
from .base import OrderUseCase
from .dtos import FulfillOrderCommandDTO, OrderResponseDTO


class FulfillOrder(OrderUseCase):
    """
    Use Case: Deliver access codes for a paid automatic order

    A shortage keeps the order processing; the inventory_shortage timeline
    event is committed and INVENTORY_EXHAUSTED returned.
    """

    error_code = "FULFILL_ORDER_FAILED"
    error_message = "Failed to fulfill order"
    commit_on = (InventoryExhaustedError,)

    async def execute(self, command: FulfillOrderCommandDTO) -> Result[OrderResponseDTO]:
        return await self._run(lambda: self.fulfillment.fulfill(command.order_number, command.actor))
