"""Get Order Use Case

Order detail with its timeline.
"""

from storefront.libs.result import Result, Return
from storefront.app.repositories.order_event_repository import OrderEventRepository
from storefront.app.repositories.order_repository import OrderRepository
from storefront.app.services.inventory_allocator import InventoryAllocator
from storefront.app.use_cases.common import to_error
from storefront.domain.errors import NotFoundError
from .dtos import OrderResponseDTO


class GetOrder:

    def __init__(
        self,
        order_repo: OrderRepository,
        event_repo: OrderEventRepository,
        allocator: InventoryAllocator,
    ):
        self.order_repo = order_repo
        self.event_repo = event_repo
        self.allocator = allocator

    async def execute(self, order_number: str) -> Result[OrderResponseDTO]:
        order = await self.order_repo.get_by_order_number(order_number)
        if order is None:
            return Return.err(to_error(NotFoundError(f"Order {order_number} not found")))

        codes = await self.allocator.codes_for_order(order.id)
        events = await self.event_repo.get_by_order_id(order.id)
        return Return.ok(OrderResponseDTO.from_entity(order, codes, events))
