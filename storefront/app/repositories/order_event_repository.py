"""Order Event Repository Interface"""

from abc import ABC, abstractmethod
from typing import List
from storefront.domain.order_event import OrderEvent


class OrderEventRepository(ABC):

    @abstractmethod
    async def create(self, event: OrderEvent) -> OrderEvent:
        pass

    @abstractmethod
    async def get_by_order_id(self, order_id: int) -> List[OrderEvent]:
        """Timeline of an order, oldest first"""
        pass
