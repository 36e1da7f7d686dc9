"""Order Repository Interface"""

from abc import ABC, abstractmethod
from typing import List, Optional
from storefront.domain.order import Order


class OrderRepository(ABC):

    @abstractmethod
    async def create(self, order: Order) -> Order:
        pass

    @abstractmethod
    async def update(self, order: Order) -> Order:
        pass

    @abstractmethod
    async def get_by_id(self, order_id: int) -> Optional[Order]:
        pass

    @abstractmethod
    async def get_by_order_number(self, order_number: str, for_update: bool = False) -> Optional[Order]:
        pass

    @abstractmethod
    async def get_completed_without_commission(self, limit: int = 100) -> List[Order]:
        """
        Completed orders whose owner has a referrer but no referral
        commission transaction references the order yet
        """
        pass
