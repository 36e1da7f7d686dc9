"""Delivery File Repository Interface"""

from abc import ABC, abstractmethod
from typing import List
from storefront.domain.delivery_file import DeliveryFile


class DeliveryFileRepository(ABC):

    @abstractmethod
    async def create(self, delivery_file: DeliveryFile) -> DeliveryFile:
        pass

    @abstractmethod
    async def get_by_order_id(self, order_id: int) -> List[DeliveryFile]:
        pass

    @abstractmethod
    async def count_by_order_id(self, order_id: int) -> int:
        pass
