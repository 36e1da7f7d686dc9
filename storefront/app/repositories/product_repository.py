"""Product Repository Interface"""

from abc import ABC, abstractmethod
from typing import Optional
from storefront.domain.product import Product


class ProductRepository(ABC):

    @abstractmethod
    async def get_by_id(self, product_id: int) -> Optional[Product]:
        pass

    @abstractmethod
    async def create(self, product: Product) -> Product:
        pass
