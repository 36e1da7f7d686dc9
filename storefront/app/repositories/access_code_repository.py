"""Access Code Repository Interface

Exposes the atomic inventory operations; no caller ever reads a code and
then marks it in a separate step.
"""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import List, Sequence
from storefront.domain.access_code import AccessCode, AccessCodeStatus


class AccessCodeRepository(ABC):

    @abstractmethod
    async def claim_available(
        self, product_id: int, quantity: int, order_id: int, reserved_at: datetime
    ) -> tuple[list[int], int]:
        """
        Atomically reserve `quantity` available codes of a product for an order

        All-or-nothing: when fewer than `quantity` codes are available nothing
        is claimed.

        Returns:
            Tuple of (claimed code ids, number of codes that were available)

        Raises:
            ConcurrencyConflictError: If a concurrent claim took a selected code
        """
        pass

    @abstractmethod
    async def assign(
        self, product_id: int, order_id: int, code_ids: Sequence[int], reserved_at: datetime
    ) -> int:
        """
        Reserve specific available codes of a product for an order

        Returns:
            Number of codes reserved (only codes still available match)
        """
        pass

    @abstractmethod
    async def mark_finalized(
        self,
        order_id: int,
        code_ids: Sequence[int],
        status: AccessCodeStatus,
        finalized_at: datetime,
    ) -> int:
        """Move reserved codes of the order to sold/delivered; returns rows updated"""
        pass

    @abstractmethod
    async def release_by_order(self, order_id: int) -> int:
        """Return every reserved code of the order to available; returns rows updated"""
        pass

    @abstractmethod
    async def get_by_order_id(self, order_id: int) -> List[AccessCode]:
        pass

    @abstractmethod
    async def get_by_ids(self, code_ids: Sequence[int]) -> List[AccessCode]:
        pass

    @abstractmethod
    async def create(self, access_code: AccessCode) -> AccessCode:
        pass
