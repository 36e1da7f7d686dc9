"""Inventory Allocator

Reserves, finalizes and releases access codes. All state changes go through
guarded bulk UPDATEs on the repository, so a code can never be handed to two
orders even when claims race.
"""

import logging
from datetime import datetime
from typing import List, Sequence
from storefront.app.repositories.access_code_repository import AccessCodeRepository
from storefront.domain.access_code import AccessCode, AccessCodeStatus
from storefront.domain.errors import (
    ConcurrencyConflictError,
    InventoryExhaustedError,
    ValidationError,
)

logger = logging.getLogger(__name__)


class InventoryAllocator:
    """
    Per-product pool of access codes

    Lifecycle: available -> reserved -> sold | delivered, reserved -> available
    """

    def __init__(self, access_code_repo: AccessCodeRepository):
        self.access_code_repo = access_code_repo

    async def reserve(self, product_id: int, quantity: int, order_id: int) -> List[int]:
        """
        Reserve `quantity` codes for an order, all or nothing

        Raises:
            InventoryExhaustedError: Fewer than `quantity` codes available
            ConcurrencyConflictError: A concurrent claim won a selected code
        """
        if quantity < 1:
            raise ValidationError("Quantity must be at least 1", reason=f"quantity={quantity}")

        code_ids, available = await self.access_code_repo.claim_available(
            product_id, quantity, order_id, datetime.utcnow()
        )
        if len(code_ids) < quantity:
            logger.warning(
                f"Inventory shortfall for product {product_id}: requested {quantity}, available {available}"
            )
            raise InventoryExhaustedError(product_id, quantity, available)

        logger.info(f"Reserved {len(code_ids)} codes of product {product_id} for order {order_id}")
        return code_ids

    async def assign(self, product_id: int, order_id: int, code_ids: Sequence[int]) -> List[int]:
        """
        Reserve specific codes chosen by an operator, all or nothing

        Raises:
            ValidationError: Unknown code, wrong product, or code not available
            ConcurrencyConflictError: A code was claimed between check and update
        """
        wanted = list(dict.fromkeys(code_ids))
        if not wanted:
            raise ValidationError("At least one access code must be selected")

        codes = await self.access_code_repo.get_by_ids(wanted)
        found = {code.id: code for code in codes}
        for code_id in wanted:
            code = found.get(code_id)
            if code is None:
                raise ValidationError(f"Access code {code_id} not found")
            if code.product_id != product_id:
                raise ValidationError(
                    f"Access code {code_id} does not belong to product {product_id}",
                    reason=f"code_product_id={code.product_id}",
                )
            if code.status != AccessCodeStatus.AVAILABLE:
                raise ValidationError(
                    f"Access code {code_id} is not available",
                    reason=f"status={code.status.value}",
                )

        assigned = await self.access_code_repo.assign(product_id, order_id, wanted, datetime.utcnow())
        if assigned != len(wanted):
            raise ConcurrencyConflictError(
                f"Access codes for product {product_id} were claimed concurrently",
                reason=f"requested={len(wanted)}, assigned={assigned}",
            )

        logger.info(f"Assigned codes {wanted} of product {product_id} to order {order_id}")
        return wanted

    async def finalize(self, order_id: int, code_ids: Sequence[int], delivered: bool = False) -> int:
        """
        Mark the order's reserved codes as sold (or delivered)

        Idempotent: codes already finalized for this order are skipped.

        Returns:
            Number of codes moved out of reserved

        Raises:
            ValidationError: A code is unknown, still available, or held by another order
        """
        wanted = list(dict.fromkeys(code_ids))
        codes = await self.access_code_repo.get_by_ids(wanted)
        if len(codes) != len(wanted):
            raise ValidationError(
                "Unknown access code in finalization request",
                reason=f"requested={wanted}, found={[c.id for c in codes]}",
            )

        for code in codes:
            if code.order_id != order_id:
                raise ValidationError(
                    f"Access code {code.id} is not reserved for this order",
                    reason=f"code_order_id={code.order_id}, status={code.status.value}",
                )

        to_finalize = [code.id for code in codes if code.status == AccessCodeStatus.RESERVED]
        if not to_finalize:
            return 0

        status = AccessCodeStatus.DELIVERED if delivered else AccessCodeStatus.SOLD
        updated = await self.access_code_repo.mark_finalized(
            order_id, to_finalize, status, datetime.utcnow()
        )
        if updated != len(to_finalize):
            raise ConcurrencyConflictError(
                f"Access codes of order {order_id} changed during finalization",
                reason=f"expected={len(to_finalize)}, updated={updated}",
            )

        logger.info(f"Finalized {updated} codes for order {order_id} as {status.value}")
        return updated

    async def release(self, order_id: int) -> int:
        """Return all reserved codes of the order to the pool; no-op when none"""
        released = await self.access_code_repo.release_by_order(order_id)
        if released:
            logger.info(f"Released {released} reserved codes of order {order_id}")
        return released

    async def codes_for_order(self, order_id: int) -> List[AccessCode]:
        return await self.access_code_repo.get_by_order_id(order_id)
