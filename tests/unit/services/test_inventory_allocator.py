"""Unit tests for InventoryAllocator

Tests cover:
- All-or-nothing reservation and shortfalls
- Operator assignment checks
- Idempotent finalization and ownership checks
- Release of an order without held codes
"""

import pytest
from unittest.mock import AsyncMock, MagicMock

from storefront.app.services.inventory_allocator import InventoryAllocator
from storefront.domain.access_code import AccessCode, AccessCodeStatus
from storefront.domain.errors import (
    ConcurrencyConflictError,
    InventoryExhaustedError,
    ValidationError,
)


def make_code(id, status=AccessCodeStatus.AVAILABLE, order_id=None, product_id=7):
    return AccessCode(id=id, product_id=product_id, payload={"code": f"C-{id}"}, status=status, order_id=order_id)


@pytest.fixture
def mock_access_code_repo():
    repo = MagicMock()
    repo.claim_available = AsyncMock(return_value=([1, 2], 2))
    repo.assign = AsyncMock(return_value=0)
    repo.get_by_ids = AsyncMock(return_value=[])
    repo.mark_finalized = AsyncMock(return_value=0)
    repo.release_by_order = AsyncMock(return_value=0)
    return repo


@pytest.fixture
def allocator(mock_access_code_repo):
    return InventoryAllocator(mock_access_code_repo)


@pytest.mark.asyncio
class TestReserve:

    async def test_reserves_requested_quantity(self, allocator, mock_access_code_repo):
        code_ids = await allocator.reserve(product_id=7, quantity=2, order_id=10)

        assert code_ids == [1, 2]
        args = mock_access_code_repo.claim_available.call_args.args
        assert args[:3] == (7, 2, 10)

    async def test_shortfall_raises_with_counts(self, allocator, mock_access_code_repo):
        """
        Given: Only 2 codes are available
        When: Reserving 3
        Then: InventoryExhaustedError carries requested, available and shortfall
        """
        # Arrange
        mock_access_code_repo.claim_available = AsyncMock(return_value=([], 2))

        # Act & Assert
        with pytest.raises(InventoryExhaustedError) as exc_info:
            await allocator.reserve(product_id=7, quantity=3, order_id=10)

        assert exc_info.value.requested == 3
        assert exc_info.value.available == 2
        assert exc_info.value.shortfall == 1

    async def test_quantity_below_one_is_rejected(self, allocator, mock_access_code_repo):
        with pytest.raises(ValidationError):
            await allocator.reserve(product_id=7, quantity=0, order_id=10)

        mock_access_code_repo.claim_available.assert_not_called()

    async def test_lost_claim_propagates(self, allocator, mock_access_code_repo):
        mock_access_code_repo.claim_available = AsyncMock(side_effect=ConcurrencyConflictError("claimed"))

        with pytest.raises(ConcurrencyConflictError):
            await allocator.reserve(product_id=7, quantity=1, order_id=10)


@pytest.mark.asyncio
class TestAssign:

    async def test_assigns_selected_codes(self, allocator, mock_access_code_repo):
        mock_access_code_repo.get_by_ids = AsyncMock(return_value=[make_code(3), make_code(4)])
        mock_access_code_repo.assign = AsyncMock(return_value=2)

        assigned = await allocator.assign(product_id=7, order_id=10, code_ids=[3, 4, 3])

        assert assigned == [3, 4]
        assert mock_access_code_repo.assign.call_args.args[:3] == (7, 10, [3, 4])

    @pytest.mark.parametrize(
        "code, message",
        [
            (make_code(3, product_id=8), "does not belong"),
            (make_code(3, status=AccessCodeStatus.SOLD, order_id=11), "not available"),
        ],
    )
    async def test_unusable_code_is_rejected(self, allocator, mock_access_code_repo, code, message):
        mock_access_code_repo.get_by_ids = AsyncMock(return_value=[code])

        with pytest.raises(ValidationError, match=message):
            await allocator.assign(product_id=7, order_id=10, code_ids=[3])

        mock_access_code_repo.assign.assert_not_called()

    async def test_unknown_code_is_rejected(self, allocator):
        with pytest.raises(ValidationError, match="not found"):
            await allocator.assign(product_id=7, order_id=10, code_ids=[99])

    async def test_code_taken_between_check_and_update(self, allocator, mock_access_code_repo):
        mock_access_code_repo.get_by_ids = AsyncMock(return_value=[make_code(3), make_code(4)])
        mock_access_code_repo.assign = AsyncMock(return_value=1)

        with pytest.raises(ConcurrencyConflictError):
            await allocator.assign(product_id=7, order_id=10, code_ids=[3, 4])


@pytest.mark.asyncio
class TestFinalizeAndRelease:

    async def test_finalizes_reserved_codes_as_sold(self, allocator, mock_access_code_repo):
        mock_access_code_repo.get_by_ids = AsyncMock(
            return_value=[make_code(1, AccessCodeStatus.RESERVED, 10), make_code(2, AccessCodeStatus.RESERVED, 10)]
        )
        mock_access_code_repo.mark_finalized = AsyncMock(return_value=2)

        updated = await allocator.finalize(order_id=10, code_ids=[1, 2])

        assert updated == 2
        args = mock_access_code_repo.mark_finalized.call_args.args
        assert args[:3] == (10, [1, 2], AccessCodeStatus.SOLD)

    async def test_second_finalize_is_noop(self, allocator, mock_access_code_repo):
        """
        Given: Both codes of the order are already sold
        When: Finalizing again
        Then: Nothing is updated and no error is raised
        """
        mock_access_code_repo.get_by_ids = AsyncMock(
            return_value=[make_code(1, AccessCodeStatus.SOLD, 10), make_code(2, AccessCodeStatus.SOLD, 10)]
        )

        updated = await allocator.finalize(order_id=10, code_ids=[1, 2])

        assert updated == 0
        mock_access_code_repo.mark_finalized.assert_not_called()

    async def test_code_of_another_order_is_rejected(self, allocator, mock_access_code_repo):
        mock_access_code_repo.get_by_ids = AsyncMock(return_value=[make_code(1, AccessCodeStatus.RESERVED, 11)])

        with pytest.raises(ValidationError, match="not reserved for this order"):
            await allocator.finalize(order_id=10, code_ids=[1])

        mock_access_code_repo.mark_finalized.assert_not_called()

    async def test_available_code_is_rejected(self, allocator, mock_access_code_repo):
        mock_access_code_repo.get_by_ids = AsyncMock(return_value=[make_code(1)])

        with pytest.raises(ValidationError):
            await allocator.finalize(order_id=10, code_ids=[1])

    async def test_release_without_held_codes(self, allocator, mock_access_code_repo):
        assert await allocator.release(order_id=10) == 0
        mock_access_code_repo.release_by_order.assert_called_once_with(10)
