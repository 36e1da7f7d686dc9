"""SQLAlchemy implementation of AccessCodeRepository

Reservation is a single claim: candidate rows are selected FOR UPDATE SKIP
LOCKED and flipped with an UPDATE guarded on status = 'available'. If the
guarded UPDATE touches fewer rows than were selected, another claim won and
the caller's unit of work must be rolled back and retried.
"""

from datetime import datetime
from typing import List, Sequence
from sqlalchemy import update
from sqlmodel import select
from sqlmodel.ext.asyncio.session import AsyncSession
from storefront.app.repositories.access_code_repository import AccessCodeRepository
from storefront.domain.access_code import AccessCode, AccessCodeStatus
from storefront.domain.errors import ConcurrencyConflictError


class SqlAlchemyAccessCodeRepository(AccessCodeRepository):
    """
    SQLAlchemy implementation of AccessCodeRepository

    Bulk UPDATEs skip session synchronization; every read therefore uses
    populate_existing so callers never see a stale identity-map copy.
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    async def claim_available(
        self, product_id: int, quantity: int, order_id: int, reserved_at: datetime
    ) -> tuple[list[int], int]:
        select_stmt = (
            select(AccessCode.id)
            .where(AccessCode.product_id == product_id)
            .where(AccessCode.status == AccessCodeStatus.AVAILABLE)
            .order_by(AccessCode.id)
            .limit(quantity)
            .with_for_update(skip_locked=True)
        )
        result = await self.session.execute(select_stmt)
        code_ids = list(result.scalars().all())

        if len(code_ids) < quantity:
            return [], len(code_ids)

        update_stmt = (
            update(AccessCode)
            .where(AccessCode.id.in_(code_ids))
            .where(AccessCode.status == AccessCodeStatus.AVAILABLE)
            .values(
                status=AccessCodeStatus.RESERVED,
                order_id=order_id,
                reserved_at=reserved_at,
                updated_at=reserved_at,
            )
            .execution_options(synchronize_session=False)
        )
        update_result = await self.session.execute(update_stmt)

        if update_result.rowcount != len(code_ids):
            raise ConcurrencyConflictError(
                f"Access codes for product {product_id} were claimed concurrently",
                reason=f"selected={len(code_ids)}, reserved={update_result.rowcount}",
            )

        return code_ids, len(code_ids)

    async def assign(
        self, product_id: int, order_id: int, code_ids: Sequence[int], reserved_at: datetime
    ) -> int:
        stmt = (
            update(AccessCode)
            .where(AccessCode.id.in_(list(code_ids)))
            .where(AccessCode.product_id == product_id)
            .where(AccessCode.status == AccessCodeStatus.AVAILABLE)
            .values(
                status=AccessCodeStatus.RESERVED,
                order_id=order_id,
                reserved_at=reserved_at,
                updated_at=reserved_at,
            )
            .execution_options(synchronize_session=False)
        )
        result = await self.session.execute(stmt)
        return result.rowcount

    async def mark_finalized(
        self,
        order_id: int,
        code_ids: Sequence[int],
        status: AccessCodeStatus,
        finalized_at: datetime,
    ) -> int:
        values = {"status": status, "sold_at": finalized_at, "updated_at": finalized_at}
        if status == AccessCodeStatus.DELIVERED:
            values["delivered_at"] = finalized_at

        stmt = (
            update(AccessCode)
            .where(AccessCode.order_id == order_id)
            .where(AccessCode.id.in_(list(code_ids)))
            .where(AccessCode.status == AccessCodeStatus.RESERVED)
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        result = await self.session.execute(stmt)
        return result.rowcount

    async def release_by_order(self, order_id: int) -> int:
        stmt = (
            update(AccessCode)
            .where(AccessCode.order_id == order_id)
            .where(AccessCode.status == AccessCodeStatus.RESERVED)
            .values(
                status=AccessCodeStatus.AVAILABLE,
                order_id=None,
                reserved_at=None,
                updated_at=datetime.utcnow(),
            )
            .execution_options(synchronize_session=False)
        )
        result = await self.session.execute(stmt)
        return result.rowcount

    async def get_by_order_id(self, order_id: int) -> List[AccessCode]:
        stmt = (
            select(AccessCode)
            .where(AccessCode.order_id == order_id)
            .order_by(AccessCode.id)
            .execution_options(populate_existing=True)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def get_by_ids(self, code_ids: Sequence[int]) -> List[AccessCode]:
        stmt = (
            select(AccessCode)
            .where(AccessCode.id.in_(list(code_ids)))
            .order_by(AccessCode.id)
            .execution_options(populate_existing=True)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def create(self, access_code: AccessCode) -> AccessCode:
        self.session.add(access_code)
        await self.session.flush()
        await self.session.refresh(access_code)
        return access_code
