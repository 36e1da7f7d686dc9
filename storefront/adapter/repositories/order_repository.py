"""SQLAlchemy Order Repository Implementation"""

from datetime import datetime
from typing import List, Optional
from sqlmodel import select
from sqlmodel.ext.asyncio.session import AsyncSession
from storefront.app.repositories.order_repository import OrderRepository
from storefront.domain.account import Account
from storefront.domain.order import Order, OrderStatus
from storefront.domain.transaction import Transaction, TransactionKind


class SqlAlchemyOrderRepository(OrderRepository):
    """
    SQLAlchemy implementation of OrderRepository

    Orders are locked (SELECT FOR UPDATE) for every state transition.
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(self, order: Order) -> Order:
        self.session.add(order)
        await self.session.flush()
        await self.session.refresh(order)
        return order

    async def update(self, order: Order) -> Order:
        order.updated_at = datetime.utcnow()
        self.session.add(order)
        await self.session.flush()
        await self.session.refresh(order)
        return order

    async def get_by_id(self, order_id: int) -> Optional[Order]:
        stmt = select(Order).where(Order.id == order_id)
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def get_by_order_number(self, order_number: str, for_update: bool = False) -> Optional[Order]:
        """
        Retrieve order by order number with optional row-level locking

        Args:
            order_number: Unique order number
            for_update: If True, locks the row with SELECT FOR UPDATE
        """
        stmt = select(Order).where(Order.order_number == order_number)

        if for_update:
            stmt = stmt.with_for_update().execution_options(populate_existing=True)

        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def get_completed_without_commission(self, limit: int = 100) -> List[Order]:
        commission_exists = (
            select(Transaction.id)
            .where(Transaction.order_id == Order.id)
            .where(Transaction.kind == TransactionKind.REFERRAL_COMMISSION)
            .exists()
        )
        stmt = (
            select(Order)
            .join(Account, Account.owner_id == Order.owner_id)
            .where(Order.status == OrderStatus.COMPLETED)
            .where(Order.net_amount > 0)
            .where(Account.referred_by.is_not(None))
            .where(Account.referred_by != Order.owner_id)
            .where(~commission_exists)
            .order_by(Order.completed_at)
            .limit(limit)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())
