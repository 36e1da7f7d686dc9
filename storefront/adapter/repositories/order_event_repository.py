"""SQLAlchemy Order Event Repository Implementation"""

from typing import List
from sqlmodel import select
from sqlmodel.ext.asyncio.session import AsyncSession
from storefront.app.repositories.order_event_repository import OrderEventRepository
from storefront.domain.order_event import OrderEvent


class SqlAlchemyOrderEventRepository(OrderEventRepository):

    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(self, event: OrderEvent) -> OrderEvent:
        self.session.add(event)
        await self.session.flush()
        return event

    async def get_by_order_id(self, order_id: int) -> List[OrderEvent]:
        stmt = (
            select(OrderEvent)
            .where(OrderEvent.order_id == order_id)
            .order_by(OrderEvent.created_at, OrderEvent.id)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())
