"""SQLAlchemy Delivery File Repository Implementation"""

from typing import List
from sqlmodel import select, func
from sqlmodel.ext.asyncio.session import AsyncSession
from storefront.app.repositories.delivery_file_repository import DeliveryFileRepository
from storefront.domain.delivery_file import DeliveryFile


class SqlAlchemyDeliveryFileRepository(DeliveryFileRepository):

    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(self, delivery_file: DeliveryFile) -> DeliveryFile:
        self.session.add(delivery_file)
        await self.session.flush()
        await self.session.refresh(delivery_file)
        return delivery_file

    async def get_by_order_id(self, order_id: int) -> List[DeliveryFile]:
        stmt = select(DeliveryFile).where(DeliveryFile.order_id == order_id).order_by(DeliveryFile.id)
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def count_by_order_id(self, order_id: int) -> int:
        stmt = select(func.count()).select_from(DeliveryFile).where(DeliveryFile.order_id == order_id)
        result = await self.session.execute(stmt)
        return result.scalar_one()
