import logging
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm.exc import StaleDataError
from sqlmodel.ext.asyncio.session import AsyncSession
from storefront.app.services.unit_of_work import UnitOfWork
from storefront.domain.errors import ConcurrencyConflictError

logger = logging.getLogger(__name__)


class SqlAlchemyUnitOfWork(UnitOfWork):
    """
    Unit of work over one AsyncSession

    Leaving the context without commit rolls back. Unique-key or stale-row
    failures at commit time surface as ConcurrencyConflictError after the
    session has been rolled back, so the caller may retry the operation.
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    async def __aenter__(self):
        return self

    async def __aexit__(self, *args):
        await self.rollback()

    async def commit(self):
        try:
            await self.session.commit()
        except (IntegrityError, StaleDataError) as e:
            await self.session.rollback()
            logger.warning(f"Commit lost a concurrent update: {e}")
            raise ConcurrencyConflictError(
                "Concurrent update detected at commit",
                reason=str(getattr(e, "orig", None) or e),
            ) from e

    async def rollback(self):
        await self.session.rollback()
