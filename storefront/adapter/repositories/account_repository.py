"""SQLAlchemy implementation of AccountRepository

Provides per-owner pessimistic locking (SELECT FOR UPDATE) plus an
optimistic version check, so concurrent ledger mutations for one owner are
linearized even on engines without row locks.
"""

from datetime import datetime
from typing import Optional
from sqlalchemy import update
from sqlalchemy.exc import IntegrityError
from sqlmodel import select
from sqlmodel.ext.asyncio.session import AsyncSession
from storefront.app.repositories.account_repository import AccountRepository
from storefront.domain.account import Account
from storefront.domain.errors import ConcurrencyConflictError


class SqlAlchemyAccountRepository(AccountRepository):
    """
    SQLAlchemy implementation of AccountRepository

    Features:
    - Pessimistic locking via SELECT FOR UPDATE
    - Compare-and-set version bump
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_by_owner_id(self, owner_id: str, for_update: bool = False) -> Optional[Account]:
        """
        Retrieve account by owner ID with optional row-level locking

        Args:
            owner_id: Owner identifier
            for_update: If True, locks the row with SELECT FOR UPDATE

        Returns:
            Account if found, None otherwise
        """
        stmt = (
            select(Account)
            .where(Account.owner_id == owner_id)
            .execution_options(populate_existing=True)
        )

        if for_update:
            stmt = stmt.with_for_update()

        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def create(self, account: Account) -> Account:
        """
        Create account row

        Raises:
            ConcurrencyConflictError: If another request created it first
        """
        self.session.add(account)
        try:
            await self.session.flush()
        except IntegrityError as e:
            raise ConcurrencyConflictError(
                f"Account for owner {account.owner_id} was created concurrently",
                reason=str(e.orig),
            ) from e
        await self.session.refresh(account)
        return account

    async def bump_version(self, account_id: int, expected_version: int) -> bool:
        """
        Increment version only if nobody else did since we read it

        Note:
            Should be called with the account row already locked
        """
        stmt = (
            update(Account)
            .where(Account.id == account_id)
            .where(Account.version == expected_version)
            .values(version=expected_version + 1, updated_at=datetime.utcnow())
            .execution_options(synchronize_session=False)
        )
        result = await self.session.execute(stmt)
        return result.rowcount == 1
