"""OpenAccount Use Case

Creates the ledger account of an owner, recording the referrer at sign-up.
"""

from storefront.libs.result import Result, Return, Error
from storefront.app.services.ledger import Ledger
from storefront.app.services.unit_of_work import UnitOfWork
from storefront.app.use_cases.common import to_error, with_concurrency_retry
from storefront.app.use_cases.ledger.dtos import AccountResponseDTO, OpenAccountCommandDTO
from storefront.domain.errors import StorefrontError


class OpenAccount:
    """
    Use Case: Open (or fetch) an owner's account

    Business Rules:
    1. One account per owner; opening twice returns the existing account
    2. referred_by is only recorded at creation, and never to oneself
    """

    def __init__(self, uow: UnitOfWork, ledger: Ledger, retry_attempts: int = 3):
        self.uow = uow
        self.ledger = ledger
        self.retry_attempts = retry_attempts

    async def execute(self, command: OpenAccountCommandDTO) -> Result[AccountResponseDTO]:
        async def operation() -> AccountResponseDTO:
            account = await self.ledger.get_or_create_account(command.owner_id, command.referred_by)
            response = AccountResponseDTO(
                owner_id=account.owner_id,
                referred_by=account.referred_by,
                balance=await self.ledger.balance_of(account.owner_id),
                created_at=account.created_at,
            )
            await self.uow.commit()
            return response

        try:
            return Return.ok(await with_concurrency_retry(self.uow, self.retry_attempts, operation))
        except StorefrontError as e:
            await self.uow.rollback()
            return Return.err(to_error(e))
        except Exception as e:
            await self.uow.rollback()
            return Return.err(
                Error(
                    code="OPEN_ACCOUNT_FAILED",
                    message="Failed to open account",
                    reason=str(e),
                )
            )
