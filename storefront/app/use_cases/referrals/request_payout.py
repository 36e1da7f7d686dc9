"""RequestPayout Use Case"""

from storefront.libs.result import Result, Return, Error
from storefront.app.services.referral_commission import ReferralCommissionAccrual
from storefront.app.services.unit_of_work import UnitOfWork
from storefront.app.use_cases.common import to_error, with_concurrency_retry
from storefront.app.use_cases.ledger.dtos import TransactionDTO
from storefront.domain.errors import StorefrontError
from .dtos import RequestPayoutCommandDTO


class RequestPayout:
    """
    Use Case: Request payout of available referral commission

    Business Rules:
    1. Available = completed commissions - open or completed payout requests
    2. Available must reach the minimum payout
    3. The request is a pending payout_request debit for the full available amount
    """

    def __init__(
        self,
        uow: UnitOfWork,
        referrals: ReferralCommissionAccrual,
        retry_attempts: int = 3,
    ):
        self.uow = uow
        self.referrals = referrals
        self.retry_attempts = retry_attempts

    async def execute(self, command: RequestPayoutCommandDTO) -> Result[TransactionDTO]:
        async def operation() -> TransactionDTO:
            payout = await self.referrals.request_payout(command.owner_id)
            response = TransactionDTO.from_entity(payout)
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
                    code="REQUEST_PAYOUT_FAILED",
                    message="Failed to request payout",
                    reason=str(e),
                )
            )
