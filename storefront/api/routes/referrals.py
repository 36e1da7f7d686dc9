"""Referrals API Routes"""

from fastapi import APIRouter, Depends, status

from storefront.adapter.services.core import StorefrontCore
from storefront.api.error import ClientError, status_for
from storefront.app.use_cases.ledger import TransactionDTO
from storefront.app.use_cases.referrals import RequestPayout, RequestPayoutCommandDTO
from storefront.depends import get_core

router = APIRouter(prefix="/referrals", tags=["Referrals"])


@router.post(
    "/{owner_id}/payouts",
    response_model=TransactionDTO,
    status_code=status.HTTP_201_CREATED,
    responses={
        400: {
            "description": "Available commission below the minimum payout",
            "content": {
                "application/json": {
                    "example": {
                        "error": {
                            "code": "VALIDATION_ERROR",
                            "message": "Minimum payout amount is $50"
                        }
                    }
                }
            }
        }
    }
)
async def request_payout(
    owner_id: str,
    core: StorefrontCore = Depends(get_core)
):
    """
    Request payout of all referral commission currently available.

    Creates a pending `payout_request` for the full available amount, which
    an operator settles later.
    """
    use_case = RequestPayout(core.uow, core.referrals, core.retry_attempts)
    result = await use_case.execute(RequestPayoutCommandDTO(owner_id=owner_id))

    if result.is_err():
        raise ClientError(result.error, status_code=status_for(result.error))

    return result.value
