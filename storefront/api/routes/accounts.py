"""Accounts API Routes

Account opening, balances, operator adjustments and transaction history.
"""

from fastapi import APIRouter, Depends, Query, status

from storefront.adapter.services.core import StorefrontCore
from storefront.api.error import ClientError, status_for
from storefront.api.schemas.account_request import AdjustBalanceRequestSchema, OpenAccountRequestSchema
from storefront.app.use_cases.ledger import (
    AccountResponseDTO,
    AdjustBalance,
    AdjustBalanceCommandDTO,
    BalanceResponseDTO,
    GetBalance,
    ListTransactions,
    ListTransactionsResponseDTO,
    OpenAccount,
    OpenAccountCommandDTO,
    TransactionDTO,
)
from storefront.depends import get_core

router = APIRouter(prefix="/accounts", tags=["Accounts"])


@router.post(
    "",
    response_model=AccountResponseDTO,
    status_code=status.HTTP_200_OK,
    responses={
        400: {
            "description": "Validation error",
            "content": {
                "application/json": {
                    "example": {
                        "error": {
                            "code": "VALIDATION_ERROR",
                            "message": "Invalid request parameters"
                        }
                    }
                }
            }
        }
    }
)
async def open_account(
    request: OpenAccountRequestSchema,
    core: StorefrontCore = Depends(get_core)
):
    """
    Open an account, or return the existing one.

    `referred_by` is only recorded when the account is created; a
    self-referral is ignored.
    """
    command = OpenAccountCommandDTO(owner_id=request.owner_id, referred_by=request.referred_by)

    use_case = OpenAccount(core.uow, core.ledger, core.retry_attempts)
    result = await use_case.execute(command)

    if result.is_err():
        raise ClientError(result.error, status_code=status_for(result.error))

    return result.value


@router.get(
    "/{owner_id}/balance",
    response_model=BalanceResponseDTO,
    status_code=status.HTTP_200_OK,
    responses={
        404: {
            "description": "Account not found",
            "content": {
                "application/json": {
                    "example": {
                        "error": {
                            "code": "NOT_FOUND",
                            "message": "No account found for owner user-42"
                        }
                    }
                }
            }
        }
    }
)
async def get_balance(
    owner_id: str,
    core: StorefrontCore = Depends(get_core)
):
    """
    Get the balance of an owner.

    The balance is the sum of the owner's completed transactions. Pending
    deposits and failed debits do not count.

    **Returns:**
    - 200: Balance and referral commission available for payout
    - 404: Owner has no account
    """
    use_case = GetBalance(core.ledger, core.account_repo)
    result = await use_case.execute(owner_id)

    if result.is_err():
        raise ClientError(result.error, status_code=status_for(result.error))

    return result.value


@router.get(
    "/{owner_id}/transactions",
    response_model=ListTransactionsResponseDTO,
    status_code=status.HTTP_200_OK,
)
async def list_transactions(
    owner_id: str,
    limit: int = Query(default=20, ge=1, le=100),
    offset: int = Query(default=0, ge=0),
    core: StorefrontCore = Depends(get_core)
):
    """List an owner's transactions, newest first"""
    use_case = ListTransactions(core.transaction_repo)
    result = await use_case.execute(owner_id, limit=limit, offset=offset)

    if result.is_err():
        raise ClientError(result.error, status_code=status_for(result.error))

    return result.value


@router.post(
    "/{owner_id}/adjustments",
    response_model=TransactionDTO,
    status_code=status.HTTP_201_CREATED,
    responses={
        402: {
            "description": "Balance does not cover the debit; the adjustment is recorded as failed",
            "content": {
                "application/json": {
                    "example": {
                        "error": {
                            "code": "INSUFFICIENT_FUNDS",
                            "message": "Insufficient balance. Required: 60.00, Available: 20.00"
                        }
                    }
                }
            }
        },
        404: {
            "description": "Account not found"
        }
    }
)
async def adjust_balance(
    owner_id: str,
    request: AdjustBalanceRequestSchema,
    core: StorefrontCore = Depends(get_core)
):
    """
    Credit or debit an owner's balance by hand.

    **Request body:**
    - `amount` (required): Positive credits, negative debits
    - `reason` (required): Recorded on the adjustment
    - `actor` (optional): Operator
    - `idempotency_key` (optional): Replays return the first adjustment

    **Returns:**
    - 201: Completed adjustment
    - 402: Debit exceeds the balance
    - 404: Owner has no account
    """
    command = AdjustBalanceCommandDTO(
        owner_id=owner_id,
        amount=request.amount,
        reason=request.reason,
        actor=request.actor,
        idempotency_key=request.idempotency_key,
    )

    use_case = AdjustBalance(
        core.uow, core.ledger, core.account_repo, core.transaction_repo, core.retry_attempts
    )
    result = await use_case.execute(command)

    if result.is_err():
        raise ClientError(result.error, status_code=status_for(result.error))

    return result.value
