"""Transactions API Routes

Operator settlement of pending commissions and payout requests.
"""

from fastapi import APIRouter, Depends, status

from storefront.adapter.services.core import StorefrontCore
from storefront.api.error import ClientError, status_for
from storefront.api.schemas.account_request import SettleTransactionRequestSchema
from storefront.app.use_cases.ledger import (
    SettleTransaction,
    SettleTransactionCommandDTO,
    TransactionDTO,
)
from storefront.depends import get_core

router = APIRouter(prefix="/transactions", tags=["Transactions"])


@router.post(
    "/{transaction_id}/settle",
    response_model=TransactionDTO,
    status_code=status.HTTP_200_OK,
    responses={
        402: {
            "description": "Balance does not cover the debit; the transaction is marked failed",
            "content": {
                "application/json": {
                    "example": {
                        "error": {
                            "code": "INSUFFICIENT_FUNDS",
                            "message": "Insufficient funds. Required: 60.00, Available: 20.00"
                        }
                    }
                }
            }
        },
        409: {
            "description": "Transaction already settled",
            "content": {
                "application/json": {
                    "example": {
                        "error": {
                            "code": "ALREADY_TERMINAL",
                            "message": "Transaction 12 is already completed"
                        }
                    }
                }
            }
        }
    }
)
async def settle_transaction(
    transaction_id: str,
    request: SettleTransactionRequestSchema,
    core: StorefrontCore = Depends(get_core)
):
    """
    Complete, fail or cancel a pending transaction.

    Deposits settle through the payment gateway and purchases or refunds
    through the order flow; those kinds are rejected here.

    **Request body:**
    - `action` (required): `complete`, `fail` or `cancel`
    - `reason` (optional): Recorded as failure reason
    - `actor` (optional): Operator
    """
    command = SettleTransactionCommandDTO(
        transaction_id=transaction_id,
        action=request.action,
        reason=request.reason,
        actor=request.actor,
    )

    use_case = SettleTransaction(core.uow, core.ledger, core.transaction_repo, core.retry_attempts)
    result = await use_case.execute(command)

    if result.is_err():
        raise ClientError(result.error, status_code=status_for(result.error))

    return result.value
