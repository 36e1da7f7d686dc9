"""Payments API Routes

Account funding through hosted crypto invoices and the gateway's payment
notifications.
"""

from typing import Optional
from fastapi import APIRouter, Depends, Header, Request, status

from storefront.adapter.services.core import StorefrontCore
from storefront.api.error import ClientError, status_for
from storefront.api.schemas.payment_request import FundAccountRequestSchema
from storefront.app.use_cases.payments import (
    CallbackResponseDTO,
    FundAccount,
    FundAccountCommandDTO,
    GetPaymentStatus,
    HandlePaymentCallback,
    InvoiceResponseDTO,
    PaymentCallbackCommandDTO,
    PaymentStatusResponseDTO,
    RefreshPaymentStatus,
)
from storefront.depends import get_core

router = APIRouter(prefix="/payments", tags=["Payments"])

CALLBACK_CLIENT_ERRORS = ("SIGNATURE_INVALID", "VALIDATION_ERROR")


@router.post(
    "/invoices",
    response_model=InvoiceResponseDTO,
    status_code=status.HTTP_201_CREATED,
    responses={
        400: {
            "description": "Validation error",
            "content": {
                "application/json": {
                    "example": {
                        "error": {
                            "code": "VALIDATION_ERROR",
                            "message": "Deposit amount must be between 10 and 10000 USD"
                        }
                    }
                }
            }
        },
        502: {
            "description": "Payment gateway unavailable",
            "content": {
                "application/json": {
                    "example": {
                        "error": {
                            "code": "GATEWAY_ERROR",
                            "message": "Payment gateway unavailable"
                        }
                    }
                }
            }
        }
    }
)
async def create_funding_invoice(
    request: FundAccountRequestSchema,
    core: StorefrontCore = Depends(get_core)
):
    """
    Open a hosted payment invoice to fund an account balance.

    A pending deposit is recorded first; the balance only changes once the
    gateway confirms the payment through the webhook. Repeating a request with
    the same `order_ref` returns the invoice already opened for it.

    **Request body:**
    - `owner_id` (required): Owner whose balance is funded
    - `amount` (required): Deposit amount in USD
    - `order_ref` (optional): Funding correlation id

    **Returns:**
    - 201: Invoice opened; redirect the customer to `invoice_url`
    - 400: Amount outside the allowed range
    - 502: Gateway failed (the deposit stays pending and can be retried)
    """
    command = FundAccountCommandDTO(
        owner_id=request.owner_id,
        amount=request.amount,
        order_ref=request.order_ref,
    )

    use_case = FundAccount(core.uow, core.ledger, core.reconciler, core.retry_attempts)
    result = await use_case.execute(command)

    if result.is_err():
        raise ClientError(result.error, status_code=status_for(result.error))

    return result.value


@router.post(
    "/webhooks/nowpayments",
    response_model=CallbackResponseDTO,
    status_code=status.HTTP_200_OK,
    responses={
        400: {
            "description": "Invalid signature or malformed body",
            "content": {
                "application/json": {
                    "example": {
                        "error": {
                            "code": "SIGNATURE_INVALID",
                            "message": "Invalid payment callback signature"
                        }
                    }
                }
            }
        },
        500: {
            "description": "Unknown order or processing failure; the gateway retries",
            "content": {
                "application/json": {
                    "example": {
                        "error": {
                            "code": "UNKNOWN_ORDER",
                            "message": "No deposit matches this payment"
                        }
                    }
                }
            }
        }
    }
)
async def nowpayments_webhook(
    request: Request,
    x_nowpayments_sig: Optional[str] = Header(default=None),
    core: StorefrontCore = Depends(get_core)
):
    """
    Receive a payment notification from NowPayments.

    The `x-nowpayments-sig` header must carry the HMAC-SHA512 of the raw body
    under the IPN secret. Replayed and out-of-order notifications are
    acknowledged with `noop`.

    **Returns:**
    - 200: `applied` or `noop`
    - 400: Signature invalid or body malformed (not retried)
    - 500: Unknown order or internal failure (the gateway retries)
    """
    command = PaymentCallbackCommandDTO(
        raw_body=await request.body(),
        signature=x_nowpayments_sig,
    )

    use_case = HandlePaymentCallback(core.uow, core.reconciler, core.retry_attempts)
    result = await use_case.execute(command)

    if result.is_err():
        if result.error.code in CALLBACK_CLIENT_ERRORS:
            raise ClientError(result.error, status_code=status.HTTP_400_BAD_REQUEST)
        raise ClientError(result.error, status_code=status.HTTP_500_INTERNAL_SERVER_ERROR)

    return result.value


@router.get(
    "/{payment_id}/status",
    response_model=PaymentStatusResponseDTO,
    status_code=status.HTTP_200_OK,
    responses={
        404: {
            "description": "Payment not found",
            "content": {
                "application/json": {
                    "example": {
                        "error": {
                            "code": "NOT_FOUND",
                            "message": "Payment 5077125051 not found"
                        }
                    }
                }
            }
        }
    }
)
async def get_payment_status(
    payment_id: str,
    core: StorefrontCore = Depends(get_core)
):
    """
    Get the state of a deposit by gateway payment id or funding reference.

    Read from the ledger only; use the refresh endpoint to poll the gateway.
    """
    use_case = GetPaymentStatus(core.reconciler)
    result = await use_case.execute(payment_id)

    if result.is_err():
        raise ClientError(result.error, status_code=status_for(result.error))

    return result.value


@router.post(
    "/{payment_id}/refresh",
    response_model=PaymentStatusResponseDTO,
    status_code=status.HTTP_200_OK,
    responses={
        404: {"description": "Payment not found"},
        502: {"description": "Payment gateway unavailable"},
    }
)
async def refresh_payment_status(
    payment_id: str,
    core: StorefrontCore = Depends(get_core)
):
    """
    Poll the gateway for a deposit and apply the answer.

    Useful when a notification was lost; the result is applied exactly like a
    webhook, so repeating the call is harmless.
    """
    use_case = RefreshPaymentStatus(core.uow, core.reconciler, core.retry_attempts)
    result = await use_case.execute(payment_id)

    if result.is_err():
        raise ClientError(result.error, status_code=status_for(result.error))

    return result.value
