"""Orders API Routes

Order placement, payment from the account balance, fulfillment and refunds.
"""

from typing import Optional
from fastapi import APIRouter, Depends, status

from storefront.adapter.services.core import StorefrontCore
from storefront.api.error import ClientError, status_for
from storefront.api.schemas.order_request import (
    AssignCodesRequestSchema,
    CancelOrderRequestSchema,
    DeliverFilesRequestSchema,
    OrderActionRequestSchema,
    PlaceOrderRequestSchema,
    RefundOrderRequestSchema,
)
from storefront.app.use_cases.orders import (
    AssignAccessCodes,
    AssignAccessCodesCommandDTO,
    CancelOrder,
    CancelOrderCommandDTO,
    DeliverOrderFiles,
    DeliverOrderFilesCommandDTO,
    FulfillOrder,
    FulfillOrderCommandDTO,
    GetOrder,
    OrderResponseDTO,
    PayOrder,
    PayOrderCommandDTO,
    PlaceOrder,
    PlaceOrderCommandDTO,
    RefundOrder,
    RefundOrderCommandDTO,
)
from storefront.app.use_cases.referrals import AccrueReferralCommission
from storefront.depends import get_core

router = APIRouter(prefix="/orders", tags=["Orders"])

ORDER_NOT_FOUND = {
    "description": "Order not found",
    "content": {
        "application/json": {
            "example": {
                "error": {
                    "code": "NOT_FOUND",
                    "message": "Order ORD-20240501-7F3A2C not found"
                }
            }
        }
    }
}

INVALID_STATE = {
    "description": "Transition not allowed from the order's current status",
    "content": {
        "application/json": {
            "example": {
                "error": {
                    "code": "INVALID_STATE",
                    "message": "Order ORD-20240501-7F3A2C cannot move from completed to cancelled"
                }
            }
        }
    }
}


def _build(use_case_cls, core: StorefrontCore):
    commission = AccrueReferralCommission(
        core.uow, core.referrals, core.order_repo, core.retry_attempts
    )
    return use_case_cls(
        core.uow,
        core.fulfillment,
        core.allocator,
        commission=commission,
        retry_attempts=core.retry_attempts,
    )


def _actor(request: Optional[OrderActionRequestSchema]) -> Optional[str]:
    return request.actor if request else None


def _respond(result):
    if result.is_err():
        raise ClientError(result.error, status_code=status_for(result.error))
    return result.value


@router.post(
    "",
    response_model=OrderResponseDTO,
    status_code=status.HTTP_201_CREATED,
    responses={
        404: {"description": "Product not found or inactive"},
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
async def place_order(
    request: PlaceOrderRequestSchema,
    core: StorefrontCore = Depends(get_core)
):
    """
    Place a pending order for a product.

    Prices are fixed at placement. For automatic-delivery products the codes
    are held right away when enough are available; a shortage does not
    prevent placing the order.

    **Example request:**
    ```json
    {
      "owner_id": "user-42",
      "product_id": 7,
      "quantity": 2
    }
    ```
    """
    command = PlaceOrderCommandDTO(
        owner_id=request.owner_id,
        product_id=request.product_id,
        quantity=request.quantity,
        discount_amount=request.discount_amount,
    )
    return _respond(await _build(PlaceOrder, core).execute(command))


@router.get(
    "/{order_number}",
    response_model=OrderResponseDTO,
    status_code=status.HTTP_200_OK,
    responses={404: ORDER_NOT_FOUND}
)
async def get_order(
    order_number: str,
    core: StorefrontCore = Depends(get_core)
):
    """Get an order with its delivered codes and timeline"""
    use_case = GetOrder(core.order_repo, core.event_repo, core.allocator)
    return _respond(await use_case.execute(order_number))


@router.post(
    "/{order_number}/pay",
    response_model=OrderResponseDTO,
    status_code=status.HTTP_200_OK,
    responses={
        402: {
            "description": "Insufficient funds; the order stays pending and payment failed",
            "content": {
                "application/json": {
                    "example": {
                        "error": {
                            "code": "INSUFFICIENT_FUNDS",
                            "message": "Insufficient funds. Required: 20.00, Available: 5.00"
                        }
                    }
                }
            }
        },
        404: ORDER_NOT_FOUND,
        409: INVALID_STATE,
    }
)
async def pay_order(
    order_number: str,
    request: Optional[OrderActionRequestSchema] = None,
    core: StorefrontCore = Depends(get_core)
):
    """
    Pay an order from the owner's balance.

    On success the order moves to processing and, for automatic delivery,
    fulfillment is attempted in the same request. Paying an order twice is
    rejected without a second debit.

    **Returns:**
    - 200: Order paid (and possibly completed)
    - 402: Insufficient funds
    - 409: Order is not pending or already paid
    """
    command = PayOrderCommandDTO(order_number=order_number, actor=_actor(request))
    return _respond(await _build(PayOrder, core).execute(command))


@router.post(
    "/{order_number}/fulfill",
    response_model=OrderResponseDTO,
    status_code=status.HTTP_200_OK,
    responses={
        409: {
            "description": "Inventory exhausted or invalid state; the order stays processing",
            "content": {
                "application/json": {
                    "example": {
                        "error": {
                            "code": "INVENTORY_EXHAUSTED",
                            "message": "Not enough access codes for product 7: requested 2, available 1"
                        }
                    }
                }
            }
        },
        404: ORDER_NOT_FOUND,
    }
)
async def fulfill_order(
    order_number: str,
    request: Optional[OrderActionRequestSchema] = None,
    core: StorefrontCore = Depends(get_core)
):
    """Retry automatic delivery of a paid order (e.g. after a restock)"""
    command = FulfillOrderCommandDTO(order_number=order_number, actor=_actor(request))
    return _respond(await _build(FulfillOrder, core).execute(command))


@router.post(
    "/{order_number}/assign-codes",
    response_model=OrderResponseDTO,
    status_code=status.HTTP_200_OK,
    responses={404: ORDER_NOT_FOUND, 409: INVALID_STATE}
)
async def assign_codes(
    order_number: str,
    request: AssignCodesRequestSchema,
    core: StorefrontCore = Depends(get_core)
):
    """
    Reserve specific access codes for a processing order.

    The codes must be available and belong to the order's product. They are
    delivered when the order is fulfilled.
    """
    command = AssignAccessCodesCommandDTO(
        order_number=order_number,
        access_code_ids=request.access_code_ids,
        actor=request.actor,
    )
    return _respond(await _build(AssignAccessCodes, core).execute(command))


@router.post(
    "/{order_number}/deliver",
    response_model=OrderResponseDTO,
    status_code=status.HTTP_200_OK,
    responses={404: ORDER_NOT_FOUND, 409: INVALID_STATE}
)
async def deliver_files(
    order_number: str,
    request: DeliverFilesRequestSchema,
    core: StorefrontCore = Depends(get_core)
):
    """Deliver files for a manual-delivery order, which completes it"""
    command = DeliverOrderFilesCommandDTO(
        order_number=order_number,
        file_references=request.file_references,
        notes=request.notes,
        actor=request.actor,
    )
    return _respond(await _build(DeliverOrderFiles, core).execute(command))


@router.post(
    "/{order_number}/cancel",
    response_model=OrderResponseDTO,
    status_code=status.HTTP_200_OK,
    responses={404: ORDER_NOT_FOUND, 409: INVALID_STATE}
)
async def cancel_order(
    order_number: str,
    request: Optional[CancelOrderRequestSchema] = None,
    core: StorefrontCore = Depends(get_core)
):
    """Cancel a pending, unpaid order; held codes go back to inventory"""
    command = CancelOrderCommandDTO(
        order_number=order_number,
        reason=request.reason if request else None,
        actor=_actor(request),
    )
    return _respond(await _build(CancelOrder, core).execute(command))


@router.post(
    "/{order_number}/refund",
    response_model=OrderResponseDTO,
    status_code=status.HTTP_200_OK,
    responses={
        400: {
            "description": "Refund amount exceeds the refundable amount",
            "content": {
                "application/json": {
                    "example": {
                        "error": {
                            "code": "VALIDATION_ERROR",
                            "message": "Refund amount exceeds refundable amount 15.00"
                        }
                    }
                }
            }
        },
        404: ORDER_NOT_FOUND,
        409: INVALID_STATE,
    }
)
async def refund_order(
    order_number: str,
    request: Optional[RefundOrderRequestSchema] = None,
    core: StorefrontCore = Depends(get_core)
):
    """
    Refund a paid order to the owner's balance.

    **Request body:**
    - `amount` (optional): Partial refund; omit to refund what remains
    - `reason` (optional): Recorded on the refund and the timeline
    - `actor` (optional): Operator

    Completed orders accept partial refunds; orders still in progress can only
    be refunded in full, which cancels them and releases their codes.
    """
    command = RefundOrderCommandDTO(
        order_number=order_number,
        amount=request.amount if request else None,
        reason=request.reason if request else None,
        actor=_actor(request),
    )
    return _respond(await _build(RefundOrder, core).execute(command))
