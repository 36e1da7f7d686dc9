"""Data Transfer Objects for Order Use Cases"""

from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional, Sequence
from pydantic import BaseModel, Field
from storefront.domain.access_code import FINALIZED_STATUSES, AccessCode
from storefront.domain.order import Order
from storefront.domain.order_event import OrderEvent


class PlaceOrderCommandDTO(BaseModel):
    owner_id: str = Field(..., min_length=1)
    product_id: int = Field(..., description="Product to buy")
    quantity: int = Field(default=1, ge=1)
    discount_amount: Decimal = Field(
        default=Decimal("0"),
        ge=0,
        description="Discount already resolved by the promotions collaborator"
    )

    class Config:
        json_schema_extra = {
            "example": {
                "owner_id": "user-42",
                "product_id": 7,
                "quantity": 2,
                "discount_amount": "0",
            }
        }


class PayOrderCommandDTO(BaseModel):
    order_number: str
    actor: Optional[str] = None


class FulfillOrderCommandDTO(BaseModel):
    order_number: str
    actor: Optional[str] = None


class AssignAccessCodesCommandDTO(BaseModel):
    order_number: str
    access_code_ids: List[int] = Field(..., min_length=1)
    actor: Optional[str] = None


class DeliverOrderFilesCommandDTO(BaseModel):
    order_number: str
    file_references: List[str] = Field(
        ...,
        description="Storage references of the uploaded files (at least one)"
    )
    notes: Optional[str] = Field(default=None, max_length=1000)
    actor: Optional[str] = None


class CancelOrderCommandDTO(BaseModel):
    order_number: str
    reason: Optional[str] = Field(default=None, max_length=500)
    actor: Optional[str] = None


class RefundOrderCommandDTO(BaseModel):
    order_number: str
    amount: Optional[Decimal] = Field(
        default=None,
        gt=0,
        description="Partial refund amount; omit for a full refund"
    )
    reason: Optional[str] = Field(default=None, max_length=500)
    actor: Optional[str] = None


class DeliveredCodeDTO(BaseModel):
    id: int
    status: str
    payload: Dict[str, Any]


class OrderEventDTO(BaseModel):
    event: str
    from_status: Optional[str] = None
    to_status: Optional[str] = None
    actor: str
    cause: Optional[str] = None
    created_at: datetime


class OrderResponseDTO(BaseModel):
    """
    Order state

    delivered_codes carries credential payloads of finalized codes only.
    """

    order_number: str
    owner_id: str
    product_id: int
    quantity: int
    unit_price: Decimal
    total_amount: Decimal
    discount_amount: Decimal
    net_amount: Decimal
    refunded_amount: Decimal
    status: str
    payment_status: str
    delivery_mode: str
    reserved_codes: int = Field(default=0, description="Codes held but not yet finalized")
    delivered_codes: List[DeliveredCodeDTO] = Field(default_factory=list)
    notes: Optional[str] = None
    created_at: datetime
    paid_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    cancelled_at: Optional[datetime] = None
    events: List[OrderEventDTO] = Field(default_factory=list)

    @classmethod
    def from_entity(
        cls,
        order: Order,
        codes: Sequence[AccessCode] = (),
        events: Sequence[OrderEvent] = (),
    ) -> "OrderResponseDTO":
        finalized = [code for code in codes if code.status in FINALIZED_STATUSES]
        return cls(
            order_number=order.order_number,
            owner_id=order.owner_id,
            product_id=order.product_id,
            quantity=order.quantity,
            unit_price=order.unit_price,
            total_amount=order.total_amount,
            discount_amount=order.discount_amount,
            net_amount=order.net_amount,
            refunded_amount=order.refunded_amount,
            status=order.status.value,
            payment_status=order.payment_status.value,
            delivery_mode=order.delivery_mode.value,
            reserved_codes=len(codes) - len(finalized),
            delivered_codes=[
                DeliveredCodeDTO(id=code.id, status=code.status.value, payload=dict(code.payload or {}))
                for code in finalized
            ],
            notes=order.notes,
            created_at=order.created_at,
            paid_at=order.paid_at,
            completed_at=order.completed_at,
            cancelled_at=order.cancelled_at,
            events=[
                OrderEventDTO(
                    event=e.event,
                    from_status=e.from_status,
                    to_status=e.to_status,
                    actor=e.actor,
                    cause=e.cause,
                    created_at=e.created_at,
                )
                for e in events
            ],
        )
