"""Request schemas for Orders API"""

from decimal import Decimal
from typing import List, Optional
from pydantic import BaseModel, Field


class PlaceOrderRequestSchema(BaseModel):
    """
    Request schema for placing an order

    Used for POST /orders endpoint.
    """

    owner_id: str = Field(..., min_length=1, description="Buyer (required, non-empty)")
    product_id: int = Field(..., ge=1, description="Product to buy")
    quantity: int = Field(default=1, ge=1, description="Number of units (>= 1)")
    discount_amount: Decimal = Field(
        default=Decimal("0"),
        ge=0,
        description="Discount resolved upstream; capped at the order total"
    )

    class Config:
        json_schema_extra = {
            "example": {
                "owner_id": "user-42",
                "product_id": 7,
                "quantity": 2,
            }
        }


class OrderActionRequestSchema(BaseModel):
    actor: Optional[str] = Field(default=None, description="Who performs the action; defaults to system")


class AssignCodesRequestSchema(OrderActionRequestSchema):
    access_code_ids: List[int] = Field(..., min_length=1, description="Available codes of the order's product")


class DeliverFilesRequestSchema(OrderActionRequestSchema):
    file_references: List[str] = Field(..., min_length=1, description="Storage references of uploaded files")
    notes: Optional[str] = Field(default=None, max_length=1000)


class CancelOrderRequestSchema(OrderActionRequestSchema):
    reason: Optional[str] = Field(default=None, max_length=500)


class RefundOrderRequestSchema(OrderActionRequestSchema):
    """
    Request schema for refunding an order

    Omit amount for a full refund of the remaining refundable amount.
    """

    amount: Optional[Decimal] = Field(default=None, gt=0, description="Partial refund amount")
    reason: Optional[str] = Field(default=None, max_length=500)

    class Config:
        json_schema_extra = {
            "example": {
                "amount": "10.00",
                "reason": "One code was already used",
                "actor": "ops-anna",
            }
        }
