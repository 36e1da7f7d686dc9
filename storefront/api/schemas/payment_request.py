"""Request schemas for Payments API"""

from decimal import Decimal
from typing import Optional
from pydantic import BaseModel, Field, field_validator


class FundAccountRequestSchema(BaseModel):
    """
    Request schema for funding an account

    Used for POST /payments/invoices endpoint.
    """

    owner_id: str = Field(
        ...,
        min_length=1,
        description="Owner whose balance is funded (required, non-empty)"
    )

    amount: Decimal = Field(
        ...,
        gt=0,
        description="Deposit amount in settlement currency (must be > 0)"
    )

    order_ref: Optional[str] = Field(
        default=None,
        max_length=128,
        description="Funding correlation id; reusing it returns the same invoice"
    )

    @field_validator('amount')
    @classmethod
    def validate_amount(cls, v):
        """Settlement amounts carry at most 2 decimal places"""
        if v.as_tuple().exponent < -2:
            raise ValueError("Amount must have at most 2 decimal places")
        return v

    class Config:
        json_schema_extra = {
            "example": {
                "owner_id": "user-42",
                "amount": "50.00",
            }
        }
