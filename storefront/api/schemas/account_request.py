"""Request schemas for Accounts API"""

from decimal import Decimal
from typing import Optional
from pydantic import BaseModel, Field, field_validator


class OpenAccountRequestSchema(BaseModel):
    owner_id: str = Field(..., min_length=1, description="Owner identifier")
    referred_by: Optional[str] = Field(default=None, description="Owner ID of the referrer")

    class Config:
        json_schema_extra = {
            "example": {
                "owner_id": "user-42",
                "referred_by": "user-7",
            }
        }


class SettleTransactionRequestSchema(BaseModel):
    """
    Request schema for settling a pending transaction

    Only referral commissions and payout requests can be settled
    by hand; deposits follow the gateway and purchases or refunds the order flow.
    """

    action: str = Field(..., pattern="^(complete|fail|cancel)$", description="complete, fail or cancel")
    reason: Optional[str] = Field(default=None, max_length=255)
    actor: Optional[str] = Field(default=None, description="Operator performing the settlement")

    class Config:
        json_schema_extra = {
            "example": {
                "action": "complete",
                "actor": "ops-anna",
            }
        }


class AdjustBalanceRequestSchema(BaseModel):
    """
    Request schema for an operator balance adjustment

    Positive amounts credit the owner, negative amounts debit it.
    """

    amount: Decimal = Field(..., description="Signed amount in settlement currency (non-zero)")
    reason: str = Field(..., min_length=1, max_length=255)
    actor: Optional[str] = Field(default=None, description="Operator performing the adjustment")
    idempotency_key: Optional[str] = Field(default=None, max_length=128)

    @field_validator('amount')
    @classmethod
    def validate_amount(cls, v):
        if v == 0:
            raise ValueError("Amount must not be zero")
        if v.as_tuple().exponent < -2:
            raise ValueError("Amount must have at most 2 decimal places")
        return v

    class Config:
        json_schema_extra = {
            "example": {
                "amount": "25.00",
                "reason": "Goodwill credit for delayed delivery",
                "actor": "ops-anna",
            }
        }
