"""Data Transfer Objects for Payment Use Cases"""

from datetime import datetime
from decimal import Decimal
from typing import Optional
from pydantic import BaseModel, Field


class FundAccountCommandDTO(BaseModel):
    """
    Command DTO for funding an account balance through a hosted invoice
    """

    owner_id: str = Field(..., min_length=1, description="Owner whose balance is funded")

    amount: Decimal = Field(
        ...,
        gt=0,
        description="Deposit amount in settlement currency"
    )

    order_ref: Optional[str] = Field(
        default=None,
        max_length=128,
        description="Funding correlation id; generated when omitted. Reusing it returns the same invoice"
    )

    class Config:
        json_schema_extra = {
            "example": {
                "owner_id": "user-42",
                "amount": "50.00",
            }
        }


class InvoiceResponseDTO(BaseModel):
    transaction_id: str = Field(..., description="Pending deposit transaction")
    order_ref: str = Field(..., description="Funding correlation id echoed by the gateway")
    invoice_id: str
    invoice_url: str = Field(..., description="Hosted payment page to redirect the customer to")
    amount: Decimal
    currency: str
    status: str

    class Config:
        json_schema_extra = {
            "example": {
                "transaction_id": "DEP-3F9A1C0B7D2E",
                "order_ref": "FUND_8C1D2E3F4A_user-42",
                "invoice_id": "4522625843",
                "invoice_url": "https://nowpayments.io/payment/?iid=4522625843",
                "amount": "50.000000",
                "currency": "USD",
                "status": "pending",
            }
        }


class PaymentCallbackCommandDTO(BaseModel):
    raw_body: bytes = Field(..., description="Exact request body as received")
    signature: Optional[str] = Field(default=None, description="x-nowpayments-sig header value")


class CallbackResponseDTO(BaseModel):
    result: str = Field(..., description="applied or noop")
    transaction_id: Optional[str] = None
    status: Optional[str] = None


class PaymentStatusResponseDTO(BaseModel):
    transaction_id: str
    order_ref: str
    payment_id: Optional[str] = None
    status: str = Field(..., description="Ledger status of the deposit")
    gateway_status: Optional[str] = Field(default=None, description="Last status reported by the gateway")
    amount: Decimal
    currency: str
    actually_paid: Optional[Decimal] = None
    payment_currency: Optional[str] = None
    updated_at: datetime
    completed_at: Optional[datetime] = None
