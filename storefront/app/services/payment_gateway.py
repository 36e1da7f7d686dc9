"""Payment Gateway Interface

Defines the contract with the hosted-invoice crypto payment gateway and the
normalized shape of its payment notifications.
"""

from abc import ABC, abstractmethod
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, Optional
from pydantic import BaseModel, Field, field_validator


class GatewayPaymentStatus(str, Enum):
    WAITING = "waiting"
    CONFIRMING = "confirming"
    CONFIRMED = "confirmed"
    SENDING = "sending"
    PARTIALLY_PAID = "partially_paid"
    FINISHED = "finished"
    COMPLETED = "completed"
    FAILED = "failed"
    REFUNDED = "refunded"
    EXPIRED = "expired"
    CANCELLED = "cancelled"


class InvoiceRequest(BaseModel):
    """Hosted invoice to open at the gateway"""

    price_amount: Decimal = Field(..., gt=0)
    price_currency: str = Field(default="USD")
    order_id: str = Field(..., description="Funding correlation id echoed back in callbacks")
    order_description: str
    ipn_callback_url: Optional[str] = None
    success_url: Optional[str] = None
    cancel_url: Optional[str] = None


class GatewayInvoice(BaseModel):
    invoice_id: str
    invoice_url: str
    raw: Dict[str, Any] = Field(default_factory=dict)


class GatewayCallback(BaseModel):
    """
    Payment notification, pushed (webhook) or polled (status endpoint)

    The gateway sends numeric ids; they are normalized to strings.
    """

    payment_id: Optional[str] = None
    invoice_id: Optional[str] = None
    order_id: Optional[str] = None
    payment_status: GatewayPaymentStatus
    price_amount: Optional[Decimal] = None
    price_currency: Optional[str] = None
    pay_amount: Optional[Decimal] = None
    actually_paid: Optional[Decimal] = None
    pay_currency: Optional[str] = None
    outcome_amount: Optional[Decimal] = None
    outcome_currency: Optional[str] = None

    class Config:
        extra = "allow"
        json_schema_extra = {
            "example": {
                "payment_id": 5077125051,
                "invoice_id": 4522625843,
                "order_id": "FUND_3F9A1C0B7D_user-42",
                "payment_status": "finished",
                "price_amount": 50,
                "price_currency": "usd",
                "pay_amount": 0.00081,
                "actually_paid": 0.00081,
                "pay_currency": "btc",
            }
        }

    @field_validator("payment_id", "invoice_id", "order_id", mode="before")
    @classmethod
    def _coerce_id(cls, value):
        if value is None or value == "":
            return None
        return str(value)

    @field_validator("payment_status", mode="before")
    @classmethod
    def _normalize_status(cls, value):
        return value.lower() if isinstance(value, str) else value


class PaymentGateway(ABC):
    """
    Port to the payment gateway

    Implementations must bound every call with a timeout and raise
    GatewayError on transport failure, timeout or an error response.
    """

    name: str = "gateway"

    @abstractmethod
    async def create_invoice(self, request: InvoiceRequest) -> GatewayInvoice:
        """
        Open a hosted invoice

        Raises:
            GatewayError: If the gateway is unreachable or rejects the request
        """
        pass

    @abstractmethod
    async def get_payment_status(self, payment_id: str) -> GatewayCallback:
        """
        Poll the current state of a payment

        Raises:
            GatewayError: If the gateway is unreachable or rejects the request
        """
        pass
