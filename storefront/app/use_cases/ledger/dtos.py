"""Data Transfer Objects for Ledger Use Cases

Pydantic models for command inputs and response outputs.
"""

from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, List, Optional
from pydantic import BaseModel, Field
from storefront.domain.transaction import Transaction


class TransactionDTO(BaseModel):
    """Single ledger transaction as exposed to callers"""

    transaction_id: str = Field(..., description="External transaction reference")
    owner_id: str
    kind: str = Field(..., description="deposit, purchase, refund, referral_commission, payout_request, adjustment")
    amount: Decimal = Field(..., description="Signed amount (credits positive, debits negative)")
    fee: Decimal
    net_amount: Decimal
    currency: str
    status: str
    order_id: Optional[int] = None
    payment_currency: Optional[str] = None
    payment_amount: Optional[Decimal] = None
    description: Optional[str] = None
    failure_reason: Optional[str] = None
    details: Dict[str, Any] = Field(default_factory=dict)
    created_at: datetime
    completed_at: Optional[datetime] = None

    class Config:
        json_schema_extra = {
            "example": {
                "transaction_id": "DEP-3F9A1C0B7D2E",
                "owner_id": "user-42",
                "kind": "deposit",
                "amount": "50.000000",
                "fee": "0.000000",
                "net_amount": "50.000000",
                "currency": "USD",
                "status": "completed",
                "created_at": "2024-05-01T10:00:00Z",
                "completed_at": "2024-05-01T10:12:00Z",
            }
        }

    @classmethod
    def from_entity(cls, transaction: Transaction) -> "TransactionDTO":
        return cls(
            transaction_id=transaction.transaction_id,
            owner_id=transaction.owner_id,
            kind=transaction.kind.value,
            amount=transaction.amount,
            fee=transaction.fee,
            net_amount=transaction.net_amount,
            currency=transaction.currency,
            status=transaction.status.value,
            order_id=transaction.order_id,
            payment_currency=transaction.payment_currency,
            payment_amount=transaction.payment_amount,
            description=transaction.description,
            failure_reason=transaction.failure_reason,
            details=dict(transaction.details or {}),
            created_at=transaction.created_at,
            completed_at=transaction.completed_at,
        )


class OpenAccountCommandDTO(BaseModel):
    owner_id: str = Field(..., min_length=1, description="Owner (customer) identifier")
    referred_by: Optional[str] = Field(
        default=None,
        description="Owner ID of the referrer; ignored for existing accounts"
    )


class AccountResponseDTO(BaseModel):
    owner_id: str
    referred_by: Optional[str] = None
    balance: Decimal
    created_at: datetime


class BalanceResponseDTO(BaseModel):
    """Derived balance of an owner"""

    owner_id: str = Field(..., description="Owner identifier")
    balance: Decimal = Field(..., description="Sum of completed transactions")
    available_commission: Decimal = Field(..., description="Referral commission available for payout")
    currency: str = Field(default="USD")
    as_of: datetime

    class Config:
        json_schema_extra = {
            "example": {
                "owner_id": "user-42",
                "balance": "35.000000",
                "available_commission": "0.000000",
                "currency": "USD",
                "as_of": "2024-05-01T10:15:00Z",
            }
        }


class ListTransactionsResponseDTO(BaseModel):
    transactions: List[TransactionDTO]
    total: int
    limit: int
    offset: int


class SettlementAction(str, Enum):
    COMPLETE = "complete"
    FAIL = "fail"
    CANCEL = "cancel"


class SettleTransactionCommandDTO(BaseModel):
    """Operator settlement of a pending commission or payout request"""

    transaction_id: str = Field(..., description="External transaction reference")
    action: SettlementAction
    reason: Optional[str] = Field(default=None, max_length=255)
    actor: Optional[str] = None


class AdjustBalanceCommandDTO(BaseModel):
    """Operator correction of a balance, credit (positive) or debit (negative)"""

    owner_id: str = Field(..., min_length=1)
    amount: Decimal = Field(..., description="Signed amount; must not be zero")
    reason: str = Field(..., min_length=1, max_length=255, description="Recorded on the adjustment")
    actor: Optional[str] = Field(default=None, description="Operator performing the adjustment")
    idempotency_key: Optional[str] = Field(
        default=None,
        max_length=128,
        description="Replaying the same key returns the first adjustment"
    )


class NegativeBalanceDTO(BaseModel):
    owner_id: str
    balance: Decimal


class StaleDepositDTO(BaseModel):
    transaction_id: str
    owner_id: str
    amount: Decimal
    gateway_status: Optional[str] = None
    created_at: datetime


class ReconciliationResultDTO(BaseModel):
    """Result of a ledger reconciliation run; nothing is modified"""

    accounts_checked: int
    negative_balances: List[NegativeBalanceDTO]
    stale_deposits: List[StaleDepositDTO]
    orders_missing_commission: int
    discrepancies_found: int
    reconciliation_time: datetime
    execution_time_ms: int
