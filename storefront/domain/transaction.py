"""Transaction Domain Entity

Append-oriented ledger movements. Balance is the sum of net_amount over an
owner's completed transactions.

Amounts are signed from the owner's point of view: deposits, refunds and
referral commissions are credits (positive); purchases and payout requests
are debits (negative); adjustments may be either.
"""

from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, Optional
from sqlmodel import Field, Column, Index
from sqlalchemy import (
    JSON,
    BigInteger,
    CheckConstraint,
    ForeignKey,
    Numeric,
    String,
    UniqueConstraint,
)
from storefront.domain.base import BaseModel, id_column


class TransactionKind(str, Enum):
    DEPOSIT = "deposit"
    PURCHASE = "purchase"
    REFUND = "refund"
    REFERRAL_COMMISSION = "referral_commission"
    PAYOUT_REQUEST = "payout_request"
    ADJUSTMENT = "adjustment"


class TransactionStatus(str, Enum):
    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"
    REFUNDED = "refunded"


CREDIT_KINDS = frozenset(
    {TransactionKind.DEPOSIT, TransactionKind.REFUND, TransactionKind.REFERRAL_COMMISSION}
)
DEBIT_KINDS = frozenset({TransactionKind.PURCHASE, TransactionKind.PAYOUT_REQUEST})

REFERENCE_PREFIXES = {
    TransactionKind.DEPOSIT: "DEP",
    TransactionKind.PURCHASE: "TXN",
    TransactionKind.REFUND: "REF",
    TransactionKind.REFERRAL_COMMISSION: "COM",
    TransactionKind.PAYOUT_REQUEST: "PAY",
    TransactionKind.ADJUSTMENT: "ADJ",
}


class Transaction(BaseModel, table=True):
    """
    Transaction - One signed monetary movement with a lifecycle status

    Domain Rules:
    - Status only moves forward: pending -> completed | failed | cancelled | refunded
    - Terminal rows are never mutated; corrections are new compensating rows
    - (gateway, gateway_transaction_id) is unique when present
    - idempotency_key is unique (deposits use the funding correlation id)
    - net_amount = amount - fee
    """

    __tablename__ = "transactions"
    __table_args__ = (
        UniqueConstraint("gateway", "gateway_transaction_id", name="uq_transactions_gateway_txn"),
        CheckConstraint("fee >= 0", name="fee_non_negative"),
        Index("ix_transactions_owner_status", "owner_id", "status"),
        Index("ix_transactions_created_at", "created_at"),
    )

    id: Optional[int] = Field(
        default=None,
        sa_column=id_column(),
        description="Unique transaction identifier (auto-increment)"
    )

    transaction_id: str = Field(
        unique=True,
        index=True,
        description="External transaction reference (e.g., DEP-1A2B3C4D5E6F)"
    )

    owner_id: str = Field(
        index=True,
        description="Owner of the balance this transaction moves"
    )

    order_id: Optional[int] = Field(
        default=None,
        sa_column=Column(BigInteger, ForeignKey("orders.id"), nullable=True, index=True),
        description="Order this transaction belongs to (purchases, refunds, commissions)"
    )

    kind: TransactionKind = Field(
        description="Movement type"
    )

    amount: Decimal = Field(
        sa_column=Column(Numeric(18, 6), nullable=False),
        description="Signed amount in settlement currency"
    )

    fee: Decimal = Field(
        default=Decimal("0"),
        sa_column=Column(Numeric(18, 6), nullable=False, default=0),
        description="Fee withheld (>= 0)"
    )

    net_amount: Decimal = Field(
        sa_column=Column(Numeric(18, 6), nullable=False),
        description="amount - fee; the quantity that affects balance"
    )

    currency: str = Field(
        default="USD",
        sa_column=Column(String(3), nullable=False, default="USD"),
        description="Settlement currency (ISO 4217)"
    )

    payment_currency: Optional[str] = Field(
        default=None,
        sa_column=Column(String(16), nullable=True),
        description="Crypto currency the customer paid with"
    )

    payment_amount: Optional[Decimal] = Field(
        default=None,
        sa_column=Column(Numeric(28, 12), nullable=True),
        description="Amount paid in payment_currency"
    )

    status: TransactionStatus = Field(
        default=TransactionStatus.PENDING,
        index=True,
        description="Lifecycle status"
    )

    gateway: Optional[str] = Field(
        default=None,
        sa_column=Column(String(32), nullable=True),
        description="Payment gateway name (e.g., 'nowpayments')"
    )

    gateway_transaction_id: Optional[str] = Field(
        default=None,
        sa_column=Column(String(128), nullable=True, index=True),
        description="Gateway-assigned payment id"
    )

    idempotency_key: str = Field(
        unique=True,
        index=True,
        description="Unique key guarding against duplicate creation"
    )

    details: Dict[str, Any] = Field(
        default_factory=dict,
        sa_column=Column(JSON, nullable=False, default=dict),
        description="Free-form metadata (gateway annotations, refund reasons)"
    )

    description: Optional[str] = Field(
        default=None,
        sa_column=Column(String(255), nullable=True),
    )

    failure_reason: Optional[str] = Field(
        default=None,
        sa_column=Column(String(255), nullable=True),
    )

    created_at: datetime = Field(default_factory=datetime.utcnow)

    updated_at: datetime = Field(default_factory=datetime.utcnow)

    completed_at: Optional[datetime] = Field(default=None)

    @property
    def is_pending(self) -> bool:
        return self.status == TransactionStatus.PENDING

    @property
    def is_terminal(self) -> bool:
        return self.status != TransactionStatus.PENDING
