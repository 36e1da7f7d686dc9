"""Order Domain Entity

One purchase intent and its fulfillment state.
"""

from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Optional
from sqlmodel import Field, Column, Index
from sqlalchemy import BigInteger, CheckConstraint, ForeignKey, Numeric, String, Text
from storefront.domain.base import BaseModel, id_column
from storefront.domain.product import DeliveryMode


class OrderStatus(str, Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    PENDING_DELIVERY = "pending_delivery"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    REFUNDED = "refunded"


class PaymentStatus(str, Enum):
    PENDING = "pending"
    PAID = "paid"
    FAILED = "failed"
    REFUNDED = "refunded"


class Order(BaseModel, table=True):
    """
    Order - Purchase of `quantity` units of one product

    Domain Rules:
    - total_amount = unit_price * quantity
    - net_amount = total_amount - discount_amount
    - refunded_amount never exceeds net_amount
    - Cancellable only while pending and not paid
    - Completed only with `quantity` finalized codes (automatic) or
      at least one delivery file (manual)
    """

    __tablename__ = "orders"
    __table_args__ = (
        CheckConstraint("quantity >= 1", name="quantity_positive"),
        CheckConstraint("discount_amount >= 0", name="discount_non_negative"),
        CheckConstraint("refunded_amount >= 0", name="refunded_non_negative"),
        Index("ix_orders_owner_status", "owner_id", "status"),
    )

    id: Optional[int] = Field(default=None, sa_column=id_column())

    order_number: str = Field(
        sa_column=Column(String(32), nullable=False, unique=True, index=True),
        description="Unique order number (e.g., ORD-3F9A1C0B7D2E)"
    )

    owner_id: str = Field(index=True)

    product_id: int = Field(
        sa_column=Column(BigInteger, ForeignKey("products.id"), nullable=False),
    )

    quantity: int = Field(default=1)

    unit_price: Decimal = Field(sa_column=Column(Numeric(18, 6), nullable=False))

    total_amount: Decimal = Field(sa_column=Column(Numeric(18, 6), nullable=False))

    discount_amount: Decimal = Field(
        default=Decimal("0"),
        sa_column=Column(Numeric(18, 6), nullable=False, default=0),
    )

    net_amount: Decimal = Field(sa_column=Column(Numeric(18, 6), nullable=False))

    refunded_amount: Decimal = Field(
        default=Decimal("0"),
        sa_column=Column(Numeric(18, 6), nullable=False, default=0),
        description="Sum of refunds issued against this order"
    )

    status: OrderStatus = Field(default=OrderStatus.PENDING)

    payment_status: PaymentStatus = Field(default=PaymentStatus.PENDING)

    delivery_mode: DeliveryMode = Field(default=DeliveryMode.AUTOMATIC)

    notes: Optional[str] = Field(default=None, sa_column=Column(Text, nullable=True))

    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)
    paid_at: Optional[datetime] = Field(default=None)
    completed_at: Optional[datetime] = Field(default=None)
    cancelled_at: Optional[datetime] = Field(default=None)

    @property
    def can_be_cancelled(self) -> bool:
        return self.status == OrderStatus.PENDING and self.payment_status != PaymentStatus.PAID

    @property
    def refundable_amount(self) -> Decimal:
        return self.net_amount - self.refunded_amount

    @property
    def is_manual_delivery(self) -> bool:
        return self.delivery_mode == DeliveryMode.MANUAL

    def append_note(self, line: str) -> None:
        self.notes = f"{self.notes}\n{line}" if self.notes else line
