"""Delivery file reference recorded for a manually delivered order"""

from datetime import datetime
from typing import Optional
from sqlmodel import Field, Column
from sqlalchemy import BigInteger, ForeignKey, String, Text
from storefront.domain.base import BaseModel, id_column


class DeliveryFile(BaseModel, table=True):
    __tablename__ = "delivery_files"

    id: Optional[int] = Field(default=None, sa_column=id_column())

    order_id: int = Field(
        sa_column=Column(BigInteger, ForeignKey("orders.id", ondelete="CASCADE"), nullable=False, index=True),
    )

    reference: str = Field(
        sa_column=Column(String(500), nullable=False),
        description="Storage reference of the delivered file (opaque to the core)"
    )

    notes: Optional[str] = Field(default=None, sa_column=Column(Text, nullable=True))

    created_at: datetime = Field(default_factory=datetime.utcnow)
