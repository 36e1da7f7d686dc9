"""Access Code Domain Entity

One unit of sellable credential inventory. The credential payload is opaque
to the core.
"""

from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional
from sqlmodel import Field, Column, Index
from sqlalchemy import JSON, BigInteger, ForeignKey
from storefront.domain.base import BaseModel, id_column


class AccessCodeStatus(str, Enum):
    AVAILABLE = "available"
    RESERVED = "reserved"
    SOLD = "sold"
    DELIVERED = "delivered"


FINALIZED_STATUSES = frozenset({AccessCodeStatus.SOLD, AccessCodeStatus.DELIVERED})


class AccessCode(BaseModel, table=True):
    """
    Access Code - available -> reserved -> sold/delivered, or back to available

    Domain Rules:
    - available codes carry no order reference
    - reserved codes may be released; sold/delivered codes are final
    """

    __tablename__ = "access_codes"
    __table_args__ = (
        Index("ix_access_codes_product_status", "product_id", "status"),
    )

    id: Optional[int] = Field(default=None, sa_column=id_column())

    product_id: int = Field(
        sa_column=Column(BigInteger, ForeignKey("products.id"), nullable=False),
    )

    payload: Dict[str, Any] = Field(
        default_factory=dict,
        sa_column=Column(JSON, nullable=False, default=dict),
        description="Opaque credential fields"
    )

    status: AccessCodeStatus = Field(default=AccessCodeStatus.AVAILABLE)

    order_id: Optional[int] = Field(
        default=None,
        sa_column=Column(BigInteger, ForeignKey("orders.id"), nullable=True, index=True),
    )

    reserved_at: Optional[datetime] = Field(default=None)
    sold_at: Optional[datetime] = Field(default=None)
    delivered_at: Optional[datetime] = Field(default=None)
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)
