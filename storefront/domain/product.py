"""Product read model

Catalog management lives elsewhere; the core only needs price, delivery
mode and availability.
"""

from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Optional
from sqlmodel import Field, Column
from sqlalchemy import Numeric, String
from storefront.domain.base import BaseModel, id_column


class DeliveryMode(str, Enum):
    AUTOMATIC = "automatic"  # pre-provisioned access codes
    MANUAL = "manual"        # operator uploads files


class Product(BaseModel, table=True):
    __tablename__ = "products"

    id: Optional[int] = Field(default=None, sa_column=id_column())

    sku: str = Field(
        sa_column=Column(String(64), nullable=False, unique=True),
        description="Stock keeping unit"
    )

    name: str = Field(
        sa_column=Column(String(255), nullable=False),
    )

    price: Decimal = Field(
        sa_column=Column(Numeric(18, 6), nullable=False),
        description="Unit price in settlement currency"
    )

    delivery_mode: DeliveryMode = Field(default=DeliveryMode.AUTOMATIC)

    is_active: bool = Field(default=True)

    created_at: datetime = Field(default_factory=datetime.utcnow)
