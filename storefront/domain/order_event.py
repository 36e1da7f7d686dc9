"""Order timeline event (audit trail of every order transition)"""

from datetime import datetime
from typing import Optional
from sqlmodel import Field, Column
from sqlalchemy import BigInteger, ForeignKey, String
from storefront.domain.base import BaseModel, id_column


class OrderEvent(BaseModel, table=True):
    __tablename__ = "order_events"

    id: Optional[int] = Field(default=None, sa_column=id_column())

    order_id: int = Field(
        sa_column=Column(BigInteger, ForeignKey("orders.id", ondelete="CASCADE"), nullable=False, index=True),
    )

    event: str = Field(sa_column=Column(String(64), nullable=False))

    from_status: Optional[str] = Field(default=None, sa_column=Column(String(32), nullable=True))

    to_status: Optional[str] = Field(default=None, sa_column=Column(String(32), nullable=True))

    actor: str = Field(sa_column=Column(String(128), nullable=False))

    cause: Optional[str] = Field(default=None, sa_column=Column(String(500), nullable=True))

    created_at: datetime = Field(default_factory=datetime.utcnow)
