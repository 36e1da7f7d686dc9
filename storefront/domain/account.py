"""Account Domain Entity

One row per customer. The row carries no balance: balance is derived from
completed Transactions. It is the lock anchor that serializes every ledger
mutation for its owner.
"""

from datetime import datetime
from typing import Optional
from sqlmodel import Field
from storefront.domain.base import BaseModel, id_column


class Account(BaseModel, table=True):
    """
    Account - Per-owner ledger anchor

    Domain Rules:
    - One account per owner (owner_id is unique)
    - version increases by one on every ledger mutation of the owner
    - referred_by names the referring owner, if any
    """

    __tablename__ = "accounts"

    id: Optional[int] = Field(
        default=None,
        sa_column=id_column(),
        description="Unique account identifier (auto-increment)"
    )

    owner_id: str = Field(
        index=True,
        unique=True,
        description="Owner (customer) identifier"
    )

    referred_by: Optional[str] = Field(
        default=None,
        index=True,
        description="Owner ID of the referrer, if the customer signed up via referral"
    )

    version: int = Field(
        default=0,
        nullable=False,
        description="Optimistic concurrency counter"
    )

    created_at: datetime = Field(
        default_factory=datetime.utcnow,
        description="Account creation timestamp"
    )

    updated_at: datetime = Field(
        default_factory=datetime.utcnow,
        description="Last ledger mutation timestamp"
    )
