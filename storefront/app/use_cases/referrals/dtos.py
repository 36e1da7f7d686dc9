"""Data Transfer Objects for Referral Use Cases"""

from datetime import datetime
from typing import List, Optional
from pydantic import BaseModel, Field
from storefront.app.use_cases.ledger.dtos import TransactionDTO


class AccrueCommissionResponseDTO(BaseModel):
    order_number: str
    accrued: bool = Field(..., description="False when no commission is due for this order")
    commission: Optional[TransactionDTO] = None


class RequestPayoutCommandDTO(BaseModel):
    owner_id: str = Field(..., min_length=1, description="Referrer requesting the payout")


class CommissionRetryResultDTO(BaseModel):
    orders_checked: int
    commissions_accrued: int
    failures: List[str] = Field(default_factory=list, description="Order numbers that failed again")
    run_time: datetime
    execution_time_ms: int
