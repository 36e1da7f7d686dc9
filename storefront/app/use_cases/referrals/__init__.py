"""Referral use cases"""
from .accrue_referral_commission import AccrueReferralCommission
from .request_payout import RequestPayout
from .retry_referral_commissions import RetryReferralCommissions
from .dtos import (
    AccrueCommissionResponseDTO,
    RequestPayoutCommandDTO,
    CommissionRetryResultDTO,
)

__all__ = [
    "AccrueReferralCommission",
    "RequestPayout",
    "RetryReferralCommissions",
    "AccrueCommissionResponseDTO",
    "RequestPayoutCommandDTO",
    "CommissionRetryResultDTO",
]
