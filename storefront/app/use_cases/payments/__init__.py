"""Payment use cases"""
from .fund_account import FundAccount
from .handle_payment_callback import HandlePaymentCallback
from .get_payment_status import GetPaymentStatus
from .refresh_payment_status import RefreshPaymentStatus
from .dtos import (
    FundAccountCommandDTO,
    InvoiceResponseDTO,
    PaymentCallbackCommandDTO,
    CallbackResponseDTO,
    PaymentStatusResponseDTO,
)

__all__ = [
    "FundAccount",
    "HandlePaymentCallback",
    "GetPaymentStatus",
    "RefreshPaymentStatus",
    "FundAccountCommandDTO",
    "InvoiceResponseDTO",
    "PaymentCallbackCommandDTO",
    "CallbackResponseDTO",
    "PaymentStatusResponseDTO",
]
