from .unit_of_work import UnitOfWork
from .notification_service import NotificationService
from .payment_gateway import (
    PaymentGateway,
    GatewayPaymentStatus,
    GatewayCallback,
    GatewayInvoice,
    InvoiceRequest,
)
from .ledger import Ledger
from .inventory_allocator import InventoryAllocator
from .payment_reconciler import (
    PaymentReconciler,
    CallbackOutcome,
    CallbackResult,
    InvoiceHandle,
    StatusSnapshot,
)
from .order_fulfillment import OrderFulfillmentEngine
from .referral_commission import ReferralCommissionAccrual

__all__ = [
    "UnitOfWork",
    "NotificationService",
    "PaymentGateway",
    "GatewayPaymentStatus",
    "GatewayCallback",
    "GatewayInvoice",
    "InvoiceRequest",
    "Ledger",
    "InventoryAllocator",
    "PaymentReconciler",
    "CallbackOutcome",
    "CallbackResult",
    "InvoiceHandle",
    "StatusSnapshot",
    "OrderFulfillmentEngine",
    "ReferralCommissionAccrual",
]
