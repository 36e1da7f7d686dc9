from .base import BaseModel, generate_uuid, generate_reference
from .account import Account
from .transaction import Transaction, TransactionKind, TransactionStatus
from .product import Product, DeliveryMode
from .order import Order, OrderStatus, PaymentStatus
from .access_code import AccessCode, AccessCodeStatus
from .order_event import OrderEvent
from .delivery_file import DeliveryFile

__all__ = [
    "BaseModel",
    "generate_uuid",
    "generate_reference",
    "Account",
    "Transaction",
    "TransactionKind",
    "TransactionStatus",
    "Product",
    "DeliveryMode",
    "Order",
    "OrderStatus",
    "PaymentStatus",
    "AccessCode",
    "AccessCodeStatus",
    "OrderEvent",
    "DeliveryFile",
]
