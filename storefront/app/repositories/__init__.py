from .account_repository import AccountRepository
from .transaction_repository import TransactionRepository
from .order_repository import OrderRepository
from .access_code_repository import AccessCodeRepository
from .product_repository import ProductRepository
from .order_event_repository import OrderEventRepository
from .delivery_file_repository import DeliveryFileRepository

__all__ = [
    "AccountRepository",
    "TransactionRepository",
    "OrderRepository",
    "AccessCodeRepository",
    "ProductRepository",
    "OrderEventRepository",
    "DeliveryFileRepository",
]
