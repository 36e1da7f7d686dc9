from .account_repository import SqlAlchemyAccountRepository
from .transaction_repository import SqlAlchemyTransactionRepository
from .order_repository import SqlAlchemyOrderRepository
from .access_code_repository import SqlAlchemyAccessCodeRepository
from .product_repository import SqlAlchemyProductRepository
from .order_event_repository import SqlAlchemyOrderEventRepository
from .delivery_file_repository import SqlAlchemyDeliveryFileRepository

__all__ = [
    "SqlAlchemyAccountRepository",
    "SqlAlchemyTransactionRepository",
    "SqlAlchemyOrderRepository",
    "SqlAlchemyAccessCodeRepository",
    "SqlAlchemyProductRepository",
    "SqlAlchemyOrderEventRepository",
    "SqlAlchemyDeliveryFileRepository",
]
