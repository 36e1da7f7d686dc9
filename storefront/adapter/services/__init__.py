from .unit_of_work import SqlAlchemyUnitOfWork
from .nowpayments_gateway import NowPaymentsGateway
from .notification_service import (
    LoggingNotificationService,
    WebhookNotificationService,
    CompositeNotificationService,
    create_notification_service,
)
from .core import StorefrontCore, create_payment_gateway

__all__ = [
    "SqlAlchemyUnitOfWork",
    "NowPaymentsGateway",
    "LoggingNotificationService",
    "WebhookNotificationService",
    "CompositeNotificationService",
    "create_notification_service",
    "StorefrontCore",
    "create_payment_gateway",
]
