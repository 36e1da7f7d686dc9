"""Composition of the core components for one database session

Configuration values are read here and handed to the components as explicit
constructor arguments.
"""

from decimal import Decimal
from typing import Optional
from sqlmodel.ext.asyncio.session import AsyncSession
from storefront.adapter.repositories import (
    SqlAlchemyAccessCodeRepository,
    SqlAlchemyAccountRepository,
    SqlAlchemyDeliveryFileRepository,
    SqlAlchemyOrderEventRepository,
    SqlAlchemyOrderRepository,
    SqlAlchemyProductRepository,
    SqlAlchemyTransactionRepository,
)
from storefront.adapter.services.nowpayments_gateway import NowPaymentsGateway
from storefront.adapter.services.notification_service import create_notification_service
from storefront.adapter.services.unit_of_work import SqlAlchemyUnitOfWork
from storefront.app.services.inventory_allocator import InventoryAllocator
from storefront.app.services.ledger import Ledger
from storefront.app.services.notification_service import NotificationService
from storefront.app.services.order_fulfillment import OrderFulfillmentEngine
from storefront.app.services.payment_gateway import PaymentGateway
from storefront.app.services.payment_reconciler import PaymentReconciler
from storefront.app.services.referral_commission import ReferralCommissionAccrual


def create_payment_gateway(config) -> PaymentGateway:
    return NowPaymentsGateway(
        api_key=config.NOWPAYMENTS_API_KEY,
        base_url=config.NOWPAYMENTS_BASE_URL,
        timeout=float(config.GATEWAY_TIMEOUT_SECONDS),
    )


class StorefrontCore:
    """Repositories, unit of work and core components sharing one session"""

    def __init__(
        self,
        session: AsyncSession,
        config,
        gateway: Optional[PaymentGateway] = None,
        notification_service: Optional[NotificationService] = None,
    ):
        self.config = config
        self.uow = SqlAlchemyUnitOfWork(session)

        self.account_repo = SqlAlchemyAccountRepository(session)
        self.transaction_repo = SqlAlchemyTransactionRepository(session)
        self.order_repo = SqlAlchemyOrderRepository(session)
        self.access_code_repo = SqlAlchemyAccessCodeRepository(session)
        self.product_repo = SqlAlchemyProductRepository(session)
        self.event_repo = SqlAlchemyOrderEventRepository(session)
        self.delivery_file_repo = SqlAlchemyDeliveryFileRepository(session)

        self.gateway = gateway or create_payment_gateway(config)
        self.notification_service = notification_service or create_notification_service(
            config.OPERATOR_NOTIFICATION_WEBHOOK
        )

        self.ledger = Ledger(
            self.account_repo,
            self.transaction_repo,
            settlement_currency=config.SETTLEMENT_CURRENCY,
        )
        self.allocator = InventoryAllocator(self.access_code_repo)
        self.reconciler = PaymentReconciler(
            ledger=self.ledger,
            transaction_repo=self.transaction_repo,
            gateway=self.gateway,
            ipn_secret=config.NOWPAYMENTS_IPN_SECRET,
            min_deposit=Decimal(str(config.MIN_DEPOSIT_AMOUNT)),
            max_deposit=Decimal(str(config.MAX_DEPOSIT_AMOUNT)),
            settlement_currency=config.SETTLEMENT_CURRENCY,
            callback_url=config.NOWPAYMENTS_CALLBACK_URL,
            success_url=config.NOWPAYMENTS_SUCCESS_URL,
            cancel_url=config.NOWPAYMENTS_CANCEL_URL,
        )
        self.fulfillment = OrderFulfillmentEngine(
            ledger=self.ledger,
            allocator=self.allocator,
            order_repo=self.order_repo,
            product_repo=self.product_repo,
            transaction_repo=self.transaction_repo,
            event_repo=self.event_repo,
            delivery_file_repo=self.delivery_file_repo,
            notification_service=self.notification_service,
        )
        self.referrals = ReferralCommissionAccrual(
            ledger=self.ledger,
            account_repo=self.account_repo,
            order_repo=self.order_repo,
            commission_rate=Decimal(str(config.REFERRAL_COMMISSION_RATE)),
            minimum_payout=Decimal(str(config.REFERRAL_MINIMUM_PAYOUT)),
        )

    @property
    def retry_attempts(self) -> int:
        return int(self.config.CONCURRENCY_RETRY_ATTEMPTS)
