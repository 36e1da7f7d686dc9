from fastapi import Depends
from sqlalchemy.ext.asyncio import create_async_engine
from sqlalchemy.orm import sessionmaker
from sqlmodel.ext.asyncio.session import AsyncSession
from config import ApplicationConfig
from storefront.adapter.services.core import StorefrontCore, create_payment_gateway
from storefront.adapter.services.notification_service import create_notification_service
from storefront.app.services.notification_service import NotificationService
from storefront.app.services.payment_gateway import PaymentGateway

engine = create_async_engine(ApplicationConfig.DB_URI, echo=False, future=True)

AsyncSessionLocal = sessionmaker(
    engine, class_=AsyncSession, expire_on_commit=False, autoflush=False
)


async def get_session() -> AsyncSession:
    async with AsyncSessionLocal() as session:
        yield session


def get_payment_gateway() -> PaymentGateway:
    return create_payment_gateway(ApplicationConfig)


def get_notification_service() -> NotificationService:
    return create_notification_service(ApplicationConfig.OPERATOR_NOTIFICATION_WEBHOOK)


async def get_core(
    session: AsyncSession = Depends(get_session),
    gateway: PaymentGateway = Depends(get_payment_gateway),
    notification_service: NotificationService = Depends(get_notification_service),
) -> StorefrontCore:
    return StorefrontCore(session, ApplicationConfig, gateway, notification_service)
