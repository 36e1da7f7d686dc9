import hashlib
import hmac
import json
from decimal import Decimal
from typing import Optional

import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import create_async_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool
from sqlmodel import SQLModel, func, select
from sqlmodel.ext.asyncio.session import AsyncSession

import storefront.domain  # noqa: F401  registers the tables on SQLModel.metadata
from config import ApplicationConfig
from storefront.adapter.services.core import StorefrontCore
from storefront.adapter.services.notification_service import LoggingNotificationService
from storefront.app.services.payment_gateway import (
    GatewayCallback,
    GatewayInvoice,
    InvoiceRequest,
    PaymentGateway,
)
from storefront.depends import get_notification_service, get_payment_gateway, get_session
from storefront.domain.access_code import AccessCode, AccessCodeStatus
from storefront.domain.errors import GatewayError
from storefront.domain.product import DeliveryMode, Product

IPN_SECRET = "test-ipn-secret"


class FakeGateway(PaymentGateway):
    """In-memory NowPayments stand-in: numbered invoices, scripted payment statuses"""

    name = "nowpayments"

    def __init__(self):
        self.invoices: list[InvoiceRequest] = []
        self.payments: dict[str, dict] = {}
        self.fail_with: Optional[GatewayError] = None

    async def create_invoice(self, request: InvoiceRequest) -> GatewayInvoice:
        if self.fail_with:
            raise self.fail_with
        self.invoices.append(request)
        invoice_id = str(4522625800 + len(self.invoices))
        return GatewayInvoice(
            invoice_id=invoice_id,
            invoice_url=f"https://nowpayments.io/payment/?iid={invoice_id}",
        )

    async def get_payment_status(self, payment_id: str) -> GatewayCallback:
        if self.fail_with:
            raise self.fail_with
        return GatewayCallback.model_validate(self.payments[payment_id])


def sign(body: bytes, secret: str = IPN_SECRET) -> str:
    return hmac.new(secret.encode(), body, hashlib.sha512).hexdigest()


def callback_body(order_ref: str, payment_status: str, payment_id: int = 5077125051, **extra) -> bytes:
    payload = {
        "payment_id": payment_id,
        "order_id": order_ref,
        "payment_status": payment_status,
        "price_amount": 50,
        "price_currency": "usd",
        "pay_amount": 0.00081,
        "actually_paid": 0.00081 if payment_status == "finished" else 0,
        "pay_currency": "btc",
        **extra,
    }
    return json.dumps(payload).encode()


@pytest_asyncio.fixture(scope="function")
async def engine():
    """In-memory SQLite database shared by every session of one test"""
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        echo=False,
        future=True,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )

    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest_asyncio.fixture
async def db_session(engine):
    """Create a new database session for each test"""
    Session = sessionmaker(engine, class_=AsyncSession, expire_on_commit=False, autoflush=False)
    async with Session() as session:
        yield session


@pytest_asyncio.fixture
def gateway():
    return FakeGateway()


@pytest_asyncio.fixture
def ipn_secret(monkeypatch):
    monkeypatch.setattr(ApplicationConfig, "NOWPAYMENTS_IPN_SECRET", IPN_SECRET)
    return IPN_SECRET


@pytest_asyncio.fixture
def core(db_session, gateway, ipn_secret):
    return StorefrontCore(
        db_session,
        ApplicationConfig,
        gateway=gateway,
        notification_service=LoggingNotificationService(),
    )


@pytest_asyncio.fixture
async def client(db_session, gateway, ipn_secret):
    """Create test client with database session and gateway overrides"""
    from storefront.api.app import create_app

    app = create_app(ApplicationConfig)

    async def override_get_session():
        yield db_session

    app.dependency_overrides[get_session] = override_get_session
    app.dependency_overrides[get_payment_gateway] = lambda: gateway
    app.dependency_overrides[get_notification_service] = LoggingNotificationService

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac


@pytest_asyncio.fixture
def seed_product(db_session):
    """Insert a product, optionally with `codes` available access codes"""

    async def _seed(
        price: str = "50",
        codes: int = 0,
        delivery_mode: DeliveryMode = DeliveryMode.AUTOMATIC,
        sku: str = "VPN-1M",
    ) -> Product:
        product = Product(sku=sku, name=f"{sku} access", price=Decimal(price), delivery_mode=delivery_mode)
        db_session.add(product)
        await db_session.flush()
        for n in range(codes):
            db_session.add(AccessCode(product_id=product.id, payload={"code": f"{sku}-{n:04d}"}))
        await db_session.commit()
        return product

    return _seed


@pytest_asyncio.fixture
def fund(client):
    """Fund an owner's balance through an invoice and a signed finished callback"""

    async def _fund(owner_id: str, amount: str = "100", payment_id: int = 5077125051) -> dict:
        invoice = await client.post(
            "/api/payments/invoices", json={"owner_id": owner_id, "amount": amount}
        )
        assert invoice.status_code == 201, invoice.text
        body = callback_body(invoice.json()["order_ref"], "finished", payment_id=payment_id)
        response = await client.post(
            "/api/payments/webhooks/nowpayments",
            content=body,
            headers={"x-nowpayments-sig": sign(body)},
        )
        assert response.status_code == 200, response.text
        return invoice.json()

    return _fund


@pytest_asyncio.fixture
def post_callback(client):
    """POST a payment notification; signed with the IPN secret unless `signature` is given"""

    async def _post(order_ref: str, payment_status: str, signature: Optional[str] = None, **fields):
        body = callback_body(order_ref, payment_status, **fields)
        headers = {"x-nowpayments-sig": signature if signature is not None else sign(body)}
        return await client.post("/api/payments/webhooks/nowpayments", content=body, headers=headers)

    return _post


@pytest_asyncio.fixture
def available_codes(db_session):
    """Count the available access codes of a product"""

    async def _count(product_id: int) -> int:
        result = await db_session.execute(
            select(func.count())
            .select_from(AccessCode)
            .where(AccessCode.product_id == product_id)
            .where(AccessCode.status == AccessCodeStatus.AVAILABLE)
        )
        return result.scalar_one()

    return _count
