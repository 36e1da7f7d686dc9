from datetime import datetime
from decimal import Decimal
from unittest.mock import AsyncMock, MagicMock

import pytest

from storefront.domain.account import Account
from storefront.domain.order import Order, OrderStatus, PaymentStatus
from storefront.domain.product import DeliveryMode
from storefront.domain.transaction import Transaction, TransactionKind, TransactionStatus


@pytest.fixture
def mock_uow():
    """Mock unit of work"""
    uow = MagicMock()
    uow.__aenter__ = AsyncMock(return_value=uow)
    uow.__aexit__ = AsyncMock()
    uow.commit = AsyncMock()
    uow.rollback = AsyncMock()
    return uow


@pytest.fixture
def make_transaction():
    """Factory for Transaction entities"""

    def _make(
        id=1,
        owner_id="user-42",
        kind=TransactionKind.DEPOSIT,
        amount=Decimal("100.000000"),
        fee=Decimal("0"),
        status=TransactionStatus.PENDING,
        idempotency_key="FUND_ABC_user-42",
        **kwargs,
    ):
        return Transaction(
            id=id,
            transaction_id=kwargs.pop("transaction_id", f"TXN-{id:012d}"),
            owner_id=owner_id,
            kind=kind,
            amount=amount,
            fee=fee,
            net_amount=amount - fee,
            currency="USD",
            status=status,
            idempotency_key=idempotency_key,
            details=kwargs.pop("details", {}),
            created_at=kwargs.pop("created_at", datetime.utcnow()),
            updated_at=datetime.utcnow(),
            **kwargs,
        )

    return _make


@pytest.fixture
def make_order():
    """Factory for Order entities"""

    def _make(
        id=10,
        order_number="ORD-0000000000AA",
        owner_id="user-42",
        quantity=1,
        unit_price=Decimal("50.000000"),
        discount_amount=Decimal("0"),
        status=OrderStatus.PENDING,
        payment_status=PaymentStatus.PENDING,
        delivery_mode=DeliveryMode.AUTOMATIC,
        refunded_amount=Decimal("0"),
    ):
        total = unit_price * quantity
        return Order(
            id=id,
            order_number=order_number,
            owner_id=owner_id,
            product_id=7,
            quantity=quantity,
            unit_price=unit_price,
            total_amount=total,
            discount_amount=discount_amount,
            net_amount=total - discount_amount,
            refunded_amount=refunded_amount,
            status=status,
            payment_status=payment_status,
            delivery_mode=delivery_mode,
            created_at=datetime.utcnow(),
            updated_at=datetime.utcnow(),
        )

    return _make


@pytest.fixture
def sample_account():
    return Account(id=1, owner_id="user-42", referred_by=None, version=3)
