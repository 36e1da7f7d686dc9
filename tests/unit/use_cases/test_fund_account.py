"""Unit tests for FundAccount use case"""

import pytest
from decimal import Decimal
from unittest.mock import AsyncMock, MagicMock

from storefront.app.services.payment_reconciler import InvoiceHandle
from storefront.app.use_cases.payments import FundAccount, FundAccountCommandDTO
from storefront.domain.errors import GatewayError, ValidationError


@pytest.fixture
def mock_ledger():
    ledger = MagicMock()
    ledger.get_or_create_account = AsyncMock()
    return ledger


@pytest.fixture
def mock_reconciler():
    reconciler = MagicMock()
    reconciler.create_invoice = AsyncMock()
    return reconciler


@pytest.fixture
def use_case(mock_uow, mock_ledger, mock_reconciler):
    return FundAccount(mock_uow, mock_ledger, mock_reconciler)


@pytest.mark.asyncio
class TestFundAccount:

    async def test_returns_invoice(self, use_case, mock_uow, mock_ledger, mock_reconciler):
        """
        Given: A valid deposit amount
        When: Funding the account
        Then: The account exists, the invoice handle is returned and committed
        """
        # Arrange
        mock_reconciler.create_invoice.return_value = InvoiceHandle(
            transaction_id="DEP-1",
            order_ref="FUND_ABC_user-42",
            invoice_id="4522625843",
            invoice_url="https://nowpayments.io/payment/?iid=4522625843",
            amount=Decimal("50"),
            currency="USD",
            status="pending",
        )

        # Act
        result = await use_case.execute(FundAccountCommandDTO(owner_id="user-42", amount=Decimal("50")))

        # Assert
        assert result.is_ok()
        assert result.value.invoice_id == "4522625843"
        mock_ledger.get_or_create_account.assert_called_once_with("user-42")
        mock_reconciler.create_invoice.assert_called_once_with("user-42", Decimal("50"), None)
        mock_uow.commit.assert_called_once()

    async def test_gateway_failure_keeps_pending_deposit(self, use_case, mock_uow, mock_reconciler):
        mock_reconciler.create_invoice.side_effect = GatewayError("Payment gateway timed out")

        result = await use_case.execute(FundAccountCommandDTO(owner_id="user-42", amount=Decimal("50")))

        assert result.error.code == "GATEWAY_ERROR"
        mock_uow.commit.assert_called_once()
        mock_uow.rollback.assert_not_called()

    async def test_out_of_range_amount_rolls_back(self, use_case, mock_uow, mock_reconciler):
        mock_reconciler.create_invoice.side_effect = ValidationError("Minimum deposit amount is $10")

        result = await use_case.execute(FundAccountCommandDTO(owner_id="user-42", amount=Decimal("5")))

        assert result.error.code == "VALIDATION_ERROR"
        mock_uow.commit.assert_not_called()
        mock_uow.rollback.assert_called_once()
