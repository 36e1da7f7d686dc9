"""Unit tests for ReconcileLedger use case

Tests cover:
- Consistent ledger
- Negative balances, stale deposits and missing commissions
- Operator alert on discrepancies
- Repository failures
"""

import pytest
from datetime import datetime, timedelta
from decimal import Decimal
from unittest.mock import AsyncMock, MagicMock

from storefront.app.use_cases.ledger import ReconcileLedger
from storefront.domain.order import OrderStatus


@pytest.fixture
def mock_transaction_repo():
    repo = MagicMock()
    repo.get_completed_balances = AsyncMock(return_value={})
    repo.get_stale_pending = AsyncMock(return_value=[])
    return repo


@pytest.fixture
def mock_order_repo():
    repo = MagicMock()
    repo.get_completed_without_commission = AsyncMock(return_value=[])
    return repo


@pytest.fixture
def mock_notification_service():
    service = MagicMock()
    service.send_operator_alert = AsyncMock(return_value=True)
    return service


@pytest.fixture
def use_case(mock_uow, mock_transaction_repo, mock_order_repo, mock_notification_service):
    return ReconcileLedger(
        mock_uow,
        mock_transaction_repo,
        mock_order_repo,
        notification_service=mock_notification_service,
        stale_deposit_hours=24,
    )


@pytest.mark.asyncio
class TestReconcileLedger:

    async def test_consistent_ledger(self, use_case, mock_transaction_repo, mock_notification_service):
        # Arrange
        mock_transaction_repo.get_completed_balances.return_value = {
            "user-1": Decimal("10"),
            "user-2": Decimal("0"),
        }

        # Act
        result = await use_case.execute()

        # Assert
        assert result.is_ok()
        assert result.value.accounts_checked == 2
        assert result.value.discrepancies_found == 0
        mock_notification_service.send_operator_alert.assert_not_called()

    async def test_reports_discrepancies(
        self,
        use_case,
        mock_transaction_repo,
        mock_order_repo,
        mock_notification_service,
        make_transaction,
        make_order,
    ):
        mock_transaction_repo.get_completed_balances.return_value = {
            "user-1": Decimal("-5"),
            "user-2": Decimal("20"),
        }
        stale = make_transaction(
            id=3,
            owner_id="user-2",
            details={"payment_status": "partially_paid"},
            created_at=datetime.utcnow() - timedelta(hours=30),
        )
        mock_transaction_repo.get_stale_pending.return_value = [stale]
        mock_order_repo.get_completed_without_commission.return_value = [
            make_order(status=OrderStatus.COMPLETED)
        ]

        result = await use_case.execute()

        assert result.is_ok()
        assert [b.owner_id for b in result.value.negative_balances] == ["user-1"]
        assert result.value.stale_deposits[0].gateway_status == "partially_paid"
        assert result.value.orders_missing_commission == 1
        assert result.value.discrepancies_found == 3
        alert_type, _, context = mock_notification_service.send_operator_alert.call_args.args
        assert alert_type == "ledger_discrepancy"
        assert context["negative_balances"] == 1

    async def test_stale_cutoff_uses_configured_hours(self, use_case, mock_transaction_repo):
        await use_case.execute()

        kind, cutoff, _ = mock_transaction_repo.get_stale_pending.call_args.args
        assert kind.value == "deposit"
        assert datetime.utcnow() - cutoff >= timedelta(hours=24)

    async def test_repository_failure(self, use_case, mock_uow, mock_transaction_repo):
        mock_transaction_repo.get_completed_balances.side_effect = Exception("Database error")

        result = await use_case.execute()

        assert result.is_err()
        assert result.error.code == "RECONCILIATION_FAILED"
        mock_uow.rollback.assert_called_once()
