"""Unit tests for PaymentReconciler

Tests cover:
- HMAC-SHA512 signature verification
- Callback status mapping (complete, fail, annotate only)
- Idempotent replays and out-of-order callbacks
- Unknown orders
- Invoice creation bounds and gateway failures
"""

import hashlib
import hmac
import json
import pytest
from decimal import Decimal
from unittest.mock import AsyncMock, MagicMock

from storefront.app.services.payment_gateway import GatewayCallback, GatewayInvoice
from storefront.app.services.payment_reconciler import CallbackResult, PaymentReconciler
from storefront.domain.errors import (
    AlreadyTerminalError,
    GatewayError,
    SignatureVerificationError,
    ValidationError,
)
from storefront.domain.transaction import TransactionKind, TransactionStatus

SECRET = "ipn-secret"


def sign(body: bytes, secret: str = SECRET) -> str:
    return hmac.new(secret.encode(), body, hashlib.sha512).hexdigest()


@pytest.fixture
def mock_ledger():
    ledger = MagicMock()
    ledger.record_pending = AsyncMock()
    ledger.annotate = AsyncMock()
    ledger.complete = AsyncMock()
    ledger.fail = AsyncMock()
    ledger.cancel = AsyncMock()
    return ledger


@pytest.fixture
def mock_transaction_repo():
    repo = MagicMock()
    repo.get_by_gateway_id = AsyncMock(return_value=None)
    repo.get_by_idempotency_key = AsyncMock(return_value=None)
    return repo


@pytest.fixture
def mock_gateway():
    gateway = MagicMock()
    gateway.name = "nowpayments"
    gateway.create_invoice = AsyncMock(
        return_value=GatewayInvoice(invoice_id="4522625843", invoice_url="https://pay.example/i/4522625843")
    )
    return gateway


@pytest.fixture
def reconciler(mock_ledger, mock_transaction_repo, mock_gateway):
    return PaymentReconciler(
        ledger=mock_ledger,
        transaction_repo=mock_transaction_repo,
        gateway=mock_gateway,
        ipn_secret=SECRET,
        min_deposit=Decimal("10"),
        max_deposit=Decimal("10000"),
    )


@pytest.fixture
def pending_deposit(make_transaction):
    return make_transaction(
        id=5,
        gateway="nowpayments",
        gateway_transaction_id="4522625843",
        idempotency_key="FUND_ABC_user-42",
    )


def callback(status: str, **overrides) -> GatewayCallback:
    payload = {
        "payment_id": 5077125051,
        "invoice_id": 4522625843,
        "order_id": "FUND_ABC_user-42",
        "payment_status": status,
        "pay_amount": "0.00081",
        "actually_paid": "0.00081",
        "pay_currency": "btc",
    }
    payload.update(overrides)
    return GatewayCallback.model_validate(payload)


class TestSignature:

    def test_valid_signature(self, reconciler):
        body = json.dumps({"payment_status": "finished"}).encode()

        assert reconciler.verify_signature(body, sign(body)) is True

    def test_signature_is_case_insensitive_hex(self, reconciler):
        body = b'{"payment_status":"finished"}'

        assert reconciler.verify_signature(body, sign(body).upper()) is True

    def test_tampered_body_is_rejected(self, reconciler):
        body = b'{"payment_status":"finished","price_amount":10}'
        signature = sign(body)

        assert reconciler.verify_signature(body.replace(b"10", b"99"), signature) is False

    def test_wrong_secret_is_rejected(self, reconciler):
        body = b'{"payment_status":"finished"}'

        assert reconciler.verify_signature(body, sign(body, "other-secret")) is False

    def test_missing_signature_is_rejected(self, reconciler):
        with pytest.raises(SignatureVerificationError):
            reconciler.ensure_signature(b"{}", None)

    def test_unconfigured_secret_rejects_everything(self, mock_ledger, mock_transaction_repo, mock_gateway):
        reconciler = PaymentReconciler(mock_ledger, mock_transaction_repo, mock_gateway, ipn_secret="")
        body = b"{}"

        assert reconciler.verify_signature(body, sign(body, "")) is False


@pytest.mark.asyncio
class TestApplyCallback:

    @pytest.mark.parametrize("status", ["confirmed", "finished", "completed"])
    async def test_completing_status_completes_deposit(
        self, reconciler, mock_ledger, mock_transaction_repo, pending_deposit, status
    ):
        # Arrange
        mock_transaction_repo.get_by_gateway_id = AsyncMock(side_effect=[None, pending_deposit])
        mock_transaction_repo.get_by_id = AsyncMock(return_value=pending_deposit)
        mock_ledger.annotate = AsyncMock(return_value=pending_deposit)

        # Act
        outcome = await reconciler.apply_callback(callback(status))

        # Assert
        assert outcome.result == CallbackResult.APPLIED
        mock_ledger.complete.assert_called_once_with(5)
        annotations = mock_ledger.annotate.call_args.args[1]
        assert annotations["payment_id"] == "5077125051"
        assert annotations["payment_status"] == status

    @pytest.mark.parametrize("status, reason", [("failed", "payment_failed"), ("expired", "payment_expired")])
    async def test_failing_status_fails_deposit(
        self, reconciler, mock_ledger, mock_transaction_repo, pending_deposit, status, reason
    ):
        mock_transaction_repo.get_by_idempotency_key = AsyncMock(return_value=pending_deposit)
        mock_transaction_repo.get_by_id = AsyncMock(return_value=pending_deposit)
        mock_ledger.annotate = AsyncMock(return_value=pending_deposit)

        outcome = await reconciler.apply_callback(callback(status))

        assert outcome.result == CallbackResult.APPLIED
        mock_ledger.fail.assert_called_once_with(5, reason)
        mock_ledger.complete.assert_not_called()

    @pytest.mark.parametrize("status", ["waiting", "confirming", "sending", "partially_paid"])
    async def test_intermediate_status_only_annotates(
        self, reconciler, mock_ledger, mock_transaction_repo, pending_deposit, status
    ):
        """
        Given: A pending deposit
        When: A non-terminal status arrives (including partially_paid)
        Then: The deposit is annotated and stays pending
        """
        mock_transaction_repo.get_by_idempotency_key = AsyncMock(return_value=pending_deposit)
        mock_transaction_repo.get_by_id = AsyncMock(return_value=pending_deposit)
        mock_ledger.annotate = AsyncMock(return_value=pending_deposit)

        outcome = await reconciler.apply_callback(callback(status))

        assert outcome.result == CallbackResult.APPLIED
        assert outcome.status == "pending"
        mock_ledger.annotate.assert_called_once()
        mock_ledger.complete.assert_not_called()
        mock_ledger.fail.assert_not_called()

    @pytest.mark.parametrize("status, reason", [("refunded", "payment_refunded"), ("cancelled", "payment_cancelled")])
    async def test_refund_before_completion_cancels_deposit(
        self, reconciler, mock_ledger, mock_transaction_repo, pending_deposit, status, reason
    ):
        """
        Given: A deposit that was never credited
        When: The gateway reports it refunded or cancelled
        Then: The deposit is cancelled with the gateway reason
        """
        mock_transaction_repo.get_by_idempotency_key = AsyncMock(return_value=pending_deposit)
        mock_transaction_repo.get_by_id = AsyncMock(return_value=pending_deposit)
        mock_ledger.annotate = AsyncMock(return_value=pending_deposit)

        outcome = await reconciler.apply_callback(callback(status))

        assert outcome.result == CallbackResult.APPLIED
        mock_ledger.cancel.assert_called_once_with(5, reason)
        mock_ledger.complete.assert_not_called()
        mock_ledger.fail.assert_not_called()

    async def test_replay_on_terminal_deposit_is_noop(
        self, reconciler, mock_ledger, mock_transaction_repo, make_transaction
    ):
        completed = make_transaction(status=TransactionStatus.COMPLETED)
        mock_transaction_repo.get_by_idempotency_key = AsyncMock(return_value=completed)

        outcome = await reconciler.apply_callback(callback("finished"))

        assert outcome.result == CallbackResult.NOOP
        assert outcome.status == "completed"
        mock_ledger.annotate.assert_not_called()
        mock_ledger.complete.assert_not_called()

    async def test_late_intermediate_status_does_not_regress(
        self, reconciler, mock_ledger, mock_transaction_repo, make_transaction
    ):
        completed = make_transaction(status=TransactionStatus.COMPLETED)
        mock_transaction_repo.get_by_idempotency_key = AsyncMock(return_value=completed)

        outcome = await reconciler.apply_callback(callback("confirming"))

        assert outcome.result == CallbackResult.NOOP
        assert completed.status == TransactionStatus.COMPLETED

    async def test_race_to_terminal_is_noop(
        self, reconciler, mock_ledger, mock_transaction_repo, pending_deposit
    ):
        mock_transaction_repo.get_by_idempotency_key = AsyncMock(return_value=pending_deposit)
        mock_ledger.annotate = AsyncMock(side_effect=AlreadyTerminalError(5, "completed"))

        outcome = await reconciler.apply_callback(callback("finished"))

        assert outcome.result == CallbackResult.NOOP
        mock_ledger.complete.assert_not_called()

    async def test_unknown_order_is_rejected(self, reconciler, mock_ledger):
        outcome = await reconciler.apply_callback(callback("finished", order_id="FUND_NOPE"))

        assert outcome.result == CallbackResult.REJECTED
        assert outcome.reason == "UNKNOWN_ORDER"
        mock_ledger.annotate.assert_not_called()

    async def test_non_deposit_match_is_rejected(
        self, reconciler, mock_transaction_repo, make_transaction
    ):
        purchase = make_transaction(kind=TransactionKind.PURCHASE, amount=Decimal("-10"))
        mock_transaction_repo.get_by_idempotency_key = AsyncMock(return_value=purchase)

        outcome = await reconciler.apply_callback(callback("finished"))

        assert outcome.result == CallbackResult.REJECTED


@pytest.mark.asyncio
class TestCreateInvoice:

    @pytest.mark.parametrize("amount", [Decimal("9.99"), Decimal("10000.01")])
    async def test_amount_outside_range_is_rejected(self, reconciler, mock_ledger, amount):
        with pytest.raises(ValidationError):
            await reconciler.create_invoice("user-42", amount)

        mock_ledger.record_pending.assert_not_called()

    async def test_records_deposit_then_opens_invoice(
        self, reconciler, mock_ledger, mock_gateway, pending_deposit
    ):
        # Arrange
        mock_ledger.record_pending = AsyncMock(return_value=pending_deposit)
        pending_deposit.details = {"invoice_id": "4522625843", "invoice_url": "https://pay.example/i/4522625843"}
        mock_ledger.annotate = AsyncMock(return_value=pending_deposit)

        # Act
        handle = await reconciler.create_invoice("user-42", Decimal("100"), order_ref="FUND_ABC_user-42")

        # Assert
        assert handle.invoice_url == "https://pay.example/i/4522625843"
        assert handle.order_ref == "FUND_ABC_user-42"
        record_args = mock_ledger.record_pending.call_args
        assert record_args.args[1] == TransactionKind.DEPOSIT
        assert record_args.kwargs["idempotency_key"] == "FUND_ABC_user-42"
        invoice_request = mock_gateway.create_invoice.call_args.args[0]
        assert invoice_request.order_id == "FUND_ABC_user-42"

    async def test_generated_order_ref_names_owner(self, reconciler, mock_ledger, pending_deposit):
        mock_ledger.record_pending = AsyncMock(return_value=pending_deposit)
        mock_ledger.annotate = AsyncMock(return_value=pending_deposit)

        await reconciler.create_invoice("user-42", Decimal("50"))

        order_ref = mock_ledger.record_pending.call_args.kwargs["idempotency_key"]
        assert order_ref.startswith("FUND_")
        assert order_ref.endswith("_user-42")

    async def test_gateway_failure_leaves_deposit_pending(
        self, reconciler, mock_ledger, mock_gateway, pending_deposit
    ):
        mock_ledger.record_pending = AsyncMock(return_value=pending_deposit)
        mock_gateway.create_invoice = AsyncMock(side_effect=GatewayError("Payment gateway timed out"))

        with pytest.raises(GatewayError):
            await reconciler.create_invoice("user-42", Decimal("100"))

        mock_ledger.record_pending.assert_called_once()
        mock_ledger.annotate.assert_not_called()
        mock_ledger.fail.assert_not_called()

    async def test_repeated_order_ref_returns_existing_invoice(
        self, reconciler, mock_ledger, mock_gateway, mock_transaction_repo, pending_deposit
    ):
        pending_deposit.details = {"invoice_id": "4522625843", "invoice_url": "https://pay.example/i/4522625843"}
        mock_transaction_repo.get_by_idempotency_key = AsyncMock(return_value=pending_deposit)

        handle = await reconciler.create_invoice("user-42", Decimal("100"), order_ref="FUND_ABC_user-42")

        assert handle.invoice_id == "4522625843"
        mock_ledger.record_pending.assert_not_called()
        mock_gateway.create_invoice.assert_not_called()

    async def test_order_ref_of_another_owner_is_rejected(
        self, reconciler, mock_ledger, mock_gateway, mock_transaction_repo, pending_deposit
    ):
        """
        Given: FUND_ABC_user-42 already funds user-42 with 100
        When: Another owner opens an invoice with the same reference
        Then: ValidationError; nothing is recorded and no invoice is opened
        """
        # Arrange
        pending_deposit.details = {"invoice_id": "4522625843", "invoice_url": "https://pay.example/i/4522625843"}
        mock_transaction_repo.get_by_idempotency_key = AsyncMock(return_value=pending_deposit)

        # Act & Assert
        with pytest.raises(ValidationError, match="belongs to another deposit"):
            await reconciler.create_invoice("user-99", Decimal("500"), order_ref="FUND_ABC_user-42")

        mock_ledger.record_pending.assert_not_called()
        mock_gateway.create_invoice.assert_not_called()

    async def test_order_ref_reused_with_other_amount_is_rejected(
        self, reconciler, mock_ledger, mock_gateway, mock_transaction_repo, pending_deposit
    ):
        mock_transaction_repo.get_by_idempotency_key = AsyncMock(return_value=pending_deposit)

        with pytest.raises(ValidationError) as exc_info:
            await reconciler.create_invoice("user-42", Decimal("50"), order_ref="FUND_ABC_user-42")

        assert "requested=50" in exc_info.value.reason
        mock_ledger.annotate.assert_not_called()
        mock_gateway.create_invoice.assert_not_called()
