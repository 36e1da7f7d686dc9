"""Integration tests for account funding and payment notifications"""

from decimal import Decimal

import pytest

from storefront.domain.errors import GatewayError

OWNER = "user-42"


async def balance_of(client, owner_id: str = OWNER) -> Decimal:
    response = await client.get(f"/api/accounts/{owner_id}/balance")
    assert response.status_code == 200, response.text
    return Decimal(response.json()["balance"])


async def open_invoice(client, amount: str = "50") -> dict:
    response = await client.post("/api/payments/invoices", json={"owner_id": OWNER, "amount": amount})
    assert response.status_code == 201, response.text
    return response.json()


@pytest.mark.asyncio
class TestCreateInvoice:

    async def test_opens_invoice_with_pending_deposit(self, client, gateway):
        # Act
        response = await client.post("/api/payments/invoices", json={"owner_id": OWNER, "amount": "50.00"})

        # Assert
        assert response.status_code == 201
        data = response.json()
        assert data["status"] == "pending"
        assert data["invoice_url"].endswith(data["invoice_id"])
        assert data["order_ref"].startswith("FUND_") and data["order_ref"].endswith(f"_{OWNER}")
        assert gateway.invoices[0].order_id == data["order_ref"]
        assert await balance_of(client) == Decimal("0")

    async def test_same_order_ref_returns_same_invoice(self, client, gateway):
        payload = {"owner_id": OWNER, "amount": "50", "order_ref": "FUND_FIXED_user-42"}

        first = await client.post("/api/payments/invoices", json=payload)
        second = await client.post("/api/payments/invoices", json=payload)

        assert first.json()["invoice_id"] == second.json()["invoice_id"]
        assert len(gateway.invoices) == 1

    async def test_order_ref_of_another_owner_is_rejected(self, client, gateway):
        """
        Given: user-42 opened FUND_SHARED for 50
        When: user-99 opens an invoice with the same reference for 500
        Then: 400 VALIDATION_ERROR and user-42's deposit is untouched
        """
        # Arrange
        first = await client.post(
            "/api/payments/invoices", json={"owner_id": OWNER, "amount": "50", "order_ref": "FUND_SHARED"}
        )

        # Act
        second = await client.post(
            "/api/payments/invoices", json={"owner_id": "user-99", "amount": "500", "order_ref": "FUND_SHARED"}
        )

        # Assert
        assert first.status_code == 201
        assert second.status_code == 400
        assert second.json()["error"]["code"] == "VALIDATION_ERROR"
        assert len(gateway.invoices) == 1
        assert (await client.get("/api/accounts/user-99/balance")).status_code == 404

    async def test_order_ref_reused_with_other_amount_is_rejected(self, client, gateway):
        payload = {"owner_id": OWNER, "amount": "50", "order_ref": "FUND_FIXED_user-42"}
        await client.post("/api/payments/invoices", json=payload)

        response = await client.post("/api/payments/invoices", json={**payload, "amount": "75"})

        assert response.status_code == 400
        assert len(gateway.invoices) == 1

    @pytest.mark.parametrize("amount", ["5", "10000.01"])
    async def test_amount_outside_range(self, client, amount):
        response = await client.post("/api/payments/invoices", json={"owner_id": OWNER, "amount": amount})

        assert response.status_code == 400
        assert response.json()["error"]["code"] == "VALIDATION_ERROR"

    async def test_malformed_request(self, client):
        response = await client.post("/api/payments/invoices", json={"owner_id": OWNER, "amount": "-1"})

        assert response.status_code == 400
        assert response.json()["error"]["code"] == "VALIDATION_ERROR"

    async def test_gateway_failure_keeps_pending_deposit(self, client, gateway):
        gateway.fail_with = GatewayError("Payment gateway timed out")

        response = await client.post("/api/payments/invoices", json={"owner_id": OWNER, "amount": "50"})

        assert response.status_code == 502
        assert response.json()["error"]["code"] == "GATEWAY_ERROR"
        transactions = (await client.get(f"/api/accounts/{OWNER}/transactions")).json()["transactions"]
        assert [(t["kind"], t["status"]) for t in transactions] == [("deposit", "pending")]


@pytest.mark.asyncio
class TestPaymentWebhook:

    async def test_duplicate_finished_callback_credits_once(self, client, post_callback):
        """
        Given: A pending 50 USD deposit
        When: The same finished notification arrives twice
        Then: The balance is credited once and the replay is a noop
        """
        # Arrange
        invoice = await open_invoice(client)

        # Act
        first = await post_callback(invoice["order_ref"], "finished")
        second = await post_callback(invoice["order_ref"], "finished")

        # Assert
        assert first.status_code == 200
        assert first.json()["result"] == "applied"
        assert first.json()["status"] == "completed"
        assert second.status_code == 200
        assert second.json()["result"] == "noop"
        assert await balance_of(client) == Decimal("50")

    async def test_completed_status_credits_deposit(self, client, post_callback):
        invoice = await open_invoice(client)

        response = await post_callback(invoice["order_ref"], "completed")

        assert response.status_code == 200
        assert response.json()["status"] == "completed"
        assert await balance_of(client) == Decimal("50")

    async def test_refund_before_completion_cancels_deposit(self, client, post_callback):
        invoice = await open_invoice(client)

        response = await post_callback(invoice["order_ref"], "refunded")

        assert response.status_code == 200
        assert response.json()["status"] == "cancelled"
        assert await balance_of(client) == Decimal("0")

    async def test_late_confirming_does_not_regress(self, client, post_callback):
        invoice = await open_invoice(client)
        await post_callback(invoice["order_ref"], "confirmed")

        late = await post_callback(invoice["order_ref"], "confirming")

        assert late.status_code == 200
        assert late.json()["result"] == "noop"
        status = await client.get(f"/api/payments/{invoice['order_ref']}/status")
        assert status.json()["status"] == "completed"
        assert await balance_of(client) == Decimal("50")

    async def test_partially_paid_waits(self, client, post_callback):
        invoice = await open_invoice(client)

        response = await post_callback(invoice["order_ref"], "partially_paid")

        assert response.json()["status"] == "pending"
        status = (await client.get("/api/payments/5077125051/status")).json()
        assert status["gateway_status"] == "partially_paid"
        assert await balance_of(client) == Decimal("0")

    async def test_expired_payment_fails_deposit(self, client, post_callback):
        invoice = await open_invoice(client)

        response = await post_callback(invoice["order_ref"], "expired")

        assert response.json()["status"] == "failed"
        assert await balance_of(client) == Decimal("0")

    async def test_invalid_signature(self, client, post_callback):
        invoice = await open_invoice(client)

        response = await post_callback(invoice["order_ref"], "finished", signature="00" * 64)

        assert response.status_code == 400
        assert response.json()["error"]["code"] == "SIGNATURE_INVALID"
        assert await balance_of(client) == Decimal("0")

    async def test_missing_signature(self, client):
        response = await client.post(
            "/api/payments/webhooks/nowpayments",
            content=b'{"payment_id": 1, "payment_status": "finished"}',
        )

        assert response.status_code == 400
        assert response.json()["error"]["code"] == "SIGNATURE_INVALID"

    async def test_unknown_order_is_retried_by_gateway(self, client, post_callback):
        response = await post_callback("FUND_NOPE_user-42", "finished", payment_id=999)

        assert response.status_code == 500
        assert response.json()["error"]["code"] == "UNKNOWN_ORDER"


@pytest.mark.asyncio
class TestPaymentStatus:

    async def test_unknown_payment(self, client):
        response = await client.get("/api/payments/123/status")

        assert response.status_code == 404
        assert response.json()["error"]["code"] == "NOT_FOUND"

    async def test_refresh_applies_polled_status(self, client, gateway, post_callback):
        """
        Given: A deposit whose finished notification was lost
        When: The status is refreshed from the gateway
        Then: The deposit completes exactly as if the webhook had arrived
        """
        # Arrange
        invoice = await open_invoice(client)
        await post_callback(invoice["order_ref"], "waiting", payment_id=777)
        gateway.payments["777"] = {
            "payment_id": 777,
            "order_id": invoice["order_ref"],
            "payment_status": "finished",
            "actually_paid": 0.00081,
            "pay_currency": "btc",
        }

        # Act
        response = await client.post("/api/payments/777/refresh")

        # Assert
        assert response.status_code == 200, response.text
        assert response.json()["status"] == "completed"
        assert await balance_of(client) == Decimal("50")

    async def test_refresh_before_payment_started(self, client):
        invoice = await open_invoice(client)

        response = await client.post(f"/api/payments/{invoice['order_ref']}/refresh")

        assert response.status_code == 400
        assert response.json()["error"]["code"] == "VALIDATION_ERROR"
