"""Integration tests for accounts, transaction settlement and referral payouts"""

from decimal import Decimal

import pytest

from config import ApplicationConfig

REFERRER = "ref-1"
OWNER = "user-42"


async def buy(client, seed_product, fund, price: str = "50") -> dict:
    product = await seed_product(price=price, codes=1)
    await fund(OWNER, "100")
    order = await client.post("/api/orders", json={"owner_id": OWNER, "product_id": product.id})
    paid = await client.post(f"/api/orders/{order.json()['order_number']}/pay")
    assert paid.json()["status"] == "completed", paid.text
    return paid.json()


async def transactions_of(client, owner_id: str) -> list:
    response = await client.get(f"/api/accounts/{owner_id}/transactions")
    return response.json()["transactions"]


@pytest.mark.asyncio
class TestAccounts:

    async def test_open_account_is_idempotent(self, client):
        # Act
        first = await client.post("/api/accounts", json={"owner_id": OWNER, "referred_by": REFERRER})
        second = await client.post("/api/accounts", json={"owner_id": OWNER, "referred_by": "someone-else"})

        # Assert
        assert first.status_code == 200
        assert first.json()["referred_by"] == REFERRER
        assert second.json()["referred_by"] == REFERRER
        assert Decimal(second.json()["balance"]) == Decimal("0")

    async def test_self_referral_is_ignored(self, client):
        response = await client.post("/api/accounts", json={"owner_id": OWNER, "referred_by": OWNER})

        assert response.json()["referred_by"] is None

    async def test_balance_of_unknown_owner(self, client):
        response = await client.get("/api/accounts/nobody/balance")

        assert response.status_code == 404
        assert response.json()["error"]["code"] == "NOT_FOUND"

    async def test_transactions_are_paginated(self, client, fund):
        await fund(OWNER, "20", payment_id=1)
        await fund(OWNER, "30", payment_id=2)
        await fund(OWNER, "40", payment_id=3)

        page = (await client.get(f"/api/accounts/{OWNER}/transactions?limit=2&offset=0")).json()

        assert page["total"] == 3
        assert len(page["transactions"]) == 2
        balance = (await client.get(f"/api/accounts/{OWNER}/balance")).json()
        assert Decimal(balance["balance"]) == Decimal("90")

    async def test_limit_out_of_range(self, client):
        response = await client.get(f"/api/accounts/{OWNER}/transactions?limit=0")

        assert response.status_code == 400
        assert response.json()["error"]["code"] == "VALIDATION_ERROR"


@pytest.mark.asyncio
class TestReferralCommission:

    async def test_completed_order_accrues_commission(self, client, seed_product, fund):
        """
        Given: A customer referred by another owner
        When: The customer completes a 50 USD order
        Then: The referrer receives a pending 10% commission
        """
        # Arrange
        await client.post("/api/accounts", json={"owner_id": REFERRER})
        await client.post("/api/accounts", json={"owner_id": OWNER, "referred_by": REFERRER})

        # Act
        order = await buy(client, seed_product, fund)

        # Assert
        [commission] = await transactions_of(client, REFERRER)
        assert commission["kind"] == "referral_commission"
        assert commission["status"] == "pending"
        assert Decimal(commission["amount"]) == Decimal("5.00")
        assert commission["details"]["order_number"] == order["order_number"]

    async def test_settled_commission_is_paid_out(self, client, seed_product, fund, monkeypatch):
        await client.post("/api/accounts", json={"owner_id": REFERRER})
        await client.post("/api/accounts", json={"owner_id": OWNER, "referred_by": REFERRER})
        await buy(client, seed_product, fund)
        [commission] = await transactions_of(client, REFERRER)

        settled = await client.post(
            f"/api/transactions/{commission['transaction_id']}/settle",
            json={"action": "complete", "actor": "ops"},
        )
        too_small = await client.post(f"/api/referrals/{REFERRER}/payouts")
        monkeypatch.setattr(ApplicationConfig, "REFERRAL_MINIMUM_PAYOUT", 5)
        payout = await client.post(f"/api/referrals/{REFERRER}/payouts")

        assert settled.status_code == 200, settled.text
        assert settled.json()["status"] == "completed"
        assert too_small.status_code == 400
        assert payout.status_code == 201, payout.text
        assert Decimal(payout.json()["amount"]) == Decimal("-5.00")

        balance = (await client.get(f"/api/accounts/{REFERRER}/balance")).json()
        assert Decimal(balance["available_commission"]) == Decimal("0")

    async def test_deposits_cannot_be_settled_by_hand(self, client, gateway):
        invoice = await client.post("/api/payments/invoices", json={"owner_id": OWNER, "amount": "50"})

        response = await client.post(
            f"/api/transactions/{invoice.json()['transaction_id']}/settle",
            json={"action": "complete"},
        )

        assert response.status_code == 400
        assert response.json()["error"]["code"] == "VALIDATION_ERROR"

    async def test_unknown_settle_action(self, client):
        response = await client.post("/api/transactions/COM-1/settle", json={"action": "approve"})

        assert response.status_code == 400


@pytest.mark.asyncio
class TestBalanceAdjustments:

    async def test_credit_then_covered_debit(self, client):
        """
        Given: An open account with no funds
        When: An operator credits 25 and then debits 10
        Then: Both adjustments complete and the balance is 15
        """
        # Arrange
        await client.post("/api/accounts", json={"owner_id": OWNER})

        # Act
        credit = await client.post(
            f"/api/accounts/{OWNER}/adjustments", json={"amount": "25", "reason": "initial balance", "actor": "ops"}
        )
        debit = await client.post(
            f"/api/accounts/{OWNER}/adjustments", json={"amount": "-10", "reason": "correction"}
        )

        # Assert
        assert credit.status_code == 201, credit.text
        assert credit.json()["kind"] == "adjustment"
        assert credit.json()["status"] == "completed"
        assert credit.json()["details"]["actor"] == "ops"
        assert debit.status_code == 201
        balance = (await client.get(f"/api/accounts/{OWNER}/balance")).json()
        assert Decimal(balance["balance"]) == Decimal("15")

    async def test_uncovered_debit_is_kept_as_failed(self, client):
        await client.post("/api/accounts", json={"owner_id": OWNER})

        response = await client.post(f"/api/accounts/{OWNER}/adjustments", json={"amount": "-5", "reason": "chargeback"})

        assert response.status_code == 402
        assert response.json()["error"]["code"] == "INSUFFICIENT_FUNDS"
        assert [(t["kind"], t["status"]) for t in await transactions_of(client, OWNER)] == [("adjustment", "failed")]

    async def test_replayed_key_credits_once(self, client):
        await client.post("/api/accounts", json={"owner_id": OWNER})
        payload = {"amount": "25", "reason": "goodwill", "idempotency_key": "adj-goodwill-1"}

        first = await client.post(f"/api/accounts/{OWNER}/adjustments", json=payload)
        second = await client.post(f"/api/accounts/{OWNER}/adjustments", json=payload)

        assert first.json()["transaction_id"] == second.json()["transaction_id"]
        balance = (await client.get(f"/api/accounts/{OWNER}/balance")).json()
        assert Decimal(balance["balance"]) == Decimal("25")

    async def test_unknown_owner(self, client):
        response = await client.post("/api/accounts/nobody/adjustments", json={"amount": "25", "reason": "x"})

        assert response.status_code == 404

    async def test_zero_amount_is_rejected(self, client):
        response = await client.post(f"/api/accounts/{OWNER}/adjustments", json={"amount": "0", "reason": "x"})

        assert response.status_code == 400
        assert response.json()["error"]["code"] == "VALIDATION_ERROR"
