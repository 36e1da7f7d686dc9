"""Unit tests for Transaction domain rules"""

from decimal import Decimal

import pytest

from storefront.domain.transaction import (
    CREDIT_KINDS,
    DEBIT_KINDS,
    REFERENCE_PREFIXES,
    TransactionKind,
    TransactionStatus,
)


class TestTransactionStatus:
    def test_pending_is_not_terminal(self, make_transaction):
        transaction = make_transaction()

        assert transaction.is_pending is True
        assert transaction.is_terminal is False

    @pytest.mark.parametrize(
        "status",
        [
            TransactionStatus.COMPLETED,
            TransactionStatus.FAILED,
            TransactionStatus.CANCELLED,
            TransactionStatus.REFUNDED,
        ],
    )
    def test_every_other_status_is_terminal(self, make_transaction, status):
        assert make_transaction(status=status).is_terminal is True

    def test_net_amount_excludes_fee(self, make_transaction):
        transaction = make_transaction(amount=Decimal("100"), fee=Decimal("1.5"))

        assert transaction.net_amount == Decimal("98.5")


class TestTransactionKinds:
    def test_refund_is_a_credit(self):
        assert TransactionKind.REFUND in CREDIT_KINDS
        assert TransactionKind.REFUND not in DEBIT_KINDS

    def test_adjustment_has_no_fixed_sign(self):
        assert TransactionKind.ADJUSTMENT not in CREDIT_KINDS
        assert TransactionKind.ADJUSTMENT not in DEBIT_KINDS

    def test_every_kind_has_a_reference_prefix(self):
        assert set(REFERENCE_PREFIXES) == set(TransactionKind)
