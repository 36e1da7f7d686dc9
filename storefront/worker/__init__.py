"""Background workers for the storefront service"""
from .commission_retry import CommissionRetryWorker
from .ledger_reconciler import LedgerReconcilerWorker

__all__ = ["CommissionRetryWorker", "LedgerReconcilerWorker"]
