"""Ledger use cases"""
from .get_balance import GetBalance
from .list_transactions import ListTransactions
from .open_account import OpenAccount
from .settle_transaction import SettleTransaction
from .adjust_balance import AdjustBalance
from .reconcile_ledger import ReconcileLedger
from .dtos import (
    TransactionDTO,
    OpenAccountCommandDTO,
    AccountResponseDTO,
    BalanceResponseDTO,
    ListTransactionsResponseDTO,
    SettlementAction,
    SettleTransactionCommandDTO,
    AdjustBalanceCommandDTO,
    NegativeBalanceDTO,
    StaleDepositDTO,
    ReconciliationResultDTO,
)

__all__ = [
    "GetBalance",
    "ListTransactions",
    "OpenAccount",
    "SettleTransaction",
    "AdjustBalance",
    "ReconcileLedger",
    "TransactionDTO",
    "OpenAccountCommandDTO",
    "AccountResponseDTO",
    "BalanceResponseDTO",
    "ListTransactionsResponseDTO",
    "SettlementAction",
    "SettleTransactionCommandDTO",
    "AdjustBalanceCommandDTO",
    "NegativeBalanceDTO",
    "StaleDepositDTO",
    "ReconciliationResultDTO",
]
