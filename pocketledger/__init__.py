"""
PocketLedger - Multi-wallet Expense Tracker

Records expenses against named wallets held in different currencies and
keeps every wallet balance consistent with its expenses, in both the
wallet's own currency and the USD reference currency.
"""

from .currency import (
    Currency,
    CurrencyTable,
    convert_from_reference,
    convert_to_reference,
    format_money,
    rate_to_reference,
    symbol_of,
)
from .db import Database, Expense, ExpenseBook, Wallet
from .errors import ErrorKind, LedgerError, LedgerFailure, OperationResult

__version__ = "0.1.0"

__all__ = [
    "Currency",
    "CurrencyTable",
    "Database",
    "ErrorKind",
    "Expense",
    "ExpenseBook",
    "LedgerError",
    "LedgerFailure",
    "OperationResult",
    "Wallet",
    "convert_from_reference",
    "convert_to_reference",
    "format_money",
    "rate_to_reference",
    "symbol_of",
]
