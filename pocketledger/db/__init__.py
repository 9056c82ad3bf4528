"""
Database module for the PocketLedger expense tracker.

This module provides the storage and ledger layers for wallets and
expenses.

Structure:
- base.py: Persistence adapter (connection, statements, transactions)
- schema.py: Table creation and additive column migrations
- models.py: Data models (Wallet, Expense)
- ledger.py: Balance-changing wallet and expense operations
- queries.py: Read-only totals and listings
- repository.py: ExpenseBook facade composing all of the above
"""

from .base import Database, RunResult, ledger_operation
from .ledger import LedgerEngine
from .models import Expense, Wallet
from .queries import ReportingQueries
from .repository import ExpenseBook
from .schema import SchemaManager

__all__ = [
    # Base
    "Database",
    "RunResult",
    "ledger_operation",
    # Models
    "Expense",
    "Wallet",
    # Components
    "ExpenseBook",
    "LedgerEngine",
    "ReportingQueries",
    "SchemaManager",
]
