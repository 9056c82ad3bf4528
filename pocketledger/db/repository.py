"""
Expense book facade.

Composes the persistence adapter, schema manager, ledger engine and
reporting queries around one explicitly owned database handle.
"""

import logging
from pathlib import Path
from typing import Optional, Union

from pocketledger.currency import CurrencyTable, get_currency_table

from .base import Database
from .ledger import LedgerEngine
from .queries import ReportingQueries
from .schema import SchemaManager

logger = logging.getLogger(__name__)


class ExpenseBook:
    """
    Main entry point for the tracker.

    Usage::

        with ExpenseBook("data/expenses.db") as book:
            wallet = book.ledger.create_wallet("Cash", 100, "USD").unwrap()
            book.ledger.insert_expense(30, "Lunch", "2024-05-01", "Food", wallet.id)
            book.reports.monthly_total("2024-05")
    """

    def __init__(
        self,
        db_path: Optional[Union[Path, str]] = None,
        database: Optional[Database] = None,
        currencies: Optional[CurrencyTable] = None,
        init_schema: bool = True,
    ):
        """
        Initialize the book.

        Args:
            db_path: Path to the SQLite database file (ignored if database is given)
            database: An existing adapter to share
            currencies: Currency table; defaults to the built-in one
            init_schema: Whether to create and migrate the schema now
        """
        self.database = database or Database(db_path)
        self.currencies = get_currency_table(currencies)
        self.schema = SchemaManager(self.database, self.currencies)
        self.ledger = LedgerEngine(self.database, self.schema, self.currencies)
        self.reports = ReportingQueries(self.database, self.schema)
        if init_schema:
            self.initialize()

    def initialize(self) -> bool:
        """Create and migrate the schema. Safe to call repeatedly."""
        ready = self.schema.initialize()
        if not ready:
            logger.error("ExpenseBook schema is not ready; ledger operations will fail")
        return ready

    @property
    def is_ready(self) -> bool:
        return self.schema.is_initialized

    def close(self):
        self.database.close()

    def __enter__(self) -> "ExpenseBook":
        return self

    def __exit__(self, *exc_info):
        self.close()
