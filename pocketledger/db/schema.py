"""
Schema management for the wallets and expenses tables.

Creates both tables when absent, then inspects the existing column sets
and adds whatever columns older databases are missing. Runs once per
process before the ledger accepts any operation.
"""

import logging
import sqlite3
import threading
from typing import Optional

from pocketledger.config import ERROR_MESSAGES
from pocketledger.currency import CurrencyTable, get_currency_table
from pocketledger.errors import NotInitializedError, UnknownCurrencyError

from .base import Database

logger = logging.getLogger(__name__)

WALLETS_TABLE = """
    CREATE TABLE IF NOT EXISTS wallets (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        name TEXT NOT NULL UNIQUE,
        amount REAL NOT NULL,
        normalizedAmount REAL NOT NULL DEFAULT 0,
        currency TEXT NOT NULL DEFAULT 'USD'
    )
"""

EXPENSES_TABLE = """
    CREATE TABLE IF NOT EXISTS expenses (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        amount REAL NOT NULL,
        normalizedAmount REAL NOT NULL DEFAULT 0,
        note TEXT NOT NULL,
        date TEXT NOT NULL,
        category TEXT DEFAULT 'General',
        currency TEXT DEFAULT 'USD',
        walletId INTEGER REFERENCES wallets(id)
    )
"""

# Columns added after the first release, with the DDL used to add them
MIGRATED_COLUMNS = {
    "wallets": [
        ("currency", "TEXT NOT NULL DEFAULT 'USD'"),
        ("normalizedAmount", "REAL NOT NULL DEFAULT 0"),
    ],
    "expenses": [
        ("category", "TEXT DEFAULT 'General'"),
        ("currency", "TEXT DEFAULT 'USD'"),
        ("walletId", "INTEGER REFERENCES wallets(id)"),
        ("normalizedAmount", "REAL NOT NULL DEFAULT 0"),
    ],
}

INDEXES = [
    ("idx_expenses_date", "expenses", "date"),
    ("idx_expenses_category", "expenses", "category"),
    ("idx_expenses_wallet_id", "expenses", "walletId"),
]


class SchemaManager:
    """
    Idempotent schema bootstrap and additive migrations.

    ``initialize()`` is guarded so concurrent or repeated calls run the
    migration at most once; later calls see the cached result and no-op.
    A failed migration is logged and leaves the manager uninitialized, so
    every ledger call fails fast with ``NotInitializedError``.
    """

    def __init__(self, database: Database, currencies: Optional[CurrencyTable] = None):
        self.database = database
        self.currencies = get_currency_table(currencies)
        self._lock = threading.Lock()
        self._initialized = False

    @property
    def is_initialized(self) -> bool:
        return self._initialized

    def ensure_ready(self):
        """Raise NotInitializedError unless the schema has been initialized."""
        if not self._initialized:
            raise NotInitializedError(ERROR_MESSAGES["not_initialized"])

    def initialize(self) -> bool:
        """
        Create and migrate the schema.

        Returns:
            True if the schema is ready, False if migration failed
        """
        with self._lock:
            if self._initialized:
                logger.debug("Schema already migrated")
                return True

            try:
                with self.database.transaction("schema:initialize"):
                    self.database.execute(WALLETS_TABLE, label="schema:create_wallets")
                    self.database.execute(EXPENSES_TABLE, label="schema:create_expenses")
                    added = self._migrate_columns()
                    self._create_indexes()
            except sqlite3.Error as e:
                logger.error(f"Schema migration failed: {e}", exc_info=True)
                return False

            self._initialized = True
            if added:
                logger.info(f"Schema migrated, added columns: {', '.join(added)}")
            else:
                logger.info("Schema initialized")
            return True

    def table_columns(self, table: str) -> list[str]:
        """List the column names of a table."""
        rows = self.database.query_all(
            f"PRAGMA table_info({table})", label=f"schema:table_info_{table}"
        )
        return [row["name"] for row in rows]

    def _migrate_columns(self) -> list[str]:
        """Add missing columns, preserving existing rows."""
        added = []
        for table, columns in MIGRATED_COLUMNS.items():
            existing = set(self.table_columns(table))
            for column, ddl in columns:
                if column in existing:
                    continue
                self.database.execute(
                    f"ALTER TABLE {table} ADD COLUMN {column} {ddl}",
                    label=f"schema:add_{table}_{column}",
                )
                added.append(f"{table}.{column}")
                if column == "normalizedAmount":
                    self._backfill_normalized(table)
        return added

    def _backfill_normalized(self, table: str):
        """
        Compute normalizedAmount once for rows that predate the column.

        Rows in an unknown currency keep the default of 0.
        """
        rows = self.database.query_all(
            f"SELECT id, amount, currency FROM {table}",
            label=f"schema:backfill_select_{table}",
        )
        for row in rows:
            try:
                normalized = self.currencies.convert_to_reference(
                    row["amount"], row["currency"] or self.currencies.reference
                )
            except UnknownCurrencyError:
                logger.warning(
                    f"Cannot backfill {table}.{row['id']}: "
                    f"unknown currency {row['currency']}"
                )
                continue
            self.database.run(
                f"UPDATE {table} SET normalizedAmount = ? WHERE id = ?",
                (normalized, row["id"]),
                label=f"schema:backfill_update_{table}",
            )
        logger.info(f"Backfilled normalizedAmount for {len(rows)} {table} row(s)")

    def _create_indexes(self):
        """Create database indexes for query performance."""
        for index_name, table, columns in INDEXES:
            self.database.execute(
                f"CREATE INDEX IF NOT EXISTS {index_name} ON {table}({columns})",
                label=f"schema:{index_name}",
            )
