"""Tests for schema creation and additive migrations."""

import sqlite3
import threading

import pytest

from pocketledger.db import Database, ExpenseBook, SchemaManager
from pocketledger.errors import ErrorKind


def columns(db: Database, table: str) -> list[str]:
    return [row["name"] for row in db.query_all(f"PRAGMA table_info({table})")]


class TestInitialize:
    """Tests for SchemaManager.initialize()."""

    def test_creates_tables(self, book):
        assert book.is_ready
        assert columns(book.database, "wallets") == [
            "id",
            "name",
            "amount",
            "normalizedAmount",
            "currency",
        ]
        assert columns(book.database, "expenses") == [
            "id",
            "amount",
            "normalizedAmount",
            "note",
            "date",
            "category",
            "currency",
            "walletId",
        ]

    def test_repeated_calls_are_no_ops(self, book):
        assert book.initialize()
        assert book.initialize()
        assert len(columns(book.database, "expenses")) == 8

    def test_second_manager_on_same_file(self, tmp_path):
        path = tmp_path / "shared.db"
        first = ExpenseBook(path)
        second = ExpenseBook(path)
        try:
            assert first.is_ready and second.is_ready
            assert len(columns(second.database, "wallets")) == 5
        finally:
            first.close()
            second.close()

    def test_concurrent_initialize(self, tmp_path):
        database = Database(tmp_path / "concurrent.db")
        schema = SchemaManager(database)
        results = []

        def init():
            results.append(schema.initialize())

        threads = [threading.Thread(target=init) for _ in range(8)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert results == [True] * 8
        assert len(columns(database, "expenses")) == 8
        database.close()


class TestNotInitialized:
    """Operations must fail fast before the schema is ready."""

    def test_ledger_rejects_calls_before_initialize(self, tmp_path):
        book = ExpenseBook(tmp_path / "lazy.db", init_schema=False)
        try:
            result = book.ledger.create_wallet("Cash", 100, "USD")
            assert not result.success
            assert result.kind == ErrorKind.NOT_INITIALIZED

            result = book.reports.monthly_total("2024-05")
            assert result.kind == ErrorKind.NOT_INITIALIZED

            assert book.initialize()
            assert book.ledger.create_wallet("Cash", 100, "USD").success
        finally:
            book.close()

    def test_failed_migration_is_logged_not_raised(self, tmp_path, monkeypatch, caplog):
        def broken(self):
            raise sqlite3.OperationalError("simulated migration failure")

        monkeypatch.setattr(SchemaManager, "_migrate_columns", broken)
        book = ExpenseBook(tmp_path / "broken.db")
        try:
            assert not book.is_ready
            assert "Schema migration failed" in caplog.text
            result = book.ledger.create_wallet("Cash", 100, "USD")
            assert result.kind == ErrorKind.NOT_INITIALIZED
        finally:
            book.close()


class TestMigrations:
    """Tests for upgrading databases created by older versions."""

    def test_adds_missing_columns_and_backfills(self, tmp_path):
        path = tmp_path / "legacy.db"
        conn = sqlite3.connect(path)
        conn.executescript(
            """
            CREATE TABLE wallets (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                name TEXT NOT NULL UNIQUE,
                amount REAL NOT NULL,
                currency TEXT DEFAULT 'USD' NOT NULL
            );
            CREATE TABLE expenses (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                amount REAL NOT NULL,
                note TEXT NOT NULL,
                date TEXT NOT NULL,
                category TEXT DEFAULT 'General',
                currency TEXT DEFAULT 'USD',
                walletId INTEGER,
                FOREIGN KEY (walletId) REFERENCES wallets (id)
            );
            INSERT INTO wallets (name, amount, currency) VALUES ('Bank', 1000, 'NGN');
            INSERT INTO expenses (amount, note, date, category, currency, walletId)
                VALUES (9.2, 'Coffee', '2024-05-01', 'Food', 'EUR', 1);
            """
        )
        conn.commit()
        conn.close()

        book = ExpenseBook(path)
        try:
            assert book.is_ready
            assert "normalizedAmount" in columns(book.database, "wallets")
            assert "normalizedAmount" in columns(book.database, "expenses")

            wallet = book.reports.fetch_wallet(1).unwrap()
            assert wallet.amount == 1000
            assert wallet.normalized_amount == 0.69

            expense = book.reports.fetch_expense(1).unwrap()
            assert expense.normalized_amount == 10.0
            assert expense.note == "Coffee"
        finally:
            book.close()

    def test_first_release_expenses_table(self, tmp_path):
        path = tmp_path / "v1.db"
        conn = sqlite3.connect(path)
        conn.executescript(
            """
            CREATE TABLE expenses (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                amount REAL NOT NULL,
                note TEXT NOT NULL,
                date TEXT NOT NULL
            );
            INSERT INTO expenses (amount, note, date) VALUES (12.5, 'Taxi', '2024-01-02');
            """
        )
        conn.commit()
        conn.close()

        book = ExpenseBook(path)
        try:
            expense = book.reports.fetch_expense(1).unwrap()
            assert expense.category == "General"
            assert expense.currency == "USD"
            assert expense.wallet_id is None
            assert expense.normalized_amount == 12.5
        finally:
            book.close()

    def test_backfill_runs_only_once(self, tmp_path):
        path = tmp_path / "once.db"
        book = ExpenseBook(path)
        wallet = book.ledger.create_wallet("Cash", 100, "USD").unwrap()
        book.database.run(
            "UPDATE wallets SET normalizedAmount = ? WHERE id = ?", (42.0, wallet.id)
        )
        book.close()

        reopened = ExpenseBook(path)
        try:
            assert reopened.reports.fetch_wallet(wallet.id).unwrap().normalized_amount == 42.0
        finally:
            reopened.close()
