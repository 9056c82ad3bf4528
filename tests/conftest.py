"""
Shared fixtures for PocketLedger tests.

Every test gets a fresh ExpenseBook on its own temporary SQLite file.
"""

import pytest

from pocketledger.db import ExpenseBook


@pytest.fixture
def book(tmp_path):
    """An initialized expense book on an empty database."""
    expense_book = ExpenseBook(tmp_path / "expenses.db")
    yield expense_book
    expense_book.close()


@pytest.fixture
def make_wallet(book):
    """Create a wallet and return it, failing the test if creation fails."""

    def _make(name: str, amount: float, currency: str = "USD"):
        return book.ledger.create_wallet(name, amount, currency).unwrap()

    return _make


@pytest.fixture
def wallet_state(book):
    """Read a wallet back from storage."""

    def _state(wallet_id: int):
        return book.reports.fetch_wallet(wallet_id).unwrap()

    return _state


@pytest.fixture
def expense_count(book):
    """Count expense rows currently stored."""

    def _count() -> int:
        row = book.database.query_one("SELECT COUNT(*) AS count FROM expenses")
        return row["count"]

    return _count
