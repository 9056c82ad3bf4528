"""Tests for reporting queries."""

from datetime import date

import pytest

from pocketledger.errors import ErrorKind


@pytest.fixture
def seeded(book, make_wallet):
    """Two wallets and a handful of expenses across two months."""
    cash = make_wallet("Cash", 1000, "USD")
    euros = make_wallet("Euros", 1000, "EUR")
    rows = [
        (10, "Breakfast", "2024-05-01", "Food", cash.id, "USD"),
        (9.2, "Lunch", "2024-05-01", "Food", euros.id, "EUR"),
        (25, "Train", "2024-05-03", "Transport", cash.id, "USD"),
        (1500, "Sushi", "2024-05-31", "Food", cash.id, "JPY"),
        (40, "Electricity", "2024-04-28", "Bills", euros.id, "USD"),
    ]
    for amount, note, day, category, wallet_id, currency in rows:
        book.ledger.insert_expense(amount, note, day, category, wallet_id, currency).unwrap()
    return {"cash": cash, "euros": euros}


class TestFilteredExpenses:
    """Tests for filtered_expenses()."""

    def test_all_sorted_by_date_descending(self, book, seeded):
        expenses = book.reports.filtered_expenses().unwrap()
        assert [e.note for e in expenses] == [
            "Sushi",
            "Train",
            "Lunch",
            "Breakfast",
            "Electricity",
        ]

    def test_all_sentinel_means_no_filter(self, book, seeded):
        assert len(book.reports.filtered_expenses("All").unwrap()) == 5

    def test_category_filter(self, book, seeded):
        expenses = book.reports.filtered_expenses("Food").unwrap()
        assert {e.note for e in expenses} == {"Breakfast", "Lunch", "Sushi"}

    def test_unknown_category(self, book, seeded):
        result = book.reports.filtered_expenses("Groceries")
        assert result.kind == ErrorKind.INVALID_INPUT

    def test_date_range_is_inclusive(self, book, seeded):
        expenses = book.reports.filtered_expenses(
            start_date="2024-05-01", end_date=date(2024, 5, 3)
        ).unwrap()
        assert {e.note for e in expenses} == {"Breakfast", "Lunch", "Train"}

    def test_min_amount_uses_reference_currency(self, book, seeded):
        # Sushi is 1500 JPY but only 10 USD
        expenses = book.reports.filtered_expenses(min_amount=20).unwrap()
        assert {e.note for e in expenses} == {"Train", "Electricity"}

    def test_wallet_filter(self, book, seeded):
        expenses = book.reports.filtered_expenses(wallet_id=seeded["euros"].id).unwrap()
        assert {e.note for e in expenses} == {"Lunch", "Electricity"}

    def test_limit(self, book, seeded):
        assert len(book.reports.filtered_expenses(limit=2).unwrap()) == 2

    def test_empty(self, book):
        assert book.reports.filtered_expenses().unwrap() == []


class TestTotals:
    """Tests for daily and monthly totals."""

    def test_daily_total_sums_normalized_amounts(self, book, seeded):
        # 10 USD + 9.20 EUR (= 10 USD)
        assert book.reports.daily_total("2024-05-01").unwrap() == 20.0

    def test_daily_total_accepts_date(self, book, seeded):
        assert book.reports.daily_total(date(2024, 5, 3)).unwrap() == 25.0

    def test_daily_total_defaults_to_zero(self, book, seeded):
        assert book.reports.daily_total("2024-06-01").unwrap() == 0.0

    def test_daily_total_invalid_date(self, book):
        assert book.reports.daily_total("yesterday").kind == ErrorKind.INVALID_INPUT

    def test_monthly_total(self, book, seeded):
        assert book.reports.monthly_total("2024-05").unwrap() == 55.0
        assert book.reports.monthly_total("2024-04").unwrap() == 40.0

    def test_yearly_prefix(self, book, seeded):
        assert book.reports.monthly_total("2024").unwrap() == 95.0

    def test_monthly_total_defaults_to_zero(self, book):
        assert book.reports.monthly_total("1999-01").unwrap() == 0.0

    def test_monthly_total_rejects_wildcards(self, book, seeded):
        assert book.reports.monthly_total("%").kind == ErrorKind.INVALID_INPUT

    def test_daily_spending(self, book, seeded):
        totals = book.reports.daily_spending("2024-05").unwrap()
        assert len(totals) == 31
        assert totals[0] == 20.0
        assert totals[2] == 25.0
        assert totals[30] == 10.0
        assert sum(totals) == 55.0

    def test_daily_spending_short_month(self, book):
        assert len(book.reports.daily_spending(date(2024, 2, 1)).unwrap()) == 29
        assert len(book.reports.daily_spending("2023-02").unwrap()) == 28

    def test_daily_spending_invalid_month(self, book):
        assert book.reports.daily_spending("May").kind == ErrorKind.INVALID_INPUT

    def test_category_totals(self, book, seeded):
        totals = book.reports.category_totals().unwrap()
        assert totals["Food"] == 30.0
        assert totals["Transport"] == 25.0
        assert totals["Bills"] == 40.0
        assert totals["Loan"] == 0.0

    def test_category_totals_for_month(self, book, seeded):
        totals = book.reports.category_totals("2024-04").unwrap()
        assert totals["Bills"] == 40.0
        assert totals["Food"] == 0.0

    def test_total_balance(self, book, seeded):
        # Cash: 1000 - 45; Euros: 1086.96 - 50
        assert book.reports.total_balance().unwrap() == 1991.96


class TestLookups:
    """Tests for single-row lookups."""

    def test_fetch_wallets_in_creation_order(self, book, seeded):
        names = [w.name for w in book.reports.fetch_wallets().unwrap()]
        assert names == ["Cash", "Euros"]

    def test_fetch_missing_expense(self, book):
        assert book.reports.fetch_expense(42).kind == ErrorKind.EXPENSE_NOT_FOUND

    def test_fetch_missing_wallet(self, book):
        assert book.reports.fetch_wallet(42).kind == ErrorKind.WALLET_NOT_FOUND
