"""
Read-only reporting queries over wallets and expenses.

Totals are always sums of ``normalizedAmount``, since expenses may be
recorded in mixed currencies.
"""

import calendar
import logging
import re
from datetime import date as date_type
from datetime import datetime
from typing import Any, Optional, Union

from pocketledger.config import (
    ALL_CATEGORIES,
    CATEGORIES,
    DEFAULT_CATEGORY,
    ERROR_MESSAGES,
)
from pocketledger.currency import round_money
from pocketledger.errors import (
    ExpenseNotFoundError,
    InvalidInputError,
    WalletNotFoundError,
)

from .base import Database, ledger_operation
from .models import Expense, Wallet
from .schema import SchemaManager

logger = logging.getLogger(__name__)

DateLike = Union[str, date_type]

_DATE_PREFIX = re.compile(r"^\d{4}(-\d{2}(-\d{2})?)?$")


def _as_date(value: DateLike, field: str = "date") -> str:
    if isinstance(value, datetime):
        return value.date().isoformat()
    if isinstance(value, date_type):
        return value.isoformat()
    try:
        return date_type.fromisoformat(value).isoformat()
    except (TypeError, ValueError):
        raise InvalidInputError(f"Invalid {field}, expected YYYY-MM-DD: {value!r}")


def _as_year_month(value: Union[str, date_type]) -> tuple[int, int]:
    if isinstance(value, date_type):
        return value.year, value.month
    try:
        parsed = datetime.strptime(value, "%Y-%m")
    except (TypeError, ValueError):
        raise InvalidInputError(f"Invalid month, expected YYYY-MM: {value!r}")
    return parsed.year, parsed.month


class ReportingQueries:
    """Aggregations and lookups layered on the ledger's persisted state."""

    def __init__(self, database: Database, schema: SchemaManager):
        self.database = database
        self.schema = schema

    # =========================================================================
    # Lookups
    # =========================================================================

    @ledger_operation("fetch_wallets")
    def fetch_wallets(self) -> list[Wallet]:
        rows = self.database.query_all(
            "SELECT * FROM wallets ORDER BY id ASC", label="fetch_wallets"
        )
        return [Wallet.from_row(row) for row in rows]

    @ledger_operation("fetch_wallet")
    def fetch_wallet(self, wallet_id: int) -> Wallet:
        row = self.database.query_one(
            "SELECT * FROM wallets WHERE id = ?", (wallet_id,), label="fetch_wallet"
        )
        if row is None:
            raise WalletNotFoundError(
                ERROR_MESSAGES["wallet_not_found"].format(wallet_id=wallet_id)
            )
        return Wallet.from_row(row)

    @ledger_operation("fetch_expense")
    def fetch_expense(self, expense_id: int) -> Expense:
        row = self.database.query_one(
            "SELECT * FROM expenses WHERE id = ?", (expense_id,), label="fetch_expense"
        )
        if row is None:
            raise ExpenseNotFoundError(
                ERROR_MESSAGES["expense_not_found"].format(expense_id=expense_id)
            )
        return Expense.from_row(row)

    @ledger_operation("filtered_expenses")
    def filtered_expenses(
        self,
        category: Optional[str] = ALL_CATEGORIES,
        start_date: Optional[DateLike] = None,
        end_date: Optional[DateLike] = None,
        min_amount: Optional[float] = None,
        wallet_id: Optional[int] = None,
        limit: Optional[int] = None,
    ) -> list[Expense]:
        """
        List expenses, newest first.

        Args:
            category: Restrict to one category; "All" or None means no filter
            start_date: Inclusive lower date bound
            end_date: Inclusive upper date bound
            min_amount: Minimum reference-currency amount
            wallet_id: Restrict to one wallet
            limit: Maximum number of rows

        Returns:
            List of Expense objects ordered by date descending
        """
        query = "SELECT * FROM expenses WHERE 1=1"
        params: list[Any] = []

        if category and category != ALL_CATEGORIES:
            if category not in CATEGORIES:
                raise InvalidInputError(f"Unknown category: {category}")
            query += " AND category = ?"
            params.append(category)
        if start_date:
            query += " AND date >= ?"
            params.append(_as_date(start_date, "start date"))
        if end_date:
            query += " AND date <= ?"
            params.append(_as_date(end_date, "end date"))
        if min_amount is not None:
            query += " AND normalizedAmount >= ?"
            params.append(min_amount)
        if wallet_id is not None:
            query += " AND walletId = ?"
            params.append(wallet_id)

        query += " ORDER BY date DESC, id DESC"
        if limit is not None:
            query += " LIMIT ?"
            params.append(limit)

        rows = self.database.query_all(query, params, label="filtered_expenses")
        return [Expense.from_row(row) for row in rows]

    # =========================================================================
    # Totals
    # =========================================================================

    @ledger_operation("daily_total")
    def daily_total(self, day: DateLike) -> float:
        """Total spent on one day, in the reference currency."""
        row = self.database.query_one(
            """
            SELECT COALESCE(ROUND(SUM(normalizedAmount), 2), 0) AS total
            FROM expenses WHERE date = ?
            """,
            (_as_date(day),),
            label="daily_total",
        )
        return round_money(row["total"] if row else 0)

    @ledger_operation("monthly_total")
    def monthly_total(self, prefix: str) -> float:
        """Total spent for dates starting with ``prefix`` (usually YYYY-MM)."""
        if not isinstance(prefix, str) or not _DATE_PREFIX.match(prefix):
            raise InvalidInputError(f"Invalid date prefix: {prefix!r}")
        row = self.database.query_one(
            """
            SELECT COALESCE(ROUND(SUM(normalizedAmount), 2), 0) AS total
            FROM expenses WHERE date LIKE ?
            """,
            (f"{prefix}%",),
            label="monthly_total",
        )
        return round_money(row["total"] if row else 0)

    @ledger_operation("daily_spending")
    def daily_spending(self, year_month: Union[str, date_type]) -> list[float]:
        """
        Per-day spending for a month.

        Returns:
            One reference-currency total per calendar day, index 0 being the 1st
        """
        year, month = _as_year_month(year_month)
        days = calendar.monthrange(year, month)[1]
        totals = [0.0] * days

        rows = self.database.query_all(
            """
            SELECT date, SUM(normalizedAmount) AS total
            FROM expenses
            WHERE date LIKE ?
            GROUP BY date
            """,
            (f"{year:04d}-{month:02d}-%",),
            label="daily_spending",
        )
        for row in rows:
            day = int(row["date"].split("-")[2])
            if 1 <= day <= days:
                totals[day - 1] = round_money(row["total"] or 0)
        return totals

    @ledger_operation("category_totals")
    def category_totals(
        self, year_month: Optional[Union[str, date_type]] = None
    ) -> dict[str, float]:
        """Reference-currency totals per category, optionally for one month."""
        totals = {category: 0.0 for category in CATEGORIES}
        query = "SELECT category, SUM(normalizedAmount) AS total FROM expenses"
        params: list[Any] = []
        if year_month is not None:
            year, month = _as_year_month(year_month)
            query += " WHERE date LIKE ?"
            params.append(f"{year:04d}-{month:02d}-%")
        query += " GROUP BY category"

        for row in self.database.query_all(query, params, label="category_totals"):
            key = row["category"] or DEFAULT_CATEGORY
            totals[key] = round_money(totals.get(key, 0.0) + (row["total"] or 0))
        return totals

    @ledger_operation("total_balance")
    def total_balance(self) -> float:
        """Sum of all wallet balances in the reference currency."""
        row = self.database.query_one(
            "SELECT COALESCE(SUM(normalizedAmount), 0) AS total FROM wallets",
            label="total_balance",
        )
        return round_money(row["total"] if row else 0)
