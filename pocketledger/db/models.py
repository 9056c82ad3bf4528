"""
Database models for the PocketLedger expense tracker.

Rows are read by column name rather than position, since additive
migrations append columns to the end of older tables.
"""

from dataclasses import dataclass
from typing import Any, Mapping, Optional

from pocketledger.config import DEFAULT_CATEGORY, DEFAULT_CURRENCY


@dataclass
class Wallet:
    """
    A named pot of money held in a single currency.

    ``amount`` is the balance in the wallet's own currency and
    ``normalized_amount`` the same balance in the reference currency; the
    ledger always updates the two together.
    """

    id: Optional[int]
    name: str
    amount: float
    normalized_amount: float
    currency: str = DEFAULT_CURRENCY

    def __post_init__(self):
        if self.name:
            self.name = self.name.strip()

    def to_dict(self) -> dict:
        """Convert to dictionary representation."""
        return {
            "id": self.id,
            "name": self.name,
            "amount": self.amount,
            "normalized_amount": self.normalized_amount,
            "currency": self.currency,
        }

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "Wallet":
        """Create a Wallet from a database row."""
        return cls(
            id=row["id"],
            name=row["name"],
            amount=row["amount"],
            normalized_amount=row["normalizedAmount"] or 0.0,
            currency=row["currency"] or DEFAULT_CURRENCY,
        )


@dataclass
class Expense:
    """
    A single spend recorded against a wallet.

    ``amount`` and ``currency`` are kept as entered. ``normalized_amount`` is
    the reference-currency value computed when the row was written and is
    never recomputed afterwards.
    """

    id: Optional[int]
    amount: float
    normalized_amount: float
    note: str
    date: str  # YYYY-MM-DD
    category: str = DEFAULT_CATEGORY
    currency: str = DEFAULT_CURRENCY
    wallet_id: Optional[int] = None

    def to_dict(self) -> dict:
        """Convert to dictionary representation."""
        return {
            "id": self.id,
            "amount": self.amount,
            "normalized_amount": self.normalized_amount,
            "note": self.note,
            "date": self.date,
            "category": self.category,
            "currency": self.currency,
            "wallet_id": self.wallet_id,
        }

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "Expense":
        """Create an Expense from a database row."""
        return cls(
            id=row["id"],
            amount=row["amount"],
            normalized_amount=row["normalizedAmount"] or 0.0,
            note=row["note"],
            date=row["date"],
            category=row["category"] or DEFAULT_CATEGORY,
            currency=row["currency"] or DEFAULT_CURRENCY,
            wallet_id=row["walletId"],
        )
