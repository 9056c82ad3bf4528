"""
Currency reference table.

Static mapping from currency code to display symbol and to a fixed
rate against the reference currency (USD). A rate reads as "units of this
currency per one unit of the reference currency", so converting a local
amount to the reference currency divides by the rate.

All conversion results are rounded half-up to two decimal places before
they are stored or compared.
"""

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from typing import Optional, Union

from pocketledger.config import MONEY_PRECISION, REFERENCE_CURRENCY
from pocketledger.errors import UnknownCurrencyError

Number = Union[int, float, Decimal]

_QUANTUM = Decimal(1).scaleb(-MONEY_PRECISION)


@dataclass(frozen=True)
class Currency:
    """A currency the tracker knows about."""

    code: str
    symbol: str
    name: str
    rate: float  # units per 1 reference unit

    def to_dict(self) -> dict:
        """Convert to dictionary representation."""
        return {
            "code": self.code,
            "symbol": self.symbol,
            "name": self.name,
            "rate": self.rate,
        }


DEFAULT_CURRENCIES = (
    Currency("USD", "$", "US Dollar", 1.0),
    Currency("EUR", "€", "Euro", 0.92),
    Currency("GBP", "£", "British Pound", 0.79),
    Currency("JPY", "¥", "Japanese Yen", 150.0),
    Currency("NGN", "₦", "Nigerian Naira", 1450.0),
    Currency("LBP", "ل.ل", "Lebanese Pound", 89500.0),
)


def round_money(value: Number) -> float:
    """Round a monetary value half-up to the configured precision."""
    return float(Decimal(str(value)).quantize(_QUANTUM, rounding=ROUND_HALF_UP))


class CurrencyTable:
    """
    Lookup and conversion rules for a fixed set of currencies.

    The ledger receives one of these instead of looking rates up inline,
    so the conversion rule lives in exactly one place.
    """

    def __init__(self, currencies=DEFAULT_CURRENCIES, reference: str = REFERENCE_CURRENCY):
        self._currencies = {c.code: c for c in currencies}
        if reference not in self._currencies:
            raise ValueError(f"Reference currency {reference} missing from table")
        self.reference = reference

    def __contains__(self, code: object) -> bool:
        return isinstance(code, str) and code in self._currencies

    def get(self, code: str) -> Currency:
        """Get a currency by code, raising UnknownCurrencyError if absent."""
        currency = self._currencies.get(code) if isinstance(code, str) else None
        if currency is None:
            raise UnknownCurrencyError(code)
        return currency

    def codes(self) -> list[str]:
        return list(self._currencies)

    def list_currencies(self) -> list[Currency]:
        return list(self._currencies.values())

    def rate_to_reference(self, code: str) -> float:
        return self.get(code).rate

    def symbol_of(self, code: str) -> str:
        return self.get(code).symbol

    def convert_to_reference(self, amount: Number, code: str) -> float:
        """Convert a local amount into the reference currency."""
        rate = Decimal(str(self.rate_to_reference(code)))
        return round_money(Decimal(str(amount)) / rate)

    def convert_from_reference(self, amount: Number, code: str) -> float:
        """Convert a reference-currency amount into the given local currency."""
        rate = Decimal(str(self.rate_to_reference(code)))
        return round_money(Decimal(str(amount)) * rate)

    def format_money(self, amount: Number, code: str) -> str:
        """Format an amount with its currency symbol, e.g. ``$1,234.50``."""
        symbol = self.symbol_of(code)
        sign = "-" if amount < 0 else ""
        return f"{sign}{symbol}{abs(round_money(amount)):,.2f}"


DEFAULT_TABLE = CurrencyTable()


def get_currency_table(table: Optional[CurrencyTable] = None) -> CurrencyTable:
    """Return the given table, or the built-in one."""
    return table if table is not None else DEFAULT_TABLE


def rate_to_reference(code: str) -> float:
    return DEFAULT_TABLE.rate_to_reference(code)


def symbol_of(code: str) -> str:
    return DEFAULT_TABLE.symbol_of(code)


def convert_to_reference(amount: Number, code: str) -> float:
    return DEFAULT_TABLE.convert_to_reference(amount, code)


def convert_from_reference(amount: Number, code: str) -> float:
    return DEFAULT_TABLE.convert_from_reference(amount, code)


def format_money(amount: Number, code: str) -> str:
    return DEFAULT_TABLE.format_money(amount, code)


def list_currencies() -> list[Currency]:
    return DEFAULT_TABLE.list_currencies()
