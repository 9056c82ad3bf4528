"""Tests for the currency reference table."""

import pytest

from pocketledger.currency import (
    DEFAULT_TABLE,
    Currency,
    CurrencyTable,
    convert_from_reference,
    convert_to_reference,
    format_money,
    list_currencies,
    rate_to_reference,
    round_money,
    symbol_of,
)
from pocketledger.errors import ErrorKind, UnknownCurrencyError


class TestLookups:
    """Tests for rate and symbol lookups."""

    def test_reference_currency_has_rate_one(self):
        assert rate_to_reference("USD") == 1.0

    def test_known_rates(self):
        assert rate_to_reference("NGN") == 1450.0
        assert rate_to_reference("EUR") == 0.92

    def test_symbols(self):
        assert symbol_of("USD") == "$"
        assert symbol_of("GBP") == "£"
        assert symbol_of("NGN") == "₦"

    def test_unknown_code_raises(self):
        with pytest.raises(UnknownCurrencyError) as exc_info:
            rate_to_reference("XYZ")
        assert exc_info.value.kind == ErrorKind.UNKNOWN_CURRENCY
        assert exc_info.value.code == "XYZ"

    def test_unknown_symbol_raises(self):
        with pytest.raises(UnknownCurrencyError):
            symbol_of("ABC")

    @pytest.mark.parametrize("code", [["USD"], None, 1])
    def test_non_string_code_is_unknown(self, code):
        with pytest.raises(UnknownCurrencyError):
            DEFAULT_TABLE.get(code)
        assert code not in DEFAULT_TABLE

    def test_list_currencies(self):
        codes = [c.code for c in list_currencies()]
        assert codes == ["USD", "EUR", "GBP", "JPY", "NGN", "LBP"]

    def test_contains(self):
        assert "JPY" in DEFAULT_TABLE
        assert "XYZ" not in DEFAULT_TABLE


class TestConversion:
    """Tests for conversion and rounding."""

    def test_usd_is_identity(self):
        assert convert_to_reference(30, "USD") == 30.0

    def test_ngn_to_reference_rounds_to_cents(self):
        # 1000 / 1450 = 0.6896...
        assert convert_to_reference(1000, "NGN") == 0.69

    def test_reference_to_ngn(self):
        assert convert_from_reference(5, "NGN") == 7250.0

    def test_eur_conversion_is_exact(self):
        assert convert_to_reference(9.2, "EUR") == 10.0
        assert convert_from_reference(10, "EUR") == 9.2

    def test_unknown_currency_conversion_raises(self):
        with pytest.raises(UnknownCurrencyError):
            convert_to_reference(10, "XYZ")

    def test_round_money_half_up(self):
        assert round_money(2.675) == 2.68
        assert round_money(0.005) == 0.01
        assert round_money(1.234) == 1.23

    @pytest.mark.parametrize("code", [c.code for c in list_currencies()])
    def test_round_trip_within_rounding_tolerance(self, code):
        rate = rate_to_reference(code)
        for amount in (1.0, 123.45, 100 * rate):
            back = convert_from_reference(convert_to_reference(amount, code), code)
            # One cent of reference rounding is worth ``rate`` cents locally
            assert abs(back - amount) <= 0.005 * rate + 0.01


class TestFormatting:
    """Tests for money formatting."""

    def test_format_with_thousands_separator(self):
        assert format_money(1234.5, "USD") == "$1,234.50"

    def test_format_negative(self):
        assert format_money(-5, "EUR") == "-€5.00"

    def test_format_unknown_currency_raises(self):
        with pytest.raises(UnknownCurrencyError):
            format_money(1, "XYZ")


class TestCustomTable:
    """Tests for building a table with other rates."""

    def test_custom_rates(self):
        table = CurrencyTable(
            [Currency("USD", "$", "US Dollar", 1.0), Currency("EUR", "€", "Euro", 0.5)]
        )
        assert table.convert_to_reference(10, "EUR") == 20.0
        assert table.codes() == ["USD", "EUR"]

    def test_missing_reference_currency_rejected(self):
        with pytest.raises(ValueError):
            CurrencyTable([Currency("EUR", "€", "Euro", 0.92)])
