"""Tests for amount parsing and milliunit conversion."""

from decimal import Decimal

import pytest

from ynab_importer.schemas.amounts import (
    InvalidAmount,
    UnsupportedCurrency,
    parse_amount,
    to_milliunits,
)
from ynab_importer.schemas.transactions import TransactionDataError


class TestParseAmount:
    """Tests for parse_amount."""

    def test_numbers_pass_through(self):
        """Numeric input is returned unchanged."""
        assert parse_amount(12.5) == 12.5
        assert parse_amount(7) == 7
        assert parse_amount(Decimal("3.10")) == Decimal("3.10")

    def test_plain_string(self):
        assert parse_amount("12.50") == 12.5

    def test_thousands_separator_stripped(self):
        assert parse_amount("1,234.50") == 1234.5

    def test_negative_string(self):
        assert parse_amount("-40.00") == -40.0

    def test_local_currency_symbol_stripped(self):
        """Characters that are not foreign markers are stripped."""
        assert parse_amount("₪ 99.90") == 99.9

    def test_dollar_is_unsupported(self):
        """'$12.50' fails with UnsupportedCurrency."""
        with pytest.raises(UnsupportedCurrency) as exc_info:
            parse_amount("$12.50")
        assert exc_info.value.marker == "$"

    def test_currency_code_is_unsupported(self):
        with pytest.raises(UnsupportedCurrency):
            parse_amount("12.50 EUR")

    def test_custom_markers(self):
        """Marker list is configurable."""
        assert parse_amount("$12.50", foreign_currency_markers=()) == 12.5
        with pytest.raises(UnsupportedCurrency):
            parse_amount("12 ILS", foreign_currency_markers=("ILS",))

    @pytest.mark.parametrize("value", ["", "abc", "1.2.3", "--5", "5-", "."])
    def test_unparseable_strings(self, value):
        with pytest.raises(InvalidAmount):
            parse_amount(value)

    @pytest.mark.parametrize("value", [None, [], {}, True])
    def test_unsupported_types(self, value):
        with pytest.raises(InvalidAmount):
            parse_amount(value)

    def test_errors_are_data_errors(self):
        """Both failures belong to the transaction data taxonomy."""
        assert issubclass(InvalidAmount, TransactionDataError)
        assert issubclass(UnsupportedCurrency, TransactionDataError)


class TestToMilliunits:
    """Tests for sign convention and scaling."""

    def test_outflow_is_negative(self):
        """12.5 → -12500."""
        assert to_milliunits(12.5) == -12500

    def test_refund_becomes_inflow(self):
        assert to_milliunits(-3.2) == 3200

    def test_float_artifacts_do_not_leak(self):
        """0.1 + 0.2 style floats still land on whole milliunits."""
        assert to_milliunits(19.99) == -19990
        assert to_milliunits(0.005) == -5

    def test_rounds_half_up(self):
        assert to_milliunits(Decimal("1.0005")) == -1001

    def test_zero(self):
        assert to_milliunits(0) == 0

    def test_infinity_rejected(self):
        with pytest.raises(InvalidAmount):
            to_milliunits(float("inf"))

    def test_parse_then_convert(self):
        assert to_milliunits(parse_amount("12.50")) == -12500
