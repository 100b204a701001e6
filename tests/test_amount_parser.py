"""Tests for amount parsing and rounding."""

import pytest
from decimal import Decimal
from settleit.utils.amount_parser import format_amount, parse_amount


def test_parse_plain_amount():
    assert parse_amount("123.45") == Decimal("123.45")


def test_parse_amount_with_symbol_and_separators():
    assert parse_amount("€1,234.56") == Decimal("1234.56")


def test_parse_parenthesized_negative():
    assert parse_amount("(12.50)") == Decimal("-12.50")


@pytest.mark.parametrize("value", ["", "   ", "abc", "NaN"])
def test_parse_invalid_amount(value):
    with pytest.raises(ValueError):
        parse_amount(value)


def test_format_amount_rounds_half_up():
    """Test rounding to cents uses half-up, not banker's rounding."""
    assert format_amount(Decimal("0.125")) == Decimal("0.13")
    assert format_amount(Decimal("0.135")) == Decimal("0.14")
    assert format_amount(Decimal("-0.125")) == Decimal("-0.13")


def test_format_amount_accepts_numbers():
    assert format_amount(1234.5) == Decimal("1234.50")
    assert format_amount(7) == Decimal("7.00")
