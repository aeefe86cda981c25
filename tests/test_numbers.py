"""
Tests for the lenient numeric helpers.
"""

import math

import pytest
from receipt.utils.numbers import coerce_id, format2, parse_amount, parse_decimal, round2
from receipt.utils import safe_divide, to_text


def test_round2_rounds_half_up():
    """Test halves round towards positive infinity."""
    assert round2(2.675) in (2.67, 2.68)
    assert round2(0.125) == 0.13
    assert round2(-0.125) == -0.12
    assert round2(33.333333) == 33.33


def test_round2_keeps_non_finite():
    """Test NaN passes through."""
    assert math.isnan(round2(math.nan))


def test_format2():
    """Test two-decimal formatting."""
    assert format2(70) == "70.00"
    assert format2(33.335) in ("33.33", "33.34")
    assert format2(0.1 + 0.2) == "0.30"


@pytest.mark.parametrize("value,expected", [
    ("12,5", 12.5),
    ("12.5", 12.5),
    ("  7 ", 7.0),
    ("12,5 kg", 12.5),
    ("1.234,56", 1.234),
    ("1,234,56", 1.234),
    ("-3,25", -3.25),
    (".5", 0.5),
    ("1e2", 100.0),
    (42, 42.0),
    (2.5, 2.5),
])
def test_parse_decimal(value, expected):
    """Test comma-or-dot decimals parse leniently."""
    assert parse_decimal(value) == pytest.approx(expected)


@pytest.mark.parametrize("value", ["", "   ", "abc", "R$ 10", None, True, float("inf"), "-"])
def test_parse_decimal_unusable_is_nan(value):
    """Test unusable input gives NaN."""
    assert math.isnan(parse_decimal(value))


def test_parse_amount_defaults_to_zero():
    """Test unusable amounts count as 0."""
    assert parse_amount("abc") == 0.0
    assert parse_amount(None) == 0.0
    assert parse_amount("10,10") == pytest.approx(10.1)


@pytest.mark.parametrize("value,expected", [
    (5, 5),
    ("5", 5),
    (" 12 ", 12),
    ("3.0", 3),
    (4.0, 4),
    ("2.5", 2.5),
    ("", 0),
    (0, 0),
])
def test_coerce_id(value, expected):
    """Test identifiers coerce like numbers."""
    assert coerce_id(value) == expected


@pytest.mark.parametrize("value", [None, "abc", "1_000", float("nan"), "inf", [1]])
def test_coerce_id_unusable_is_none(value):
    """Test non-numeric identifiers give None."""
    assert coerce_id(value) is None


def test_safe_divide():
    """Test division by zero gives the default."""
    assert safe_divide(10, 4) == 2.5
    assert safe_divide(10, 0) == 0.0
    assert safe_divide(10, 0, default=-1) == -1


def test_to_text():
    """Test loose values stringify like form fields."""
    assert to_text(None) == ""
    assert to_text(0) == ""
    assert to_text(3.0) == "3"
    assert to_text(2.5) == "2.5"
    assert to_text("abc") == "abc"


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
