"""Mini-README: Tests for fixed-point conversion helpers shared by billing services."""

from decimal import Decimal

import pytest

from lexbill.decimals import is_positive_number, quantize_decimal, serialize_decimal, to_decimal, to_fixed_point


def test_to_decimal_accepts_store_and_wire_forms() -> None:
    assert to_decimal("10.50") == Decimal("10.50")
    assert to_decimal(3) == Decimal("3")
    assert to_decimal(Decimal("1.25")) == Decimal("1.25")
    assert to_decimal(None) is None
    assert to_decimal("") is None


def test_to_decimal_keeps_float_short_repr() -> None:
    assert to_decimal(0.1) == Decimal("0.1")


@pytest.mark.parametrize("value", [True, "ten", object()])
def test_to_decimal_rejects_non_numeric(value) -> None:
    with pytest.raises(ValueError):
        to_decimal(value)


def test_serialize_decimal_returns_float_or_none() -> None:
    assert serialize_decimal("7.25") == 7.25
    assert serialize_decimal(Decimal("0.30")) == 0.3
    assert serialize_decimal(None) is None


def test_to_fixed_point_rounds_half_up() -> None:
    assert to_fixed_point(2.005) == "2.01"
    assert to_fixed_point("10") == "10.00"
    assert to_fixed_point(None) is None


def test_is_positive_number_rejects_booleans_and_non_finite() -> None:
    assert is_positive_number(5) is True
    assert is_positive_number(Decimal("0.01")) is True
    assert is_positive_number(0) is False
    assert is_positive_number(-1.5) is False
    assert is_positive_number(True) is False
    assert is_positive_number(float("inf")) is False
    assert is_positive_number(Decimal("NaN")) is False
    assert is_positive_number("5") is False


def test_quantize_decimal_rounds_to_column_precision() -> None:
    assert quantize_decimal(0.004) == Decimal("0.00")
    assert quantize_decimal("0.005") == Decimal("0.01")
    assert quantize_decimal(None) is None


@pytest.mark.parametrize("value", [float("inf"), Decimal("NaN"), Decimal("1e40")])
def test_quantize_decimal_rejects_values_without_fixed_point_form(value) -> None:
    with pytest.raises(ValueError):
        quantize_decimal(value)
