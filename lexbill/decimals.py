"""Decimal helpers.

The store keeps hours and money as fixed-point NUMERIC values which surface as
strings or `Decimal` objects. These helpers convert between that representation
and the plain numbers exchanged with API callers.
"""

from __future__ import annotations

import math
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from numbers import Real


def to_decimal(value: object) -> Decimal | None:
    """Convert a stored or incoming numeric value to `Decimal`.

    Floats go through `str()` so 0.1 stays 0.1 rather than its binary expansion.
    Raises ValueError for booleans and unparseable input.
    """
    if value is None or value == "":
        return None
    if isinstance(value, bool):
        raise ValueError("Boolean is not a numeric value")
    if isinstance(value, Decimal):
        return value
    if isinstance(value, (int, float)):
        return Decimal(str(value))
    try:
        return Decimal(str(value).strip())
    except InvalidOperation as exc:
        raise ValueError(f"Not a numeric value: {value!r}") from exc


def serialize_decimal(value: object) -> float | None:
    """Convert a stored fixed-point value to a JSON-friendly float."""
    parsed = to_decimal(value)
    return float(parsed) if parsed is not None else None


def quantize_decimal(value: object, places: int = 2) -> Decimal | None:
    """Round a numeric value to the store's column precision (ROUND_HALF_UP).

    Raises ValueError for non-numeric, non-finite or out-of-range input.
    """
    parsed = to_decimal(value)
    if parsed is None:
        return None
    if not parsed.is_finite():
        raise ValueError(f"Not a finite value: {value!r}")
    try:
        return parsed.quantize(Decimal(1).scaleb(-places), rounding=ROUND_HALF_UP)
    except InvalidOperation as exc:
        raise ValueError(f"Value out of fixed-point range: {value!r}") from exc


def to_fixed_point(value: object, places: int = 2) -> str | None:
    """Render a numeric value in the store's fixed-point string form."""
    quantized = quantize_decimal(value, places)
    return str(quantized) if quantized is not None else None


def is_positive_number(value: object) -> bool:
    """Return True for finite real numbers strictly greater than zero."""
    if isinstance(value, bool) or not isinstance(value, (Real, Decimal)):
        return False
    if isinstance(value, Decimal):
        return value.is_finite() and value > 0
    return math.isfinite(value) and value > 0
