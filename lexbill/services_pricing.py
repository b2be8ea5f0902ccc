"""Billing topic pricing helpers.

This module contains pure business-logic helpers for service description topic
updates: merging a partial discount update with persisted state, validating the
result, and producing the normalized column values to persist. Nothing here
touches the database so every rule can be unit tested with plain values.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from decimal import Decimal
from numbers import Real
from typing import Any

from lexbill.decimals import is_positive_number, quantize_decimal, to_decimal, to_fixed_point
from lexbill.errors import ValidationFailed
from lexbill.models import DiscountType, PricingMode

DISCOUNT_TYPES = {item.value for item in DiscountType}
PRICING_MODES = {item.value for item in PricingMode}
NUMERIC_FIELD_LABELS = {
    "discount_value": "discountValue",
    "cap_hours": "capHours",
    "hourly_rate": "hourlyRate",
    "fixed_fee": "fixedFee",
}


@dataclass(frozen=True)
class DiscountFields:
    discount_type: str | None
    discount_value: Any


@dataclass(frozen=True)
class TopicPricingState:
    """The persisted pricing columns a partial update is resolved against."""

    pricing_mode: str
    discount_type: str | None
    discount_value: Any


def _plain(value: Any) -> Any:
    # Enum members from the ORM compare equal to their values, but keep
    # messages and persisted payloads as plain strings.
    return getattr(value, "value", value)


def resolve_discount_fields(update: Mapping[str, Any], current: DiscountFields) -> DiscountFields:
    """Merge supplied discount fields with the persisted ones.

    A supplied key wins even when its value is None (an explicit clear); an
    absent key inherits the persisted value. An empty type string clears too.
    """
    if "discount_type" in update:
        discount_type = update["discount_type"] or None
    else:
        discount_type = _plain(current.discount_type)

    if "discount_value" in update:
        discount_value = update["discount_value"]
    else:
        discount_value = to_decimal(current.discount_value)

    return DiscountFields(discount_type=discount_type, discount_value=discount_value)


def validate_discount_fields(discount_type: Any, discount_value: Any) -> str | None:
    """Return an error message for an invalid discount pair, or None."""
    if discount_value is not None and not discount_type:
        return "discountValue requires a discountType"
    if discount_value is not None and not is_positive_number(discount_value):
        return "discountValue must be a positive number"
    if discount_type == DiscountType.PERCENTAGE.value and discount_value is not None and discount_value > 100:
        return "Percentage discount cannot exceed 100"
    if discount_type and discount_type not in DISCOUNT_TYPES:
        return "discountType must be PERCENTAGE or AMOUNT"
    return None


def validate_cap_hours(cap_hours: Any) -> str | None:
    if cap_hours is not None and not is_positive_number(cap_hours):
        return "capHours must be a positive number"
    return None


def validate_pricing_mode(pricing_mode: Any) -> str | None:
    if pricing_mode not in PRICING_MODES:
        return "pricingMode must be HOURLY or FIXED"
    return None


def validate_rate(field_label: str, value: Any) -> str | None:
    """Rates may be cleared (None/0) but never negative or non-numeric."""
    if value is None or (not isinstance(value, bool) and value == 0):
        return None
    if not is_positive_number(value):
        return f"{field_label} must be a positive number"
    return None


def _at_stored_precision(update: Mapping[str, Any]) -> dict[str, Any]:
    """Round supplied numbers to column precision so checks see the persisted value."""
    rounded = dict(update)
    for field, label in NUMERIC_FIELD_LABELS.items():
        value = rounded.get(field)
        if isinstance(value, bool) or not isinstance(value, (Real, Decimal)):
            continue
        try:
            rounded[field] = quantize_decimal(value)
        except ValueError as exc:
            raise ValidationFailed(f"{label} must be a positive number") from exc
    return rounded


def normalize_topic_update(update: Mapping[str, Any], current: TopicPricingState) -> dict[str, Any]:
    """Validate a partial topic update and return column values to persist.

    Only supplied fields appear in the result, except that a FIXED resolved
    pricing mode always forces `cap_hours` to None and a supplied discount field
    carries its resolved partner. Raises ValidationFailed on the first broken rule.
    """
    update = _at_stored_precision(update)
    touches_discount = "discount_type" in update or "discount_value" in update
    resolved = resolve_discount_fields(update, DiscountFields(current.discount_type, current.discount_value))

    errors: list[str | None] = []
    if touches_discount:
        errors.append(validate_discount_fields(resolved.discount_type, resolved.discount_value))
    if "cap_hours" in update:
        errors.append(validate_cap_hours(update["cap_hours"]))
    if "pricing_mode" in update:
        errors.append(validate_pricing_mode(update["pricing_mode"]))
    if "hourly_rate" in update:
        errors.append(validate_rate("hourlyRate", update["hourly_rate"]))
    if "fixed_fee" in update:
        errors.append(validate_rate("fixedFee", update["fixed_fee"]))
    if "topic_name" in update and not (update["topic_name"] or "").strip():
        errors.append("topicName cannot be empty")
    if "display_order" in update and not isinstance(update["display_order"], int):
        errors.append("displayOrder must be an integer")

    first_error = next((error for error in errors if error), None)
    if first_error:
        raise ValidationFailed(first_error)

    normalized: dict[str, Any] = {}
    if "topic_name" in update:
        normalized["topic_name"] = update["topic_name"].strip()
    if "display_order" in update:
        normalized["display_order"] = update["display_order"]
    if "pricing_mode" in update:
        normalized["pricing_mode"] = update["pricing_mode"]
    for field in ("hourly_rate", "fixed_fee"):
        if field in update:
            # Zero clears the rate.
            normalized[field] = to_fixed_point(update[field]) if update[field] else None
    if "cap_hours" in update:
        normalized["cap_hours"] = to_fixed_point(update["cap_hours"])
    if touches_discount:
        normalized["discount_type"] = resolved.discount_type
        normalized["discount_value"] = to_fixed_point(resolved.discount_value)

    resolved_mode = update.get("pricing_mode", _plain(current.pricing_mode))
    if resolved_mode == PricingMode.FIXED.value:
        normalized["cap_hours"] = None

    return normalized
