"""Service description billing helpers.

Covers the mutations an administrator makes on a DRAFT service description:
pricing/discount updates on its topics, topic deletion, and line item waivers.
Write-off flags on time entries are kept in step with the waived line items
that reference them; clearing always re-queries live references after the
deleting write instead of trusting what was loaded beforehand.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from datetime import datetime
from decimal import Decimal
from typing import Any

from sqlalchemy import func, select, update
from sqlalchemy.orm import Session

from lexbill.decimals import quantize_decimal, serialize_decimal
from lexbill.errors import BusinessRuleViolation, NotFound, ValidationFailed
from lexbill.models import (
    ServiceDescription,
    ServiceDescriptionLineItem,
    ServiceDescriptionStatus,
    PricingMode,
    ServiceDescriptionTopic,
    TimeEntry,
    WaiveMode,
)
from lexbill.services_pricing import TopicPricingState, normalize_topic_update

logger = logging.getLogger(__name__)

WAIVE_MODES = {item.value for item in WaiveMode}
MAX_LINE_ITEM_HOURS = Decimal("99.99")


def load_draft_service_description(db: Session, service_description_id: int) -> ServiceDescription:
    service_description = db.get(ServiceDescription, service_description_id)
    if not service_description:
        raise NotFound("Service description not found")
    if service_description.status == ServiceDescriptionStatus.FINALIZED:
        raise BusinessRuleViolation("Cannot modify finalized service description")
    return service_description


def load_topic(db: Session, *, service_description_id: int, topic_id: int) -> ServiceDescriptionTopic:
    load_draft_service_description(db, service_description_id)
    topic = db.get(ServiceDescriptionTopic, topic_id)
    if not topic or topic.service_description_id != service_description_id:
        raise NotFound("Topic not found")
    return topic


def load_line_item(
    db: Session,
    *,
    service_description_id: int,
    topic_id: int,
    item_id: int,
) -> ServiceDescriptionLineItem:
    load_draft_service_description(db, service_description_id)
    item = db.get(ServiceDescriptionLineItem, item_id)
    if not item or item.topic_id != topic_id or item.topic.service_description_id != service_description_id:
        raise NotFound("Line item not found")
    return item


def _next_display_order(db: Session, column, *criteria) -> int:
    current = db.scalar(select(func.max(column)).where(*criteria))
    return max(current or 0, 0) + 1


def create_billing_topic(
    db: Session,
    *,
    service_description_id: int,
    fields: Mapping[str, Any],
) -> ServiceDescriptionTopic:
    """Append a topic to a DRAFT service description.

    Pricing fields go through the same rules as a topic update, resolved against
    an HOURLY topic with no discount.
    """
    topic_name = fields.get("topic_name")
    if not isinstance(topic_name, str) or not topic_name.strip():
        raise ValidationFailed("Topic name is required")
    load_draft_service_description(db, service_description_id)

    values = {**fields, "pricing_mode": fields.get("pricing_mode") or PricingMode.HOURLY.value}
    empty = TopicPricingState(pricing_mode=PricingMode.HOURLY.value, discount_type=None, discount_value=None)
    topic = ServiceDescriptionTopic(
        service_description_id=service_description_id,
        display_order=_next_display_order(
            db,
            ServiceDescriptionTopic.display_order,
            ServiceDescriptionTopic.service_description_id == service_description_id,
        ),
        **normalize_topic_update(values, empty),
    )
    db.add(topic)
    db.flush()
    return topic


def update_billing_topic(
    db: Session,
    *,
    service_description_id: int,
    topic_id: int,
    changes: Mapping[str, Any],
) -> ServiceDescriptionTopic:
    topic = load_topic(db, service_description_id=service_description_id, topic_id=topic_id)
    current = TopicPricingState(
        pricing_mode=topic.pricing_mode,
        discount_type=topic.discount_type,
        discount_value=topic.discount_value,
    )
    for field, value in normalize_topic_update(changes, current).items():
        setattr(topic, field, value)
    topic.updated_at = datetime.utcnow()
    db.flush()
    return topic


def clear_orphaned_write_offs(db: Session, time_entry_ids: Iterable[int]) -> list[int]:
    """Clear `is_written_off` on entries no longer referenced by any waived line item.

    Returns the ids whose flag was cleared.
    """
    cleared = []
    for entry_id in sorted(set(time_entry_ids)):
        remaining = db.scalar(
            select(func.count(ServiceDescriptionLineItem.id)).where(
                ServiceDescriptionLineItem.time_entry_id == entry_id,
                ServiceDescriptionLineItem.waive_mode.is_not(None),
            )
        )
        if remaining:
            continue
        result = db.execute(
            update(TimeEntry)
            .where(TimeEntry.id == entry_id, TimeEntry.is_written_off.is_(True))
            .values(is_written_off=False)
            .execution_options(synchronize_session="fetch")
        )
        if result.rowcount:
            cleared.append(entry_id)
    if cleared:
        logger.info("Cleared write-off flag on time entries %s", cleared)
    return cleared


def delete_billing_topic(db: Session, *, service_description_id: int, topic_id: int) -> list[int]:
    """Delete a topic and un-write-off entries that lost their only waiver.

    Returns the ids of time entries whose write-off flag was cleared.
    """
    topic = load_topic(db, service_description_id=service_description_id, topic_id=topic_id)
    waived_entry_ids = set(
        db.scalars(
            select(ServiceDescriptionLineItem.time_entry_id).where(
                ServiceDescriptionLineItem.topic_id == topic.id,
                ServiceDescriptionLineItem.waive_mode.is_not(None),
                ServiceDescriptionLineItem.time_entry_id.is_not(None),
            )
        )
    )
    db.delete(topic)
    db.flush()
    return clear_orphaned_write_offs(db, waived_entry_ids)


def set_line_item_waive_mode(
    db: Session,
    *,
    service_description_id: int,
    topic_id: int,
    item_id: int,
    waive_mode: str | None,
) -> ServiceDescriptionLineItem:
    if waive_mode is not None and waive_mode not in WAIVE_MODES:
        raise ValidationFailed("waiveMode must be EXCLUDED, ZERO, or null")
    item = load_line_item(db, service_description_id=service_description_id, topic_id=topic_id, item_id=item_id)
    item.waive_mode = waive_mode
    db.flush()

    if item.time_entry_id is not None:
        if waive_mode is not None:
            item.time_entry.is_written_off = True
            db.flush()
        else:
            clear_orphaned_write_offs(db, [item.time_entry_id])
    return item


def create_line_item(
    db: Session,
    *,
    service_description_id: int,
    topic_id: int,
    fields: Mapping[str, Any],
) -> ServiceDescriptionLineItem:
    """Append a manual line item (not linked to a time entry) to a draft topic."""
    description = fields.get("description")
    if not isinstance(description, str) or not description.strip():
        raise ValidationFailed("Description is required")
    topic = load_topic(db, service_description_id=service_description_id, topic_id=topic_id)

    try:
        hours = quantize_decimal(fields.get("hours"))
    except ValueError as exc:
        raise ValidationFailed("hours must be a positive number") from exc
    if hours is not None and (hours < 0 or hours > MAX_LINE_ITEM_HOURS):
        raise ValidationFailed("hours must be a positive number")

    item = ServiceDescriptionLineItem(
        topic_id=topic.id,
        entry_date=fields.get("entry_date"),
        description=description.strip(),
        # Zero hours is stored as no hours.
        hours=str(hours) if hours else None,
        display_order=_next_display_order(
            db,
            ServiceDescriptionLineItem.display_order,
            ServiceDescriptionLineItem.topic_id == topic.id,
        ),
    )
    db.add(item)
    db.flush()
    return item


def delete_line_item(db: Session, *, service_description_id: int, topic_id: int, item_id: int) -> list[int]:
    item = load_line_item(db, service_description_id=service_description_id, topic_id=topic_id, item_id=item_id)
    time_entry_id = item.time_entry_id
    db.delete(item)
    db.flush()
    if time_entry_id is None:
        return []
    return clear_orphaned_write_offs(db, [time_entry_id])


def serialize_billing_topic(topic: ServiceDescriptionTopic) -> dict[str, Any]:
    return {
        "id": topic.id,
        "topicName": topic.topic_name,
        "displayOrder": topic.display_order,
        "pricingMode": topic.pricing_mode,
        "hourlyRate": serialize_decimal(topic.hourly_rate),
        "fixedFee": serialize_decimal(topic.fixed_fee),
        "capHours": serialize_decimal(topic.cap_hours),
        "discountType": topic.discount_type,
        "discountValue": serialize_decimal(topic.discount_value),
    }


def serialize_line_item(item: ServiceDescriptionLineItem) -> dict[str, Any]:
    return {
        "id": item.id,
        "timeEntryId": item.time_entry_id,
        "date": item.entry_date.isoformat() if item.entry_date else None,
        "description": item.description,
        "hours": serialize_decimal(item.hours),
        "waiveMode": item.waive_mode,
        "displayOrder": item.display_order,
    }
