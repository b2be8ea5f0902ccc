"""Timesheet domain helpers.

This module contains the business logic for creating, editing and deleting
time entries: field validation against the client/topic catalogs, the
denormalized topic snapshot refresh, billing immutability, and the submission
threshold check that follows any change lowering a day's total.
"""

from __future__ import annotations

from collections.abc import Mapping
from datetime import date, datetime
from typing import Any

from sqlalchemy import select
from sqlalchemy.orm import Session, joinedload

from lexbill.config import settings
from lexbill.decimals import quantize_decimal, serialize_decimal, to_decimal
from lexbill.errors import NotFound, PermissionDenied, ValidationFailed
from lexbill.models import (
    CatalogStatus,
    Client,
    ServiceDescription,
    ServiceDescriptionLineItem,
    ServiceDescriptionStatus,
    ServiceDescriptionTopic,
    Subtopic,
    TimeEntry,
    Topic,
    User,
)
from lexbill.services_submissions import SubmissionCheck, enforce_submission_threshold, lock_user_timesheet


def validate_hours(hours: Any) -> str:
    """Return the fixed-point hours string or raise when out of range."""
    limit = settings.max_hours_per_entry
    message = f"Hours must be between 0 and {limit:g}"
    try:
        stored = quantize_decimal(hours)
    except ValueError as exc:
        raise ValidationFailed(message) from exc
    # Range is checked on the stored value; 0.004 would persist as 0.00.
    if stored is None or stored <= 0 or stored > to_decimal(limit):
        raise ValidationFailed(message)
    return str(stored)


def validate_description(description: Any) -> str:
    if not isinstance(description, str):
        raise ValidationFailed("Description must be a string")
    trimmed = description.strip()
    if len(trimmed) < settings.min_description_length:
        raise ValidationFailed(f"Description must be at least {settings.min_description_length} characters")
    return trimmed


def load_active_client(db: Session, client_id: int | None) -> Client:
    if client_id is None:
        raise ValidationFailed("Client is required")
    client = db.get(Client, client_id)
    if not client:
        raise NotFound("Client not found")
    if client.status != CatalogStatus.ACTIVE:
        raise ValidationFailed("Cannot log time for inactive clients")
    return client


def load_active_topic(db: Session, topic_id: int) -> Topic:
    topic = db.get(Topic, topic_id)
    if not topic:
        raise NotFound("Topic not found")
    if topic.status != CatalogStatus.ACTIVE:
        raise ValidationFailed("Cannot use inactive topic")
    return topic


def load_active_subtopic(db: Session, subtopic_id: int) -> Subtopic:
    subtopic = db.get(Subtopic, subtopic_id)
    if not subtopic:
        raise NotFound("Subtopic not found")
    if subtopic.status != CatalogStatus.ACTIVE:
        raise ValidationFailed("Cannot use inactive subtopic")
    if subtopic.topic.status != CatalogStatus.ACTIVE:
        raise ValidationFailed("Cannot use subtopic with inactive topic")
    return subtopic


def ensure_topic_matches_client(topic: Topic | None, client: Client) -> None:
    if topic is not None and topic.topic_type != client.client_type:
        raise ValidationFailed("Topic type does not match client type")


def is_entry_billed(db: Session, entry_id: int) -> bool:
    """Return True when a FINALIZED service description references the entry."""
    billed = db.scalar(
        select(ServiceDescriptionLineItem.id)
        .join(ServiceDescriptionTopic, ServiceDescriptionLineItem.topic_id == ServiceDescriptionTopic.id)
        .join(ServiceDescription, ServiceDescriptionTopic.service_description_id == ServiceDescription.id)
        .where(
            ServiceDescriptionLineItem.time_entry_id == entry_id,
            ServiceDescription.status == ServiceDescriptionStatus.FINALIZED,
        )
        .limit(1)
    )
    return billed is not None


def load_editable_entry(db: Session, *, entry_id: int, actor: User) -> TimeEntry:
    entry = db.get(TimeEntry, entry_id)
    if not entry:
        raise NotFound("Entry not found")
    if entry.user_id != actor.id:
        raise PermissionDenied("You can only edit your own entries")
    if is_entry_billed(db, entry.id):
        raise PermissionDenied("Cannot edit entries that have been billed")
    return entry


def _resolve_topic_snapshot(
    db: Session,
    *,
    topic_id: int | None,
    subtopic_id: int | None,
) -> tuple[Topic | None, Subtopic | None]:
    """Load the topic/subtopic pair an entry should point at.

    A subtopic implies its own topic; a supplied topic must then agree with it.
    """
    subtopic = load_active_subtopic(db, subtopic_id) if subtopic_id is not None else None
    if topic_id is None:
        return (subtopic.topic if subtopic else None), subtopic
    topic = load_active_topic(db, topic_id)
    if subtopic is not None and subtopic.topic_id != topic.id:
        raise ValidationFailed("Subtopic does not belong to the selected topic")
    return topic, subtopic


def apply_topic_snapshot(entry: TimeEntry, topic: Topic | None, subtopic: Subtopic | None) -> None:
    entry.topic_id = topic.id if topic else None
    entry.topic_name = topic.name if topic else ""
    entry.subtopic_id = subtopic.id if subtopic else None
    entry.subtopic_name = subtopic.name if subtopic else None


def create_time_entry(db: Session, *, actor: User, payload: Mapping[str, Any]) -> TimeEntry:
    entry_date: date = payload["entry_date"]
    if entry_date > date.today():
        raise ValidationFailed("Cannot log time for future dates")
    client = load_active_client(db, payload.get("client_id"))
    hours = validate_hours(payload.get("hours"))
    description = validate_description(payload.get("description"))
    topic, subtopic = _resolve_topic_snapshot(
        db,
        topic_id=payload.get("topic_id"),
        subtopic_id=payload.get("subtopic_id"),
    )
    ensure_topic_matches_client(topic, client)

    entry = TimeEntry(
        user_id=actor.id,
        client_id=client.id,
        entry_date=entry_date,
        hours=hours,
        description=description,
        is_written_off=False,
    )
    apply_topic_snapshot(entry, topic, subtopic)
    db.add(entry)
    db.flush()
    return entry


def update_time_entry(
    db: Session,
    *,
    entry_id: int,
    actor: User,
    changes: Mapping[str, Any],
) -> tuple[TimeEntry, SubmissionCheck]:
    """Apply a partial edit and re-check the day's submission.

    `changes` holds only the fields the caller supplied. The submission check
    runs when the hours value actually changed.
    """
    lock_user_timesheet(db, actor.id)
    entry = load_editable_entry(db, entry_id=entry_id, actor=actor)
    old_hours = to_decimal(entry.hours)

    if "hours" in changes:
        entry.hours = validate_hours(changes["hours"])
    if "description" in changes:
        entry.description = validate_description(changes["description"])

    client = entry.client
    if "client_id" in changes:
        client = load_active_client(db, changes["client_id"])
        entry.client = client

    if "topic_id" in changes or "subtopic_id" in changes:
        if "topic_id" in changes and changes["topic_id"] is None:
            raise ValidationFailed("Topic is required")
        topic_id = changes.get("topic_id", entry.topic_id)
        if "subtopic_id" in changes:
            subtopic_id = changes["subtopic_id"]
        elif topic_id == entry.topic_id:
            subtopic_id = entry.subtopic_id
        else:
            # A new topic invalidates the old topic's subtopic.
            subtopic_id = None
        topic, subtopic = _resolve_topic_snapshot(db, topic_id=topic_id, subtopic_id=subtopic_id)
        apply_topic_snapshot(entry, topic, subtopic)
        ensure_topic_matches_client(topic, client)
    elif "client_id" in changes and entry.topic_id is not None:
        ensure_topic_matches_client(db.get(Topic, entry.topic_id), client)

    entry.updated_at = datetime.utcnow()
    db.flush()

    check = SubmissionCheck(submission_revoked=False)
    if to_decimal(entry.hours) != old_hours:
        check = enforce_submission_threshold(db, user_id=entry.user_id, day=entry.entry_date)
    return entry, check


def list_day_entries(db: Session, *, day: date, viewer: User, privileged: bool) -> list[TimeEntry]:
    """Entries logged on `day`, newest first; non-privileged viewers see only their own."""
    query = (
        select(TimeEntry)
        .options(joinedload(TimeEntry.client))
        .where(TimeEntry.entry_date == day)
        .order_by(TimeEntry.created_at.desc(), TimeEntry.id.desc())
    )
    if not privileged:
        query = query.where(TimeEntry.user_id == viewer.id)
    return list(db.scalars(query))


def delete_time_entry(db: Session, *, entry_id: int, actor: User) -> SubmissionCheck:
    lock_user_timesheet(db, actor.id)
    entry = db.get(TimeEntry, entry_id)
    if not entry:
        raise NotFound("Entry not found")
    if entry.user_id != actor.id:
        raise PermissionDenied("You can only delete your own entries")
    if is_entry_billed(db, entry.id):
        raise PermissionDenied("Cannot delete entries that have been billed")

    user_id, day = entry.user_id, entry.entry_date
    db.delete(entry)
    db.flush()
    return enforce_submission_threshold(db, user_id=user_id, day=day)


def serialize_time_entry(entry: TimeEntry) -> dict[str, Any]:
    return {
        "id": entry.id,
        "date": entry.entry_date.isoformat(),
        "hours": serialize_decimal(entry.hours),
        "description": entry.description,
        "clientId": entry.client_id,
        "client": {"id": entry.client.id, "name": entry.client.name} if entry.client else None,
        "topicId": entry.topic_id,
        "topicName": entry.topic_name,
        "subtopicId": entry.subtopic_id,
        "subtopicName": entry.subtopic_name,
        "isWrittenOff": bool(entry.is_written_off),
        "createdAt": entry.created_at.isoformat() if entry.created_at else None,
        "updatedAt": entry.updated_at.isoformat() if entry.updated_at else None,
    }
