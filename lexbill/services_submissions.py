"""Timesheet submission helpers.

A submission marks a user's day as finalized. Its existence is derived state:
it is only valid while the day's logged hours stay at or above the submission
threshold. `enforce_submission_threshold` is the single enforcement step that
every mutation lowering a day's total must run inside its own transaction.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, timezone
from decimal import Decimal

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from lexbill.config import settings
from lexbill.decimals import serialize_decimal, to_decimal
from lexbill.errors import BusinessRuleViolation
from lexbill.models import TimeEntry, TimesheetSubmission, User

logger = logging.getLogger(__name__)

DEADLINE_HOUR_UTC = 10


@dataclass(frozen=True)
class SubmissionCheck:
    submission_revoked: bool
    remaining_hours: float | None = None

    def as_response_fields(self) -> dict[str, object]:
        """Response keys; `remainingHours` only appears when a revocation happened."""
        fields: dict[str, object] = {"submissionRevoked": self.submission_revoked}
        if self.submission_revoked:
            fields["remainingHours"] = self.remaining_hours
        return fields


def lock_user_timesheet(db: Session, user_id: int) -> None:
    """Serialize concurrent day-total mutations for one user.

    Takes a row lock on the user so the read-compare-delete in
    `enforce_submission_threshold` sees any competing edit as committed.
    SQLite renders no FOR UPDATE clause; its database write lock serializes instead.
    """
    db.execute(select(User.id).where(User.id == user_id).with_for_update())


def day_total_hours(db: Session, *, user_id: int, day: date) -> Decimal:
    total = db.scalar(
        select(func.coalesce(func.sum(TimeEntry.hours), 0)).where(
            TimeEntry.user_id == user_id,
            TimeEntry.entry_date == day,
        )
    )
    return to_decimal(total) or Decimal("0")


def meets_submission_threshold(total_hours: Decimal) -> bool:
    return total_hours >= to_decimal(settings.min_submission_hours)


def enforce_submission_threshold(db: Session, *, user_id: int, day: date) -> SubmissionCheck:
    """Revoke the day's submission when its hour total fell below the threshold.

    Must run after the triggering mutation has been flushed and before commit.
    """
    total = day_total_hours(db, user_id=user_id, day=day)
    if meets_submission_threshold(total):
        return SubmissionCheck(submission_revoked=False)

    submission = db.scalar(
        select(TimesheetSubmission).where(
            TimesheetSubmission.user_id == user_id,
            TimesheetSubmission.submission_date == day,
        )
    )
    if submission is None:
        return SubmissionCheck(submission_revoked=False)

    db.delete(submission)
    db.flush()
    logger.info(
        "Revoked timesheet submission user_id=%s date=%s remaining_hours=%s",
        user_id,
        day.isoformat(),
        total,
    )
    return SubmissionCheck(submission_revoked=True, remaining_hours=serialize_decimal(total))


def submit_day(db: Session, *, user_id: int, day: date) -> TimesheetSubmission:
    """Create the submission marker for a day that meets the threshold."""
    lock_user_timesheet(db, user_id)
    total = day_total_hours(db, user_id=user_id, day=day)
    if not meets_submission_threshold(total):
        raise BusinessRuleViolation(
            f"Minimum {settings.min_submission_hours:g} hours required for submission"
        )

    existing = db.scalar(
        select(TimesheetSubmission.id).where(
            TimesheetSubmission.user_id == user_id,
            TimesheetSubmission.submission_date == day,
        )
    )
    if existing is not None:
        raise BusinessRuleViolation("Already submitted for this date")

    submission = TimesheetSubmission(user_id=user_id, submission_date=day)
    db.add(submission)
    db.flush()
    return submission


def submitted_dates(db: Session, *, user_id: int, since: date, until: date | None = None) -> set[date]:
    query = select(TimesheetSubmission.submission_date).where(
        TimesheetSubmission.user_id == user_id,
        TimesheetSubmission.submission_date >= since,
    )
    if until is not None:
        query = query.where(TimesheetSubmission.submission_date <= until)
    return set(db.scalars(query))


def is_weekday(day: date) -> bool:
    return day.weekday() < 5


def get_submission_deadline(workday: date) -> datetime:
    """Mon-Thu are due the next day at 10:00 UTC; Friday is due Monday 10:00 UTC."""
    days_ahead = 3 if workday.weekday() == 4 else 1
    return datetime.combine(workday + timedelta(days=days_ahead), time(DEADLINE_HOUR_UTC), tzinfo=timezone.utc)


def is_overdue(workday: date, now: datetime) -> bool:
    if not is_weekday(workday):
        return False
    if workday > now.date():
        return False
    return now >= get_submission_deadline(workday)


def get_overdue_dates(now: datetime, submitted: set[date], lookback_days: int | None = None) -> list[date]:
    """Return unsubmitted weekdays in the lookback window whose deadline passed, oldest first."""
    if lookback_days is None:
        lookback_days = settings.overdue_lookback_days
    today = now.date()
    overdue = []
    for offset in range(lookback_days, -1, -1):
        day = today - timedelta(days=offset)
        if day in submitted:
            continue
        if is_overdue(day, now):
            overdue.append(day)
    return overdue
