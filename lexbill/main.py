"""Application entrypoint.

This file wires the reporting, timesheet and billing API routes, the error
translation for request parsing and store failures, and startup actions for
the LexBill back office service.
"""

import calendar
import logging
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import MAXYEAR, MINYEAR, date, datetime, timedelta, timezone

from fastapi import Depends, FastAPI, Query, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from lexbill.config import settings
from lexbill.database import Base, engine, ensure_sqlite_schema, get_db
from lexbill.dependencies import get_current_user, has_admin_access, require_admin
from lexbill.errors import InternalFailure, ValidationFailed
from lexbill.models import User
from lexbill.schemas import (
    BillingTopicCreate,
    BillingTopicUpdate,
    LineItemCreate,
    LineItemWaiveUpdate,
    ReportData,
    SubmissionCreate,
    TimeEntryCreate,
    TimeEntryUpdate,
)
from lexbill.services_billing import (
    create_billing_topic,
    create_line_item,
    delete_billing_topic,
    delete_line_item,
    serialize_billing_topic,
    serialize_line_item,
    set_line_item_waive_mode,
    update_billing_topic,
)
from lexbill.services_reports import get_report_data
from lexbill.services_submissions import get_overdue_dates, submit_day, submitted_dates
from lexbill.services_timesheets import (
    create_time_entry,
    delete_time_entry,
    list_day_entries,
    serialize_time_entry,
    update_time_entry,
)

logger = logging.getLogger(__name__)

app = FastAPI(title=settings.app_name, debug=settings.debug)


@app.exception_handler(RequestValidationError)
async def request_validation_handler(_request: Request, exc: RequestValidationError) -> JSONResponse:
    """Report malformed payloads as a single-sentence 400 instead of FastAPI's 422 list."""
    errors = exc.errors()
    if errors:
        location = [str(part) for part in errors[0].get("loc", ()) if part not in ("body", "query", "path")]
        field = ".".join(location) or "request"
        detail = f"Invalid value for {field}"
    else:
        detail = "Invalid request format"
    return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content={"detail": detail})


@contextmanager
def store_errors(db: Session, failure_message: str) -> Iterator[None]:
    """Roll back and report a generic 500 when the store fails mid-operation."""
    try:
        yield
    except SQLAlchemyError:
        db.rollback()
        logger.exception("Database error: %s", failure_message)
        raise InternalFailure(failure_message)


def parse_query_date(raw: str, label: str) -> date:
    try:
        return date.fromisoformat(raw)
    except ValueError as exc:
        raise ValidationFailed(f"Invalid {label} format") from exc


@app.on_event("startup")
def startup() -> None:
    logging.basicConfig(level=settings.log_level.upper())
    Base.metadata.create_all(bind=engine)
    ensure_sqlite_schema(engine)


@app.get("/reports", response_model=ReportData)
def reports(
    start_date: str | None = Query(default=None, alias="startDate"),
    end_date: str | None = Query(default=None, alias="endDate"),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    if not start_date or not end_date:
        raise ValidationFailed("startDate and endDate are required")
    start = parse_query_date(start_date, "startDate")
    end = parse_query_date(end_date, "endDate")
    if start > end:
        raise ValidationFailed("startDate must be before or equal to endDate")

    with store_errors(db, "Failed to fetch report data"):
        return get_report_data(
            db,
            start=start,
            end=end,
            viewer_id=current_user.id,
            privileged=has_admin_access(current_user),
        )


@app.get("/timesheets")
def list_timesheets(
    day: str | None = Query(default=None, alias="date"),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    if not day:
        raise ValidationFailed("Date parameter is required")
    entry_date = parse_query_date(day, "date")

    with store_errors(db, "Failed to fetch time entries"):
        entries = list_day_entries(db, day=entry_date, viewer=current_user, privileged=has_admin_access(current_user))
        return [serialize_time_entry(entry) for entry in entries]


@app.post("/timesheets", status_code=status.HTTP_201_CREATED)
def create_timesheet(payload: TimeEntryCreate, current_user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    with store_errors(db, "Failed to create time entry"):
        entry = create_time_entry(db, actor=current_user, payload=payload.model_dump())
        db.commit()
        db.refresh(entry)
        return serialize_time_entry(entry)


@app.patch("/timesheets/{entry_id}")
def update_timesheet(
    entry_id: int,
    payload: TimeEntryUpdate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    changes = payload.model_dump(include=payload.model_fields_set)
    with store_errors(db, "Failed to update time entry"):
        entry, check = update_time_entry(db, entry_id=entry_id, actor=current_user, changes=changes)
        db.commit()
        db.refresh(entry)
        return {**serialize_time_entry(entry), **check.as_response_fields()}


@app.delete("/timesheets/{entry_id}")
def delete_timesheet(entry_id: int, current_user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    with store_errors(db, "Failed to delete time entry"):
        check = delete_time_entry(db, entry_id=entry_id, actor=current_user)
        db.commit()
    return {"success": True, **check.as_response_fields()}


@app.post("/timesheets/submit", status_code=status.HTTP_201_CREATED)
def submit_timesheet(payload: SubmissionCreate, current_user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    with store_errors(db, "Failed to submit timesheet"):
        submission = submit_day(db, user_id=current_user.id, day=payload.submission_date)
        db.commit()
        return {
            "id": submission.id,
            "userId": submission.user_id,
            "date": submission.submission_date.isoformat(),
            "submittedAt": submission.submitted_at.isoformat(),
        }


@app.get("/timesheets/submissions")
def timesheet_submissions(
    year: str | None = Query(default=None),
    month: str | None = Query(default=None),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Submitted dates of one calendar month for the current user, oldest first."""
    if not year or not month:
        raise ValidationFailed("Year and month are required")
    try:
        year_number, month_number = int(year), int(month)
    except ValueError as exc:
        raise ValidationFailed("Invalid year or month") from exc
    if not (MINYEAR <= year_number <= MAXYEAR and 1 <= month_number <= 12):
        raise ValidationFailed("Invalid year or month")

    first_day = date(year_number, month_number, 1)
    last_day = first_day.replace(day=calendar.monthrange(year_number, month_number)[1])
    with store_errors(db, "Failed to fetch submissions"):
        submitted = submitted_dates(db, user_id=current_user.id, since=first_day, until=last_day)
    return [day.isoformat() for day in sorted(submitted)]


@app.get("/timesheets/overdue")
def overdue_timesheets(current_user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    now = datetime.now(timezone.utc)
    since = now.date() - timedelta(days=settings.overdue_lookback_days)
    with store_errors(db, "Failed to fetch overdue dates"):
        submitted = submitted_dates(db, user_id=current_user.id, since=since)
    return {"overdueDates": [day.isoformat() for day in get_overdue_dates(now, submitted)]}


@app.post("/billing/{service_description_id}/topics", status_code=status.HTTP_201_CREATED)
def create_topic(
    service_description_id: int,
    payload: BillingTopicCreate,
    actor: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    fields = payload.model_dump(include=payload.model_fields_set)
    with store_errors(db, "Failed to create topic"):
        topic = create_billing_topic(db, service_description_id=service_description_id, fields=fields)
        db.commit()
        db.refresh(topic)
        return {**serialize_billing_topic(topic), "lineItems": []}


@app.patch("/billing/{service_description_id}/topics/{topic_id}")
def update_topic(
    service_description_id: int,
    topic_id: int,
    payload: BillingTopicUpdate,
    actor: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    changes = payload.model_dump(include=payload.model_fields_set)
    with store_errors(db, "Failed to update topic"):
        topic = update_billing_topic(
            db,
            service_description_id=service_description_id,
            topic_id=topic_id,
            changes=changes,
        )
        db.commit()
        db.refresh(topic)
        return serialize_billing_topic(topic)


@app.delete("/billing/{service_description_id}/topics/{topic_id}")
def delete_topic(
    service_description_id: int,
    topic_id: int,
    actor: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    with store_errors(db, "Failed to delete topic"):
        delete_billing_topic(db, service_description_id=service_description_id, topic_id=topic_id)
        db.commit()
    return {"success": True}


@app.post("/billing/{service_description_id}/topics/{topic_id}/items", status_code=status.HTTP_201_CREATED)
def create_item(
    service_description_id: int,
    topic_id: int,
    payload: LineItemCreate,
    actor: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    with store_errors(db, "Failed to create line item"):
        item = create_line_item(
            db,
            service_description_id=service_description_id,
            topic_id=topic_id,
            fields=payload.model_dump(),
        )
        db.commit()
        db.refresh(item)
        return serialize_line_item(item)


@app.patch("/billing/{service_description_id}/topics/{topic_id}/items/{item_id}")
def update_line_item(
    service_description_id: int,
    topic_id: int,
    item_id: int,
    payload: LineItemWaiveUpdate,
    actor: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    with store_errors(db, "Failed to update line item"):
        item = set_line_item_waive_mode(
            db,
            service_description_id=service_description_id,
            topic_id=topic_id,
            item_id=item_id,
            waive_mode=payload.waive_mode,
        )
        db.commit()
        db.refresh(item)
        return serialize_line_item(item)


@app.delete("/billing/{service_description_id}/topics/{topic_id}/items/{item_id}")
def remove_line_item(
    service_description_id: int,
    topic_id: int,
    item_id: int,
    actor: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    with store_errors(db, "Failed to delete line item"):
        delete_line_item(db, service_description_id=service_description_id, topic_id=topic_id, item_id=item_id)
        db.commit()
    return {"success": True}


@app.get("/health")
def healthcheck():
    return {"status": "ok", "date": date.today().isoformat()}


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("lexbill.main:app", host=settings.host, port=settings.port)
