"""Reporting helpers.

Folds a date-range of time entries into employee, client and topic rollups.
The accumulation step computes every figure (revenue included) for every
caller; `project_for_viewer` then applies role-sensitive visibility once, so
the accumulation stays a single-purpose pure function.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal

from sqlalchemy import select
from sqlalchemy.orm import Session, joinedload

from lexbill.decimals import serialize_decimal, to_decimal
from lexbill.models import ClientType, TimeEntry
from lexbill.schemas import (
    ClientBreakdown,
    ClientStats,
    DailyHours,
    EmployeeBreakdown,
    EmployeeStats,
    ReportData,
    ReportEntry,
    ReportSummary,
    TopClient,
    TopicAggregation,
)

logger = logging.getLogger(__name__)

UNCATEGORIZED_TOPIC = "Uncategorized"
UNKNOWN_USER = "Unknown"
ZERO = Decimal("0")


@dataclass(frozen=True)
class ReportRow:
    """One time entry joined with its client and author, as read from the store."""

    id: int
    entry_date: date
    hours: Decimal | str | float
    description: str
    user_id: int
    user_name: str | None
    client_id: int
    client_name: str
    client_hourly_rate: Decimal | str | float | None
    client_type: str
    topic_name: str | None = None
    subtopic_name: str | None = None
    is_written_off: bool = False


@dataclass
class _TopicTotals:
    total_hours: Decimal = ZERO
    written_off_hours: Decimal = ZERO


@dataclass
class _EmployeeTotals:
    id: int
    name: str
    total_hours: Decimal = ZERO
    billable_hours: Decimal = ZERO
    revenue: Decimal = ZERO
    clients: dict[int, list] = field(default_factory=dict)
    daily_hours: dict[date, Decimal] = field(default_factory=dict)
    topics: dict[str, _TopicTotals] = field(default_factory=dict)


@dataclass
class _ClientTotals:
    id: int
    name: str
    hourly_rate: Decimal | None
    client_type: str
    total_hours: Decimal = ZERO
    revenue: Decimal = ZERO
    employees: dict[int, list] = field(default_factory=dict)
    topics: dict[str, _TopicTotals] = field(default_factory=dict)


def fetch_report_rows(db: Session, *, start: date, end: date, user_id: int | None = None) -> list[ReportRow]:
    """Load entries in `[start, end]`, optionally restricted to one author."""
    query = (
        select(TimeEntry)
        .options(joinedload(TimeEntry.user), joinedload(TimeEntry.client))
        .where(TimeEntry.entry_date >= start, TimeEntry.entry_date <= end)
        .order_by(TimeEntry.entry_date.desc())
    )
    if user_id is not None:
        query = query.where(TimeEntry.user_id == user_id)

    return [
        ReportRow(
            id=entry.id,
            entry_date=entry.entry_date,
            hours=entry.hours,
            description=entry.description,
            user_id=entry.user_id,
            user_name=entry.user.name,
            client_id=entry.client_id,
            client_name=entry.client.name,
            client_hourly_rate=entry.client.hourly_rate,
            client_type=getattr(entry.client.client_type, "value", entry.client.client_type),
            topic_name=entry.topic_name,
            subtopic_name=entry.subtopic_name,
            is_written_off=bool(entry.is_written_off),
        )
        for entry in db.scalars(query).unique()
    ]


def _add_topic_hours(topics: dict[str, _TopicTotals], topic_name: str, hours: Decimal, written_off: bool) -> None:
    totals = topics.setdefault(topic_name, _TopicTotals())
    totals.total_hours += hours
    if written_off:
        totals.written_off_hours += hours


def _topic_list(topics: dict[str, _TopicTotals]) -> list[TopicAggregation]:
    return [
        TopicAggregation(
            topic_name=name,
            total_hours=float(totals.total_hours),
            written_off_hours=float(totals.written_off_hours),
        )
        for name, totals in topics.items()
    ]


def aggregate_entries(rows: list[ReportRow]) -> ReportData:
    """Accumulate rows into a full (unprojected) report.

    Revenue accrues only for non-written-off entries on REGULAR clients with a
    positive hourly rate. Sums stay in Decimal until the response is built.
    """
    employees: dict[int, _EmployeeTotals] = {}
    clients: dict[int, _ClientTotals] = {}
    total_hours = ZERO
    total_revenue = ZERO
    total_written_off = ZERO
    active_client_ids: set[int] = set()

    for row in rows:
        hours = to_decimal(row.hours) or ZERO
        rate = to_decimal(row.client_hourly_rate)
        topic_name = row.topic_name or UNCATEGORIZED_TOPIC
        user_name = row.user_name or UNKNOWN_USER
        written_off = bool(row.is_written_off)
        billable = row.client_type == ClientType.REGULAR.value and not written_off
        revenue = hours * rate if billable and rate is not None and rate > 0 else ZERO

        total_hours += hours
        total_revenue += revenue
        active_client_ids.add(row.client_id)
        if written_off:
            total_written_off += hours

        employee = employees.get(row.user_id)
        if employee is None:
            employee = employees[row.user_id] = _EmployeeTotals(id=row.user_id, name=user_name)
        employee.total_hours += hours
        if billable:
            employee.billable_hours += hours
            employee.revenue += revenue
        employee.daily_hours[row.entry_date] = employee.daily_hours.get(row.entry_date, ZERO) + hours
        employee_client = employee.clients.setdefault(row.client_id, [row.client_name, ZERO])
        employee_client[1] += hours
        _add_topic_hours(employee.topics, topic_name, hours, written_off)

        client = clients.get(row.client_id)
        if client is None:
            client = clients[row.client_id] = _ClientTotals(
                id=row.client_id,
                name=row.client_name,
                hourly_rate=rate,
                client_type=row.client_type,
            )
        client.total_hours += hours
        client.revenue += revenue
        client_employee = client.employees.setdefault(row.user_id, [user_name, ZERO])
        client_employee[1] += hours
        _add_topic_hours(client.topics, topic_name, hours, written_off)

    by_employee = []
    for employee in employees.values():
        client_rows = sorted(
            (ClientBreakdown(id=client_id, name=name, hours=float(hours)) for client_id, (name, hours) in employee.clients.items()),
            key=lambda item: item.hours,
            reverse=True,
        )
        by_employee.append(
            EmployeeStats(
                id=employee.id,
                name=employee.name,
                total_hours=float(employee.total_hours),
                billable_hours=float(employee.billable_hours),
                revenue=float(employee.revenue),
                client_count=len(client_rows),
                top_client=TopClient(name=client_rows[0].name, hours=client_rows[0].hours) if client_rows else None,
                clients=client_rows,
                daily_hours=[
                    DailyHours(date=day, hours=float(hours)) for day, hours in sorted(employee.daily_hours.items())
                ],
                topics=_topic_list(employee.topics),
            )
        )
    by_employee.sort(key=lambda item: item.total_hours, reverse=True)

    by_client = []
    for client in clients.values():
        employee_rows = sorted(
            (EmployeeBreakdown(id=user_id, name=name, hours=float(hours)) for user_id, (name, hours) in client.employees.items()),
            key=lambda item: item.hours,
            reverse=True,
        )
        by_client.append(
            ClientStats(
                id=client.id,
                name=client.name,
                hourly_rate=serialize_decimal(client.hourly_rate),
                client_type=client.client_type,
                total_hours=float(client.total_hours),
                revenue=float(client.revenue),
                employees=employee_rows,
                topics=_topic_list(client.topics),
            )
        )
    by_client.sort(key=lambda item: item.total_hours, reverse=True)

    entries = [
        ReportEntry(
            id=row.id,
            date=row.entry_date,
            hours=serialize_decimal(row.hours) or 0.0,
            description=row.description,
            user_id=row.user_id,
            user_name=row.user_name or UNKNOWN_USER,
            client_id=row.client_id,
            client_name=row.client_name,
            topic_name=row.topic_name or UNCATEGORIZED_TOPIC,
            subtopic_name=row.subtopic_name,
            is_written_off=bool(row.is_written_off),
            client_type=row.client_type,
        )
        for row in sorted(rows, key=lambda item: item.entry_date, reverse=True)
    ]

    return ReportData(
        summary=ReportSummary(
            total_hours=float(total_hours),
            total_revenue=float(total_revenue),
            total_written_off_hours=float(total_written_off),
            active_clients=len(active_client_ids),
        ),
        by_employee=by_employee,
        by_client=by_client,
        entries=entries,
    )


def project_for_viewer(report: ReportData, *, viewer_id: int, privileged: bool) -> ReportData:
    """Apply role-sensitive visibility to an aggregated report.

    Privileged viewers see the report unchanged. Everyone else sees only their
    own employee row, and revenue, billable hours and rates are nulled.
    """
    if privileged:
        return report

    hidden_money = {"revenue": None}
    return report.model_copy(
        update={
            "summary": report.summary.model_copy(update={"total_revenue": None, "total_written_off_hours": None}),
            "by_employee": [
                employee.model_copy(update={**hidden_money, "billable_hours": None})
                for employee in report.by_employee
                if employee.id == viewer_id
            ],
            "by_client": [
                client.model_copy(update={**hidden_money, "hourly_rate": None}) for client in report.by_client
            ],
        }
    )


def get_report_data(db: Session, *, start: date, end: date, viewer_id: int, privileged: bool) -> ReportData:
    """Fetch, aggregate and project the report for one viewer."""
    rows = fetch_report_rows(db, start=start, end=end, user_id=None if privileged else viewer_id)
    logger.debug("Aggregating %d time entries for report %s..%s", len(rows), start, end)
    return project_for_viewer(aggregate_entries(rows), viewer_id=viewer_id, privileged=privileged)
