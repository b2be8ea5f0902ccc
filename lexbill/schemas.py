"""Pydantic schemas.

Defines the camelCase wire payloads for time entry mutations, billing topic and
line item creation and updates, submissions, and the aggregated report. Request
models keep loose types where the service layer owns the validation message.
"""

import datetime as dt

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class TimeEntryCreate(CamelModel):
    entry_date: dt.date = Field(alias="date")
    client_id: int
    hours: float
    description: str
    topic_id: int | None = None
    subtopic_id: int | None = None


class TimeEntryUpdate(CamelModel):
    hours: float | None = None
    description: str | None = None
    client_id: int | None = None
    topic_id: int | None = None
    subtopic_id: int | None = None


class SubmissionCreate(CamelModel):
    submission_date: dt.date = Field(alias="date")


class BillingTopicUpdate(CamelModel):
    topic_name: str | None = None
    display_order: int | None = None
    pricing_mode: str | None = None
    hourly_rate: float | None = None
    fixed_fee: float | None = None
    cap_hours: float | None = None
    discount_type: str | None = None
    discount_value: float | None = None


class BillingTopicCreate(CamelModel):
    topic_name: str | None = None
    pricing_mode: str | None = None
    hourly_rate: float | None = None
    fixed_fee: float | None = None
    cap_hours: float | None = None
    discount_type: str | None = None
    discount_value: float | None = None


class LineItemWaiveUpdate(CamelModel):
    waive_mode: str | None = None


class LineItemCreate(CamelModel):
    entry_date: dt.date | None = Field(default=None, alias="date")
    description: str | None = None
    hours: float | None = None


class TopicAggregation(CamelModel):
    topic_name: str
    total_hours: float
    written_off_hours: float


class TopClient(CamelModel):
    name: str
    hours: float


class ClientBreakdown(CamelModel):
    id: int
    name: str
    hours: float


class EmployeeBreakdown(CamelModel):
    id: int
    name: str
    hours: float


class DailyHours(CamelModel):
    date: dt.date
    hours: float


class EmployeeStats(CamelModel):
    id: int
    name: str
    total_hours: float
    billable_hours: float | None
    revenue: float | None
    client_count: int
    top_client: TopClient | None
    clients: list[ClientBreakdown]
    daily_hours: list[DailyHours]
    topics: list[TopicAggregation]


class ClientStats(CamelModel):
    id: int
    name: str
    hourly_rate: float | None
    client_type: str
    total_hours: float
    revenue: float | None
    employees: list[EmployeeBreakdown]
    topics: list[TopicAggregation]


class ReportEntry(CamelModel):
    id: int
    date: dt.date
    hours: float
    description: str
    user_id: int
    user_name: str
    client_id: int
    client_name: str
    topic_name: str
    subtopic_name: str | None
    is_written_off: bool
    client_type: str


class ReportSummary(CamelModel):
    total_hours: float
    total_revenue: float | None
    total_written_off_hours: float | None
    active_clients: int


class ReportData(CamelModel):
    summary: ReportSummary
    by_employee: list[EmployeeStats]
    by_client: list[ClientStats]
    entries: list[ReportEntry]
