"""ORM models.

Defines firm users and positions, the client and topic catalogs that time is
logged against, time entries with their denormalized topic snapshot, service
descriptions with priced topics and waivable line items, and the per-day
timesheet submission markers.
"""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from enum import Enum

from sqlalchemy import (
    Boolean,
    Date,
    DateTime,
    Enum as SQLEnum,
    ForeignKey,
    Integer,
    Numeric,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from lexbill.database import Base


class Position(str, Enum):
    ADMIN = "ADMIN"
    PARTNER = "PARTNER"
    SENIOR_ASSOCIATE = "SENIOR_ASSOCIATE"
    ASSOCIATE = "ASSOCIATE"
    CONSULTANT = "CONSULTANT"


class ClientType(str, Enum):
    REGULAR = "REGULAR"
    INTERNAL = "INTERNAL"
    MANAGEMENT = "MANAGEMENT"


class CatalogStatus(str, Enum):
    ACTIVE = "ACTIVE"
    INACTIVE = "INACTIVE"


class ServiceDescriptionStatus(str, Enum):
    DRAFT = "DRAFT"
    FINALIZED = "FINALIZED"


class PricingMode(str, Enum):
    HOURLY = "HOURLY"
    FIXED = "FIXED"


class DiscountType(str, Enum):
    PERCENTAGE = "PERCENTAGE"
    AMOUNT = "AMOUNT"


class WaiveMode(str, Enum):
    EXCLUDED = "EXCLUDED"
    ZERO = "ZERO"


class User(Base):
    __tablename__ = "users"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    email: Mapped[str] = mapped_column(String(255), unique=True, index=True)
    name: Mapped[str | None] = mapped_column(String(120), nullable=True)
    position: Mapped[Position] = mapped_column(SQLEnum(Position), default=Position.ASSOCIATE)
    active: Mapped[bool] = mapped_column(Boolean, default=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)

    time_entries: Mapped[list[TimeEntry]] = relationship(back_populates="user", cascade="all, delete-orphan")
    submissions: Mapped[list[TimesheetSubmission]] = relationship(back_populates="user", cascade="all, delete-orphan")


class Client(Base):
    __tablename__ = "clients"

    id: Mapped[int] = mapped_column(primary_key=True)
    name: Mapped[str] = mapped_column(String(255))
    client_type: Mapped[ClientType] = mapped_column(SQLEnum(ClientType), default=ClientType.REGULAR)
    hourly_rate: Mapped[Decimal | None] = mapped_column(Numeric(10, 2), nullable=True)
    status: Mapped[CatalogStatus] = mapped_column(SQLEnum(CatalogStatus), default=CatalogStatus.ACTIVE)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)

    time_entries: Mapped[list[TimeEntry]] = relationship(back_populates="client")


class Topic(Base):
    __tablename__ = "topics"

    id: Mapped[int] = mapped_column(primary_key=True)
    name: Mapped[str] = mapped_column(String(255))
    topic_type: Mapped[ClientType] = mapped_column(SQLEnum(ClientType), default=ClientType.REGULAR)
    status: Mapped[CatalogStatus] = mapped_column(SQLEnum(CatalogStatus), default=CatalogStatus.ACTIVE)
    display_order: Mapped[int] = mapped_column(Integer, default=0)

    subtopics: Mapped[list[Subtopic]] = relationship(back_populates="topic")


class Subtopic(Base):
    __tablename__ = "subtopics"

    id: Mapped[int] = mapped_column(primary_key=True)
    topic_id: Mapped[int] = mapped_column(ForeignKey("topics.id", ondelete="RESTRICT"), index=True)
    name: Mapped[str] = mapped_column(String(255))
    is_prefix: Mapped[bool] = mapped_column(Boolean, default=False)
    status: Mapped[CatalogStatus] = mapped_column(SQLEnum(CatalogStatus), default=CatalogStatus.ACTIVE)
    display_order: Mapped[int] = mapped_column(Integer, default=0)

    topic: Mapped[Topic] = relationship(back_populates="subtopics")


class TimeEntry(Base):
    __tablename__ = "time_entries"

    id: Mapped[int] = mapped_column(primary_key=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), index=True)
    client_id: Mapped[int] = mapped_column(ForeignKey("clients.id", ondelete="CASCADE"), index=True)
    entry_date: Mapped[date] = mapped_column(Date, index=True)
    hours: Mapped[Decimal] = mapped_column(Numeric(4, 2))
    description: Mapped[str] = mapped_column(Text)
    topic_id: Mapped[int | None] = mapped_column(ForeignKey("topics.id", ondelete="SET NULL"), nullable=True)
    # Name snapshots keep historical reports stable after catalog renames.
    topic_name: Mapped[str] = mapped_column(String(255), default="")
    subtopic_id: Mapped[int | None] = mapped_column(
        ForeignKey("subtopics.id", ondelete="SET NULL"), nullable=True, index=True
    )
    subtopic_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    is_written_off: Mapped[bool] = mapped_column(Boolean, default=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    updated_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)

    user: Mapped[User] = relationship(back_populates="time_entries")
    client: Mapped[Client] = relationship(back_populates="time_entries")
    billing_line_items: Mapped[list[ServiceDescriptionLineItem]] = relationship(
        back_populates="time_entry",
        passive_deletes=True,
    )


class ServiceDescription(Base):
    __tablename__ = "service_descriptions"

    id: Mapped[int] = mapped_column(primary_key=True)
    client_id: Mapped[int] = mapped_column(ForeignKey("clients.id", ondelete="RESTRICT"), index=True)
    period_start: Mapped[date] = mapped_column(Date)
    period_end: Mapped[date] = mapped_column(Date)
    status: Mapped[ServiceDescriptionStatus] = mapped_column(
        SQLEnum(ServiceDescriptionStatus), default=ServiceDescriptionStatus.DRAFT, index=True
    )
    finalized_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)

    topics: Mapped[list[ServiceDescriptionTopic]] = relationship(
        back_populates="service_description",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )


class ServiceDescriptionTopic(Base):
    __tablename__ = "service_description_topics"

    id: Mapped[int] = mapped_column(primary_key=True)
    service_description_id: Mapped[int] = mapped_column(
        ForeignKey("service_descriptions.id", ondelete="CASCADE"), index=True
    )
    topic_name: Mapped[str] = mapped_column(String(255))
    display_order: Mapped[int] = mapped_column(Integer, default=0)
    pricing_mode: Mapped[PricingMode] = mapped_column(SQLEnum(PricingMode), default=PricingMode.HOURLY)
    hourly_rate: Mapped[Decimal | None] = mapped_column(Numeric(10, 2), nullable=True)
    fixed_fee: Mapped[Decimal | None] = mapped_column(Numeric(10, 2), nullable=True)
    cap_hours: Mapped[Decimal | None] = mapped_column(Numeric(6, 2), nullable=True)
    discount_type: Mapped[DiscountType | None] = mapped_column(SQLEnum(DiscountType), nullable=True)
    discount_value: Mapped[Decimal | None] = mapped_column(Numeric(10, 2), nullable=True)
    updated_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)

    service_description: Mapped[ServiceDescription] = relationship(back_populates="topics")
    line_items: Mapped[list[ServiceDescriptionLineItem]] = relationship(
        back_populates="topic",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )


class ServiceDescriptionLineItem(Base):
    __tablename__ = "service_description_line_items"

    id: Mapped[int] = mapped_column(primary_key=True)
    topic_id: Mapped[int] = mapped_column(ForeignKey("service_description_topics.id", ondelete="CASCADE"), index=True)
    time_entry_id: Mapped[int | None] = mapped_column(
        ForeignKey("time_entries.id", ondelete="SET NULL"), nullable=True, index=True
    )
    entry_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    description: Mapped[str] = mapped_column(Text, default="")
    hours: Mapped[Decimal | None] = mapped_column(Numeric(4, 2), nullable=True)
    waive_mode: Mapped[WaiveMode | None] = mapped_column(SQLEnum(WaiveMode), nullable=True)
    display_order: Mapped[int] = mapped_column(Integer, default=0)

    topic: Mapped[ServiceDescriptionTopic] = relationship(back_populates="line_items")
    time_entry: Mapped[TimeEntry | None] = relationship(back_populates="billing_line_items")


class TimesheetSubmission(Base):
    __tablename__ = "timesheet_submissions"
    __table_args__ = (UniqueConstraint("user_id", "submission_date", name="uq_timesheet_submissions_user_date"),)

    id: Mapped[int] = mapped_column(primary_key=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), index=True)
    submission_date: Mapped[date] = mapped_column(Date, index=True)
    submitted_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)

    user: Mapped[User] = relationship(back_populates="submissions")
