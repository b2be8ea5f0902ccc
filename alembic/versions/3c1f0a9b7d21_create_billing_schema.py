"""Create users, catalogs, time entries, service descriptions and submissions.

Revision ID: 3c1f0a9b7d21
Revises:
Create Date: 2026-01-12 09:00:00.000000
"""

from __future__ import annotations

from collections.abc import Sequence

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = "3c1f0a9b7d21"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None

POSITIONS = ("ADMIN", "PARTNER", "SENIOR_ASSOCIATE", "ASSOCIATE", "CONSULTANT")
CLIENT_TYPES = ("REGULAR", "INTERNAL", "MANAGEMENT")
CATALOG_STATUSES = ("ACTIVE", "INACTIVE")


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("name", sa.String(120), nullable=True),
        sa.Column("position", sa.Enum(*POSITIONS, name="position"), nullable=False),
        sa.Column("active", sa.Boolean(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
    )
    op.create_index("ix_users_email", "users", ["email"], unique=True)

    op.create_table(
        "clients",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("client_type", sa.Enum(*CLIENT_TYPES, name="clienttype"), nullable=False),
        sa.Column("hourly_rate", sa.Numeric(10, 2), nullable=True),
        sa.Column("status", sa.Enum(*CATALOG_STATUSES, name="catalogstatus"), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
    )

    op.create_table(
        "topics",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("topic_type", sa.Enum(*CLIENT_TYPES, name="clienttype"), nullable=False),
        sa.Column("status", sa.Enum(*CATALOG_STATUSES, name="catalogstatus"), nullable=False),
        sa.Column("display_order", sa.Integer(), nullable=False),
    )

    op.create_table(
        "subtopics",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("topic_id", sa.Integer(), sa.ForeignKey("topics.id", ondelete="RESTRICT"), nullable=False),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("is_prefix", sa.Boolean(), nullable=False),
        sa.Column("status", sa.Enum(*CATALOG_STATUSES, name="catalogstatus"), nullable=False),
        sa.Column("display_order", sa.Integer(), nullable=False),
    )
    op.create_index("ix_subtopics_topic_id", "subtopics", ["topic_id"])

    op.create_table(
        "time_entries",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("client_id", sa.Integer(), sa.ForeignKey("clients.id", ondelete="CASCADE"), nullable=False),
        sa.Column("entry_date", sa.Date(), nullable=False),
        sa.Column("hours", sa.Numeric(4, 2), nullable=False),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("topic_id", sa.Integer(), sa.ForeignKey("topics.id", ondelete="SET NULL"), nullable=True),
        sa.Column("topic_name", sa.String(255), nullable=False, server_default=""),
        sa.Column("subtopic_id", sa.Integer(), sa.ForeignKey("subtopics.id", ondelete="SET NULL"), nullable=True),
        sa.Column("subtopic_name", sa.String(255), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.text("CURRENT_TIMESTAMP")),
        sa.Column("updated_at", sa.DateTime(), nullable=True),
    )
    for column in ("user_id", "client_id", "entry_date", "subtopic_id"):
        op.create_index(f"ix_time_entries_{column}", "time_entries", [column])

    op.create_table(
        "service_descriptions",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("client_id", sa.Integer(), sa.ForeignKey("clients.id", ondelete="RESTRICT"), nullable=False),
        sa.Column("period_start", sa.Date(), nullable=False),
        sa.Column("period_end", sa.Date(), nullable=False),
        sa.Column("status", sa.Enum("DRAFT", "FINALIZED", name="servicedescriptionstatus"), nullable=False),
        sa.Column("finalized_at", sa.DateTime(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
    )
    op.create_index("ix_service_descriptions_client_id", "service_descriptions", ["client_id"])
    op.create_index("ix_service_descriptions_status", "service_descriptions", ["status"])

    op.create_table(
        "service_description_topics",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column(
            "service_description_id",
            sa.Integer(),
            sa.ForeignKey("service_descriptions.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("topic_name", sa.String(255), nullable=False),
        sa.Column("display_order", sa.Integer(), nullable=False),
        sa.Column("pricing_mode", sa.Enum("HOURLY", "FIXED", name="pricingmode"), nullable=False),
        sa.Column("hourly_rate", sa.Numeric(10, 2), nullable=True),
        sa.Column("fixed_fee", sa.Numeric(10, 2), nullable=True),
        sa.Column("updated_at", sa.DateTime(), nullable=True),
    )
    op.create_index(
        "ix_service_description_topics_service_description_id",
        "service_description_topics",
        ["service_description_id"],
    )

    op.create_table(
        "service_description_line_items",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column(
            "topic_id",
            sa.Integer(),
            sa.ForeignKey("service_description_topics.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("time_entry_id", sa.Integer(), sa.ForeignKey("time_entries.id", ondelete="SET NULL"), nullable=True),
        sa.Column("entry_date", sa.Date(), nullable=True),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("hours", sa.Numeric(4, 2), nullable=True),
        sa.Column("display_order", sa.Integer(), nullable=False),
    )
    op.create_index("ix_service_description_line_items_topic_id", "service_description_line_items", ["topic_id"])
    op.create_index(
        "ix_service_description_line_items_time_entry_id",
        "service_description_line_items",
        ["time_entry_id"],
    )

    op.create_table(
        "timesheet_submissions",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("submission_date", sa.Date(), nullable=False),
        sa.Column("submitted_at", sa.DateTime(), nullable=False),
        sa.UniqueConstraint("user_id", "submission_date", name="uq_timesheet_submissions_user_date"),
    )
    op.create_index("ix_timesheet_submissions_user_id", "timesheet_submissions", ["user_id"])
    op.create_index("ix_timesheet_submissions_submission_date", "timesheet_submissions", ["submission_date"])


def downgrade() -> None:
    op.drop_table("timesheet_submissions")
    op.drop_table("service_description_line_items")
    op.drop_table("service_description_topics")
    op.drop_table("service_descriptions")
    op.drop_table("time_entries")
    op.drop_table("subtopics")
    op.drop_table("topics")
    op.drop_table("clients")
    op.drop_table("users")
