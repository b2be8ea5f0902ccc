"""Add write-off, waiver, cap and discount columns.

Revision ID: 8e4b2d6f0a13
Revises: 3c1f0a9b7d21
Create Date: 2026-02-10 14:20:00.000000

Idempotent for local SQLite databases that already received some of these
columns from the development schema safety net.
"""

from collections.abc import Sequence

from alembic import op
import sqlalchemy as sa
from sqlalchemy import inspect


# revision identifiers, used by Alembic.
revision: str = "8e4b2d6f0a13"
down_revision: str | None = "3c1f0a9b7d21"
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None

TOPIC_COLUMNS = (
    ("cap_hours", lambda: sa.Numeric(6, 2)),
    ("discount_type", lambda: sa.Enum("PERCENTAGE", "AMOUNT", name="discounttype")),
    ("discount_value", lambda: sa.Numeric(10, 2)),
)


def _column_names(inspector, table_name: str) -> set[str]:
    return {column["name"] for column in inspector.get_columns(table_name)}


def upgrade() -> None:
    bind = op.get_bind()
    inspector = inspect(bind)

    if "is_written_off" not in _column_names(inspector, "time_entries"):
        op.add_column(
            "time_entries",
            sa.Column("is_written_off", sa.Boolean(), nullable=False, server_default=sa.false()),
        )
        # SQLite cannot ALTER COLUMN; the leftover default there is harmless.
        if bind.dialect.name != "sqlite":
            op.alter_column("time_entries", "is_written_off", server_default=None)

    existing_topic_columns = _column_names(inspector, "service_description_topics")
    for column_name, column_type in TOPIC_COLUMNS:
        if column_name not in existing_topic_columns:
            op.add_column("service_description_topics", sa.Column(column_name, column_type(), nullable=True))

    if "waive_mode" not in _column_names(inspector, "service_description_line_items"):
        op.add_column(
            "service_description_line_items",
            sa.Column("waive_mode", sa.Enum("EXCLUDED", "ZERO", name="waivemode"), nullable=True),
        )


def downgrade() -> None:
    bind = op.get_bind()
    inspector = inspect(bind)

    if "waive_mode" in _column_names(inspector, "service_description_line_items"):
        op.drop_column("service_description_line_items", "waive_mode")
    existing_topic_columns = _column_names(inspector, "service_description_topics")
    for column_name, _column_type in reversed(TOPIC_COLUMNS):
        if column_name in existing_topic_columns:
            op.drop_column("service_description_topics", column_name)
    if "is_written_off" in _column_names(inspector, "time_entries"):
        op.drop_column("time_entries", "is_written_off")
