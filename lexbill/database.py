"""Database module.

Provides SQLAlchemy engine/session setup and migration helpers. Every request
gets one transaction-capable session; mutation handlers commit once so that
consistency steps (submission revocation, write-off clearing) are applied
together with the primary change or not at all.
"""

from __future__ import annotations

import logging
from pathlib import Path

from alembic import command
from alembic.config import Config
from sqlalchemy import create_engine, event, inspect
from sqlalchemy.engine import Engine
from sqlalchemy.orm import DeclarativeBase, sessionmaker

from lexbill.config import settings

logger = logging.getLogger(__name__)


class Base(DeclarativeBase):
    """Base declarative class for all ORM entities."""


def enable_sqlite_foreign_keys(db_engine: Engine) -> None:
    """Turn on FK enforcement so ON DELETE CASCADE/SET NULL behave as on Postgres."""
    if db_engine.dialect.name != "sqlite":
        return

    @event.listens_for(db_engine, "connect")
    def _set_sqlite_pragma(dbapi_connection, _connection_record) -> None:
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


connect_args = {"check_same_thread": False} if settings.database_url.startswith("sqlite") else {}
engine = create_engine(settings.database_url, connect_args=connect_args, future=True)
enable_sqlite_foreign_keys(engine)
SessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False)


def get_db():
    """FastAPI dependency that yields a transaction-capable DB session."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def run_migrations(revision: str = "head") -> None:
    """Apply Alembic migrations up to `revision`, then run the SQLite safety net."""
    alembic_ini_path = Path(__file__).resolve().parent.parent / "alembic.ini"
    alembic_cfg = Config(str(alembic_ini_path))
    alembic_cfg.set_main_option("sqlalchemy.url", settings.database_url)

    command.upgrade(alembic_cfg, revision)
    ensure_sqlite_schema(engine)
    logger.info("Database migrations applied successfully")


def ensure_sqlite_schema(db_engine: Engine) -> None:
    """Backfill billing columns missing from legacy local SQLite databases.

    Databases created before write-offs and topic discounts existed lack these
    columns. Alembic migrations remain the authoritative schema mechanism.
    """
    if db_engine.dialect.name != "sqlite":
        return

    inspector = inspect(db_engine)
    table_names = set(inspector.get_table_names())

    # NOTE: additive-only; SQLite can add nullable/defaulted columns in place.
    sqlite_legacy_alter_statements: dict[str, list[tuple[str, str]]] = {
        "time_entries": [
            (
                "is_written_off",
                "ALTER TABLE time_entries ADD COLUMN is_written_off BOOLEAN NOT NULL DEFAULT 0",
            ),
        ],
        "service_description_topics": [
            ("cap_hours", "ALTER TABLE service_description_topics ADD COLUMN cap_hours NUMERIC(6, 2)"),
            ("discount_type", "ALTER TABLE service_description_topics ADD COLUMN discount_type VARCHAR(10)"),
            ("discount_value", "ALTER TABLE service_description_topics ADD COLUMN discount_value NUMERIC(10, 2)"),
        ],
        "service_description_line_items": [
            ("waive_mode", "ALTER TABLE service_description_line_items ADD COLUMN waive_mode VARCHAR(8)"),
        ],
    }

    with db_engine.begin() as connection:
        for table_name, statements in sqlite_legacy_alter_statements.items():
            if table_name not in table_names:
                logger.debug("SQLite schema check skipped: table '%s' not found.", table_name)
                continue

            column_names = {column["name"] for column in inspector.get_columns(table_name)}
            for column_name, statement in statements:
                if column_name in column_names:
                    continue
                logger.warning(
                    "Applying SQLite dev schema safety net: adding column '%s.%s'.",
                    table_name,
                    column_name,
                )
                connection.exec_driver_sql(statement)
                logger.info("Applied SQLite schema change: table=%s column=%s", table_name, column_name)
