"""Mini-README: Regression tests for SQLite-safe behavior in the write-off/discount revision."""

from __future__ import annotations

import importlib.util
from pathlib import Path
from types import SimpleNamespace


def _load_revision_module():
    """Load the Alembic revision module directly from file path."""
    revision_path = (
        Path(__file__).resolve().parents[1]
        / "alembic"
        / "versions"
        / "8e4b2d6f0a13_add_write_offs_and_topic_discounts.py"
    )
    spec = importlib.util.spec_from_file_location("revision_8e4b2d6f0a13", revision_path)
    assert spec and spec.loader
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    return module


class FakeOp:
    def __init__(self, dialect_name: str) -> None:
        self.dialect_name = dialect_name
        self.added: list[tuple[str, str]] = []
        self.altered: list[tuple[str, str]] = []

    def get_bind(self):
        return SimpleNamespace(dialect=SimpleNamespace(name=self.dialect_name))

    def add_column(self, table_name, column, **_kwargs):
        self.added.append((table_name, column.name))

    def alter_column(self, table_name, column_name, **_kwargs):
        self.altered.append((table_name, column_name))


def _inspector_with(columns: dict[str, list[str]]):
    class FakeInspector:
        @staticmethod
        def get_columns(table_name: str):
            return [{"name": name} for name in columns.get(table_name, [])]

    return lambda _bind: FakeInspector()


def test_revision_adds_all_columns_and_skips_alter_on_sqlite(monkeypatch) -> None:
    revision = _load_revision_module()
    fake_op = FakeOp("sqlite")
    monkeypatch.setattr(revision, "op", fake_op)
    monkeypatch.setattr(revision, "inspect", _inspector_with({}))

    revision.upgrade()

    assert fake_op.added == [
        ("time_entries", "is_written_off"),
        ("service_description_topics", "cap_hours"),
        ("service_description_topics", "discount_type"),
        ("service_description_topics", "discount_value"),
        ("service_description_line_items", "waive_mode"),
    ]
    assert fake_op.altered == []


def test_revision_drops_write_off_default_on_postgres(monkeypatch) -> None:
    revision = _load_revision_module()
    fake_op = FakeOp("postgresql")
    monkeypatch.setattr(revision, "op", fake_op)
    monkeypatch.setattr(revision, "inspect", _inspector_with({}))

    revision.upgrade()

    assert fake_op.altered == [("time_entries", "is_written_off")]


def test_revision_skips_columns_backfilled_by_safety_net(monkeypatch) -> None:
    revision = _load_revision_module()
    fake_op = FakeOp("sqlite")
    monkeypatch.setattr(revision, "op", fake_op)
    monkeypatch.setattr(
        revision,
        "inspect",
        _inspector_with(
            {
                "time_entries": ["id", "is_written_off"],
                "service_description_topics": ["id", "cap_hours", "discount_type", "discount_value"],
            }
        ),
    )

    revision.upgrade()

    assert fake_op.added == [("service_description_line_items", "waive_mode")]
