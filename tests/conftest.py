"""Mini-README: Shared fixtures for API and service tests.

Every test gets a private in-memory SQLite database. A single `StaticPool`
connection keeps that database alive across the sessions opened by the seeding
fixture and by request handlers under `TestClient`.
"""

from __future__ import annotations

from collections.abc import Callable

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from lexbill.database import Base, enable_sqlite_foreign_keys, get_db
from lexbill.main import app
from lexbill.models import User
from lexbill.security import create_session_token


@pytest.fixture
def engine():
    test_engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    enable_sqlite_foreign_keys(test_engine)
    Base.metadata.create_all(test_engine)
    yield test_engine
    test_engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, autoflush=False, autocommit=False)


@pytest.fixture
def db(session_factory) -> Session:
    """Session used by tests to seed rows and inspect results."""
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def client(session_factory) -> TestClient:
    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def login(client) -> Callable[[User], TestClient]:
    """Attach a signed session cookie for `user` to the shared test client."""

    def _login(user: User) -> TestClient:
        client.cookies.set("session_token", create_session_token(user.id))
        return client

    return _login
