"""Mini README: Shared pytest fixtures for Fundtracker.

Structure:
    * engine / session - fresh in-memory SQLite database per test.
    * repo - ``FinanceRepository`` owned by a freshly created user.
    * app / api - FastAPI application and a logged-in ``TestClient``.
"""

from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from fundtracker.configuration import FundtrackerSettings
from fundtracker.interface import create_application
from fundtracker.interface.auth import hash_password
from fundtracker.storage import (
    FinanceRepository,
    UserRepository,
    build_engine,
    build_session_factory,
    init_db,
)


@pytest.fixture()
def engine():
    engine = build_engine("sqlite://")
    init_db(engine)
    yield engine
    engine.dispose()


@pytest.fixture()
def session(engine):
    session = build_session_factory(engine)()
    yield session
    session.close()


@pytest.fixture()
def repo(session) -> FinanceRepository:
    user = UserRepository(session).create("treasurer", hash_password("secret-pass"))
    return FinanceRepository(session, user.id)


@pytest.fixture()
def settings() -> FundtrackerSettings:
    return FundtrackerSettings(
        _env_file=None,
        database_url="sqlite://",
        session_secret="test-session-secret",
        log_level="DEBUG",
    )


@pytest.fixture()
def app(settings, engine):
    return create_application(settings=settings, engine=engine)


@pytest.fixture()
def api(app) -> TestClient:
    client = TestClient(app)
    response = client.post("/api/auth/register", json={"username": "treasurer", "password": "secret-pass"})
    assert response.status_code == 201
    return client
