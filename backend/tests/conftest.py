"""Pytest fixtures: file-backed SQLite database, fresh per test."""
import uuid
from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from fastapi.testclient import TestClient

from approval_tracker.database import Base, get_db, configure_sqlite
from approval_tracker.main import app
from approval_tracker.services import request_store, transactions
from approval_tracker.services.authorization import Principal
from approval_tracker.services.queue_maintainer import sort_key

# Import all models so they register with Base.metadata
from approval_tracker.models.request import ApprovalRequest, RequestStatus  # noqa: F401
from approval_tracker.models.action import ApprovalAction                    # noqa: F401
from approval_tracker.models.profile import Profile, Role                   # noqa: F401
from approval_tracker.models.change_event import ChangeEvent                 # noqa: F401

SQLITE_URL = "sqlite:///./test.db"


@pytest.fixture(scope="function")
def db_engine():
    """Create a fresh SQLite engine for each test."""
    engine = configure_sqlite(create_engine(SQLITE_URL, connect_args={"check_same_thread": False}))
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture(scope="function")
def session_factory(db_engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=db_engine)


@pytest.fixture(scope="function")
def db(session_factory):
    """Yield a database session, closed after the test."""
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture(scope="function")
def client(session_factory):
    """FastAPI TestClient with the database dependency overridden to use SQLite."""

    def _override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = _override_get_db
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


class FakeClock:
    """Deterministic clock: each call returns a time one second after the previous one."""

    def __init__(self, start: datetime, step: timedelta = timedelta(seconds=1)):
        self.current = start
        self.step = step

    def __call__(self) -> datetime:
        value = self.current
        self.current += self.step
        return value


@pytest.fixture
def clock(monkeypatch):
    fake = FakeClock(datetime(2026, 1, 5, 9, 0, tzinfo=timezone.utc))
    monkeypatch.setattr(request_store, "_utcnow", fake)
    return fake


@pytest.fixture
def no_backoff(monkeypatch):
    monkeypatch.setattr(transactions, "RETRY_BACKOFF_SECONDS", 0)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------
def make_principal(session, role: Role = Role.employee, name: str = "Test User",
                   department: str = "Engineering") -> Principal:
    """Insert a profile directly and return its principal."""
    profile = Profile(id=uuid.uuid4(), name=name, department=department, role=role)
    session.add(profile)
    session.commit()
    return Principal.from_role(profile.id, role)


def assert_queue_invariants(session) -> list:
    """Pending positions are 1..n in (created_at, submission_seq) order; non-pending rows have none."""
    session.rollback()  # end any open snapshot so committed work from other sessions is visible
    rows = session.query(ApprovalRequest).all()
    pending = sorted(
        (r for r in rows if r.status == RequestStatus.pending),
        key=lambda r: sort_key(r.created_at, r.submission_seq),
    )
    assert [r.queue_position for r in pending] == list(range(1, len(pending) + 1))
    for r in rows:
        if r.status != RequestStatus.pending:
            assert r.queue_position is None
    return pending


def create_test_profile(client: TestClient, name: str = "Test User", department: str = "Engineering") -> dict:
    """Helper: POST /api/profiles and return response JSON."""
    resp = client.post("/api/profiles/", json={"name": name, "department": department})
    assert resp.status_code == 201, resp.text
    return resp.json()


def grant_role(session_factory, user_id: str, role: Role) -> None:
    """Set a role directly in the store (bootstraps the first admin/approver)."""
    session = session_factory()
    try:
        profile = session.get(Profile, uuid.UUID(user_id))
        profile.role = role
        session.commit()
    finally:
        session.close()


def auth(user: dict) -> dict:
    return {"X-User-Id": user["id"]}
