"""
conftest.py — Shared Test Fixtures for the RFQ Tracker

Provides an in-memory SQLite database, FastAPI TestClient with auth
overrides, and factory fixtures for users and RFQs.

Business Rules:
- All tests run against an isolated in-memory DB
- Auth is overridden so most tests don't need bearer tokens
- Each test function gets a fresh schema (create_all / drop_all)

Called by: all test files via pytest autodiscovery
Depends on: rfq_tracker.models (Base), rfq_tracker.database (get_db),
            rfq_tracker.dependencies (require_user)
"""

import os
os.environ["ENVIRONMENT"] = "test"  # Must be set before importing rfq_tracker modules

from datetime import datetime, timezone

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine, event
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from rfq_tracker.models import Base, Rfq, User
from rfq_tracker.schemas.rfqs import RfqCreate
from rfq_tracker.services import rfq_service

# ── In-memory SQLite engine ──────────────────────────────────────────

TEST_DB_URL = "sqlite://"

engine = create_engine(
    TEST_DB_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestSessionLocal = sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)


@event.listens_for(engine, "connect")
def _enable_fk(dbapi_conn, _):
    """SQLite ignores FKs by default — turn them on."""
    dbapi_conn.execute("PRAGMA foreign_keys=ON")


# ── Fixtures ─────────────────────────────────────────────────────────


@pytest.fixture(autouse=True)
def db_session():
    """Create all tables, yield a session, then tear down."""
    Base.metadata.create_all(bind=engine)
    session = TestSessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


def _make_user(db: Session, email: str, name: str, role: str = "sales", **kw) -> User:
    user = User(
        email=email,
        name=name,
        role=role,
        created_at=datetime.now(timezone.utc),
        **kw,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


@pytest.fixture()
def sales_user(db_session: Session) -> User:
    """The salesperson who owns the RFQs in most tests."""
    return _make_user(db_session, "priya@pcbtracker.com", "Priya Sharma")


@pytest.fixture()
def other_user(db_session: Session) -> User:
    """A second salesperson who owns nothing by default."""
    return _make_user(db_session, "arjun@pcbtracker.com", "Arjun Mehta")


@pytest.fixture()
def inactive_user(db_session: Session) -> User:
    return _make_user(db_session, "former@pcbtracker.com", "Former Rep", is_active=False)


@pytest.fixture()
def make_rfq(db_session: Session, sales_user: User):
    """Factory: create an RFQ through the service so it gets an id and activity."""

    def _make(owner: User | None = None, **overrides) -> Rfq:
        fields = {
            "customer_name": "Acme Circuits",
            "customer_email": "buyer@acme-circuits.com",
            "part_number": "PCB-4L-100",
            "pcb_specs": "4 layer, FR4, 1.6mm",
            "quantity": 1000,
        }
        fields.update(overrides)
        return rfq_service.create_rfq(db_session, owner or sales_user, RfqCreate(**fields))

    return _make


@pytest.fixture()
def test_rfq(make_rfq) -> Rfq:
    """A fresh RFQ owned by sales_user with default margin and confidence."""
    return make_rfq()


@pytest.fixture()
def quoted_rfq(db_session: Session, make_rfq, sales_user: User) -> Rfq:
    """RFQ with a 2.45 supplier quote at 5.5% margin for 5000 units."""
    rfq = make_rfq(
        customer_name="ElectroWorks Ltd",
        customer_email="buyer@electroworks.com",
        part_number="PCB-2L-045",
        quantity=5000,
        margin=5.5,
    )
    return rfq_service.record_supplier_quote(db_session, rfq, sales_user, 2.45)


@pytest.fixture()
def client(db_session: Session, sales_user: User) -> TestClient:
    """FastAPI TestClient with auth overridden to return sales_user.

    Overrides get_db to use the test session and require_user to skip
    bearer token verification.
    """
    from rfq_tracker.database import get_db
    from rfq_tracker.dependencies import require_user
    from rfq_tracker.main import app

    def _override_db():
        yield db_session

    def _override_user():
        return sales_user

    app.dependency_overrides[get_db] = _override_db
    app.dependency_overrides[require_user] = _override_user

    with TestClient(app) as c:
        yield c

    app.dependency_overrides.clear()


@pytest.fixture()
def login_as(client: TestClient):
    """Switch the authenticated user of ``client`` for the rest of the test."""
    from rfq_tracker.dependencies import require_user
    from rfq_tracker.main import app

    def _login(user: User) -> TestClient:
        app.dependency_overrides[require_user] = lambda: user
        return client

    return _login


@pytest.fixture()
def anon_client(db_session: Session) -> TestClient:
    """TestClient with only the DB overridden; real bearer auth applies."""
    from rfq_tracker.database import get_db
    from rfq_tracker.main import app

    def _override_db():
        yield db_session

    app.dependency_overrides[get_db] = _override_db

    with TestClient(app) as c:
        yield c

    app.dependency_overrides.clear()
