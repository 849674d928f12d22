"""
Shared test fixtures.

Sets up an isolated test database so tests never touch
the real database. Tables are created before and dropped
after every test.
"""

import os

# Must be set before ledger_engine is imported: the application
# engine is created at import time from this URL.
os.environ.setdefault("DATABASE_URL", "sqlite:///./test_app.db")

from datetime import datetime

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker

from ledger_engine.api.dependencies import get_clock
from ledger_engine.clock import FixedClock
from ledger_engine.main import app
from ledger_engine.models.base import Base, get_db
from ledger_engine.services.account_registry import AccountRegistry
from ledger_engine.services.ledger_store import LedgerStore
from ledger_engine.services.reporting import LedgerReporting


# SQLite keeps CI free of database infrastructure.
TEST_DATABASE_URL = "sqlite:///./test.db"

engine = create_engine(
    TEST_DATABASE_URL,
    connect_args={"check_same_thread": False},
)


# pysqlite's own transaction handling breaks SAVEPOINT. Turn it
# off and emit BEGIN ourselves so begin_nested() works.
@event.listens_for(engine, "connect")
def _disable_pysqlite_transactions(dbapi_connection, connection_record):
    dbapi_connection.isolation_level = None


@event.listens_for(engine, "begin")
def _emit_begin(conn):
    conn.exec_driver_sql("BEGIN")


TestSessionLocal = sessionmaker(
    bind=engine,
    autocommit=False,
    autoflush=False,
)

NOW = datetime(2024, 3, 15, 10, 30, 0)
ACTOR = "alice@example.com"


class RecordingAuditSink:
    """Keeps every audit notification in memory."""

    def __init__(self):
        self.events = []

    def log_activity(self, entity, action, before=None, after=None):
        self.events.append((type(entity).__name__, entity.id, action, before, after))

    @property
    def actions(self):
        return [recorded[2].value for recorded in self.events]


@pytest.fixture(autouse=True)
def setup_database():
    """Create all tables before each test, drop them after."""
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def db_session():
    """Provide a database session for direct service testing."""
    session = TestSessionLocal()
    try:
        yield session
    finally:
        session.rollback()
        session.close()


@pytest.fixture
def clock():
    return FixedClock(NOW)


@pytest.fixture
def audit_sink():
    return RecordingAuditSink()


@pytest.fixture
def registry(db_session):
    return AccountRegistry(db_session)


@pytest.fixture
def store(db_session, registry, audit_sink, clock):
    return LedgerStore(
        db_session, ACTOR,
        registry=registry, audit_sink=audit_sink, clock=clock,
    )


@pytest.fixture
def reporting(db_session, registry, clock):
    return LedgerReporting(db_session, registry=registry, clock=clock)


@pytest.fixture
def client(db_session, clock):
    """
    Provide a test client bound to the test session.

    get_db and get_clock are overridden; every request carries
    an X-Actor header unless the test removes it.
    """
    def override_get_db():
        try:
            yield db_session
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_clock] = lambda: clock
    yield TestClient(app, headers={"X-Actor": ACTOR})
    app.dependency_overrides.clear()
