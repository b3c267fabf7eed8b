# tests/conftest.py

from typing import Dict, Optional

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from visit_scheduler.db.base import Base
from visit_scheduler.schemas.prisoner import Prisoner
from visit_scheduler.services.application_service import ApplicationService


# --- In-memory test database ---
engine = create_engine(
    "sqlite://",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)


# pysqlite needs to be told to leave transaction control to SQLAlchemy for SAVEPOINT to work
@event.listens_for(engine, "connect")
def _disable_pysqlite_transactions(dbapi_connection, connection_record):
    dbapi_connection.isolation_level = None


@event.listens_for(engine, "begin")
def _emit_begin(conn):
    conn.exec_driver_sql("BEGIN")


TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture(scope="function")
def db_session():
    Base.metadata.create_all(bind=engine)
    session = TestingSessionLocal()
    yield session
    session.close()
    Base.metadata.drop_all(bind=engine)


# --- Collaborator doubles ---
class RecordingNotifier:
    def __init__(self):
        self.events = []

    def notify(self, event_type, reference, **details):
        self.events.append((event_type, reference, details))

    def types(self):
        return [event_type for event_type, _, _ in self.events]


class DictPrisonerLookup:
    def __init__(self, prisoners: Optional[Dict[str, Prisoner]] = None):
        self.prisoners = dict(prisoners or {})
        self.calls = 0

    def add(self, prisoner: Prisoner) -> Prisoner:
        self.prisoners[prisoner.prisoner_id] = prisoner
        return prisoner

    def get_prisoner(self, prisoner_id: str) -> Optional[Prisoner]:
        self.calls += 1
        return self.prisoners.get(prisoner_id)


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def prisoner_lookup():
    return DictPrisonerLookup()


@pytest.fixture
def application_service(db_session, notifier):
    return ApplicationService(db_session, notifier)


# --- Test client ---
@pytest.fixture(scope="function")
def client(db_session, notifier, prisoner_lookup):
    """
    A TestClient bound to the test database and collaborator doubles.
    The lifespan (database bootstrap and background sweeps) is not run.
    """
    from visit_scheduler.api import deps
    from visit_scheduler.db.session import get_db
    from visit_scheduler.main import app

    def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[deps.get_notifier] = lambda: notifier
    app.dependency_overrides[deps.get_prisoner_lookup] = lambda: prisoner_lookup

    yield TestClient(app)

    app.dependency_overrides.clear()
