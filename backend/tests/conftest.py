"""
Shared test fixtures for FactoryFlow tests

Provides database setup, fake collaborator clients and the API test client
"""
import os

# Settings are read at import time; keep the app off PostgreSQL
os.environ.setdefault("DATABASE_URL", "sqlite://")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app.main import app
from app.db.base import Base
from app.api.v1.deps import (
    get_db,
    get_masterdata_client,
    get_operation_tracker,
    get_scheduling_client,
    get_stock_client,
)
from app.core.limiter import limiter
from app.services.async_operations import OperationTracker
from app.services.system_config_service import SystemConfigService

from tests.factories import reset_sequences
from tests.fakes import FakeMasterdataClient, FakeSchedulingClient, FakeStockClient

# Disable rate limiting for tests
limiter.enabled = False


# Create in-memory SQLite database for testing
SQLALCHEMY_DATABASE_URL = "sqlite:///:memory:"
engine = create_engine(
    SQLALCHEMY_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def create_tables(engine):
    """Create all tables for testing using SQLAlchemy metadata"""
    import app.models  # noqa: F401
    Base.metadata.create_all(bind=engine)


def drop_tables(engine):
    """Drop all tables after testing"""
    Base.metadata.drop_all(bind=engine)


@pytest.fixture(autouse=True)
def _reset_state():
    reset_sequences()
    SystemConfigService.refresh_cache()
    yield
    SystemConfigService.refresh_cache()


@pytest.fixture
def db_session():
    """Create a fresh database session for each test"""
    create_tables(engine)

    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()
        drop_tables(engine)


@pytest.fixture
def file_session_factory(tmp_path):
    """
    Session factory over a file-backed SQLite database.

    Needed wherever several threads must see each other's commits (the
    operation tracker, concurrent completions); the in-memory engine shares
    one connection between all sessions.
    """
    file_engine = create_engine(
        f"sqlite:///{tmp_path / 'factoryflow.db'}",
        connect_args={"check_same_thread": False, "timeout": 30},
    )
    create_tables(file_engine)
    factory = sessionmaker(autocommit=False, autoflush=False, bind=file_engine)
    yield factory
    file_engine.dispose()


@pytest.fixture
def stock():
    return FakeStockClient()


@pytest.fixture
def masterdata():
    return FakeMasterdataClient.learning_factory()


@pytest.fixture
def scheduling():
    return FakeSchedulingClient()


@pytest.fixture
def client(db_session, stock, masterdata, scheduling):
    """Create a test client with database and collaborator overrides"""
    def override_get_db():
        try:
            yield db_session
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_stock_client] = lambda: stock
    app.dependency_overrides[get_masterdata_client] = lambda: masterdata
    app.dependency_overrides[get_scheduling_client] = lambda: scheduling
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def async_client(file_session_factory, stock, masterdata, scheduling):
    """
    Test client whose requests and background operations share a file database.

    Yields (client, tracker, session_factory).
    """
    tracker = OperationTracker(file_session_factory, max_workers=2)

    def override_get_db():
        db = file_session_factory()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_stock_client] = lambda: stock
    app.dependency_overrides[get_masterdata_client] = lambda: masterdata
    app.dependency_overrides[get_scheduling_client] = lambda: scheduling
    app.dependency_overrides[get_operation_tracker] = lambda: tracker
    with TestClient(app) as test_client:
        yield test_client, tracker, file_session_factory
    app.dependency_overrides.clear()
    tracker.shutdown(wait=True)
