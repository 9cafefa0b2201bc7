"""
Shared test fixtures.

Sets up an isolated test database so tests never touch
the real database. Tables are created before and dropped
after every test, so no test data persists.
"""

import os

# Settings are read at import time; point them at SQLite before
# anything from recycle_erp is imported.
os.environ.setdefault("DATABASE_URL", "sqlite:///./test.db")
os.environ.setdefault("LOG_FORMAT", "text")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from recycle_erp.main import app
from recycle_erp.models import Base
from recycle_erp.models.base import get_db
from recycle_erp.logging_config import reset_logging
from recycle_erp.services.ledger_service import LedgerService


# Use SQLite for tests, no external database needed.
TEST_DATABASE_URL = "sqlite:///./test.db"

engine = create_engine(
    TEST_DATABASE_URL,
    connect_args={"check_same_thread": False},
)

TestSessionLocal = sessionmaker(
    bind=engine,
    autocommit=False,
    autoflush=False,
)


@pytest.fixture(autouse=True)
def setup_database():
    """
    Create all tables before each test, drop them after.

    autouse=True means every test gets this automatically.
    This ensures each test starts with a clean database.
    """
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
def accounts(db_session):
    """Seed the default chart of accounts; returns accounts keyed by code."""
    seeded = LedgerService(db_session).seed_chart_of_accounts()
    db_session.commit()
    return {a.code: a for a in seeded}


@pytest.fixture
def log_records(caplog):
    """
    Capture recycle_erp log records.

    The app installs its own handler and stops propagation; drop it
    so records reach caplog.
    """
    reset_logging()
    caplog.set_level("DEBUG", logger="recycle_erp")
    return caplog


@pytest.fixture
def client(db_session):
    """
    Provide a test client with the test database.

    We override the get_db dependency so the FastAPI app
    uses our test session instead of the real database.
    """
    def override_get_db():
        try:
            yield db_session
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    yield TestClient(app)
    app.dependency_overrides.clear()
