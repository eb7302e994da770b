"""
Shared test fixtures.

Sets up an isolated SQLite test database so tests never touch
the real database. Tables are created before and dropped after
every test. The engine commits its own work, so each test
starts from empty tables rather than relying on rollback.
"""

import os

TEST_DATABASE_URL = "sqlite:///./test.db"

# Must be set before the application settings are first read.
os.environ.setdefault("DATABASE_URL", TEST_DATABASE_URL)

from decimal import Decimal

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from bank_ledger.main import app
from bank_ledger.models.base import Base, get_db, engine_options
from bank_ledger.schemas.customer import CustomerCreate
from bank_ledger.services.customer_service import CustomerService
from bank_ledger.services.transaction_engine import TransactionEngine


engine = create_engine(
    TEST_DATABASE_URL,
    **engine_options(TEST_DATABASE_URL, lock_timeout=30),
)

TestSessionLocal = sessionmaker(
    bind=engine,
    autocommit=False,
    autoflush=False,
)


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
def session_factory():
    """
    Hand out the session factory itself.

    Multi-threaded tests need one session per thread; sessions
    are not safe to share.
    """
    return TestSessionLocal


@pytest.fixture
def client(db_session):
    """
    Provide a test client with the test database.

    The get_db dependency is overridden so the FastAPI app uses
    the test session instead of the real database.
    """
    def override_get_db():
        try:
            yield db_session
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    yield TestClient(app)
    app.dependency_overrides.clear()


# --- Factories shared by service and API tests ---

@pytest.fixture
def make_customer(db_session):
    """Return a function that creates and commits a customer."""
    def _make_customer(customer_id="C0001", overdraft_limit=None,
                       full_name="Asha Rao", branch_code="BR001"):
        customer = CustomerService(db_session).create_customer(CustomerCreate(
            customer_id=customer_id,
            branch_code=branch_code,
            full_name=full_name,
            overdraft_limit=(
                Decimal(overdraft_limit)
                if overdraft_limit is not None else None
            ),
        ))
        db_session.commit()
        return customer

    return _make_customer


@pytest.fixture
def make_account(db_session, make_customer):
    """
    Return a function that opens an account, creating its
    customer first when needed.
    """
    def _make_account(customer_id="C0001", opening_balance="0.00",
                      overdraft_limit=None):
        if not CustomerService(db_session).customer_exists(customer_id):
            make_customer(customer_id, overdraft_limit=overdraft_limit)
        return TransactionEngine(db_session).open_account(
            customer_id=customer_id,
            opening_balance=Decimal(opening_balance),
        )

    return _make_account
