"""
Pytest configuration and shared fixtures.
"""

import pytest
import sys
import os

# Add project root to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from sqlalchemy.orm import sessionmaker

from finengine.main import app
from finengine.db.database import build_engine, get_db, init_db
from finengine.db.models import Base, ForecastSnapshot  # noqa: F401  (registers tables)
from finengine.calculations.forecast import MonthlyCashFlow


# Create a shared test database engine
SQLALCHEMY_DATABASE_URL = "sqlite:///:memory:"
test_engine = build_engine(SQLALCHEMY_DATABASE_URL)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=test_engine)


def override_get_db():
    """Override database dependency for testing."""
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()


# Override the dependency globally for all tests
app.dependency_overrides[get_db] = override_get_db


@pytest.fixture(autouse=True)
def setup_database():
    """Create tables before each test and drop after."""
    init_db(bind=test_engine)
    yield
    Base.metadata.drop_all(bind=test_engine)


@pytest.fixture
def db_session():
    """Create database session for test setup."""
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture
def two_years_of_months():
    """24 months of steady revenue and expenses, Jan 2024 - Dec 2025."""
    return [
        MonthlyCashFlow(
            month=f"{2024 + i // 12}-{i % 12 + 1:02d}", revenue=2000.0, expenses=1200.0
        )
        for i in range(24)
    ]
