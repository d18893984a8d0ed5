# tests/conftest.py

"""
Shared fixtures for the shop service tests.
Tests run against a local SQLite file (DATABASE_URL is set before the app is
imported) and every test starts from freshly created, empty tables.
"""

import logging
import os
import tempfile

os.environ.setdefault("DATABASE_URL", "sqlite:///./test_shop_service.db")
os.environ.setdefault("UPLOAD_DIR", tempfile.mkdtemp(prefix="shop-uploads-"))

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy.orm import Session  # noqa: E402

from shop_service.db import Base, SessionLocal, engine  # noqa: E402
from shop_service.main import app  # noqa: E402
from shop_service.models import Attribute, Category  # noqa: E402

# Suppress noisy logs from SQLAlchemy/FastAPI during tests for cleaner output
logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
logging.getLogger("uvicorn.error").setLevel(logging.WARNING)
logging.getLogger("fastapi").setLevel(logging.WARNING)


@pytest.fixture(scope="function", autouse=True)
def reset_database():
    """Drop and recreate every table so each test sees an empty database."""
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    yield


@pytest.fixture(scope="function")
def db_session_for_test():
    """A plain session for seeding data and inspecting what the API wrote."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture(scope="module")
def client():
    """
    Provides a TestClient for making HTTP requests to the FastAPI application.
    The TestClient runs the app's lifespan (table creation) on entry.
    """
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def attribute_ids(db_session_for_test: Session):
    """Seeds the attributes reference table and returns value -> id."""
    values = ["Green", "Large", "Red", "Small"]
    rows = [Attribute(value=value) for value in values]
    db_session_for_test.add_all(rows)
    db_session_for_test.commit()
    return {row.value: row.id for row in rows}


@pytest.fixture
def category(db_session_for_test: Session):
    row = Category(name="Stationery")
    db_session_for_test.add(row)
    db_session_for_test.commit()
    return row
