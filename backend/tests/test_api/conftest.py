"""
Shared pytest fixtures for API tests.

Each test module gets its own temp-file SQLite database, and get_db is
overridden so route handlers use it.
"""
import os
import tempfile
import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from fastapi.testclient import TestClient

from main import app
from habitpush.core.config import settings
from habitpush.core.database import Base, get_db


def _create_test_database():
    """
    Create a file-backed test database engine and session factory.

    File-based so the TestClient worker thread sees the same data.

    Returns:
        Tuple of (engine, SessionLocal, cleanup_func)
    """
    fd, path = tempfile.mkstemp(suffix=".db")
    os.close(fd)
    engine = create_engine(f"sqlite:///{path}", connect_args={"check_same_thread": False})
    SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

    def cleanup():
        if os.path.exists(path):
            os.remove(path)

    return engine, SessionLocal, cleanup


@pytest.fixture(scope="module")
def test_db():
    """Create tables at the start of the module and drop them at the end."""
    engine, SessionLocal, cleanup = _create_test_database()
    Base.metadata.create_all(bind=engine)

    yield {"engine": engine, "SessionLocal": SessionLocal}

    Base.metadata.drop_all(bind=engine)
    engine.dispose()
    cleanup()


@pytest.fixture(scope="function")
def db_session(test_db):
    """Session on the module database for arranging test data."""
    session = test_db["SessionLocal"]()
    try:
        yield session
    finally:
        session.rollback()
        session.close()


@pytest.fixture(scope="function")
def api_client(test_db):
    """
    API test client bound to the module database.

    The lifespan is not entered, so no scheduler starts and the real
    database is never touched. Rows are wiped after each test.
    """
    SessionLocal = test_db["SessionLocal"]

    def override_get_db():
        db = SessionLocal()
        try:
            yield db
            db.commit()
        except Exception:
            db.rollback()
            raise
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db

    yield TestClient(app)

    app.dependency_overrides.pop(get_db, None)

    db = SessionLocal()
    try:
        for table in reversed(Base.metadata.sorted_tables):
            db.execute(table.delete())
        db.commit()
    finally:
        db.close()


@pytest.fixture
def configured_vapid(monkeypatch, vapid_key_pair):
    """Install a valid VAPID key pair into the application settings."""
    monkeypatch.setattr(settings, "VAPID_PUBLIC_KEY", vapid_key_pair.public_key_b64)
    monkeypatch.setattr(settings, "VAPID_PRIVATE_KEY", vapid_key_pair.private_key_b64)
    return vapid_key_pair


@pytest.fixture
def missing_vapid(monkeypatch):
    """Clear the VAPID keys from the application settings."""
    monkeypatch.setattr(settings, "VAPID_PUBLIC_KEY", None)
    monkeypatch.setattr(settings, "VAPID_PRIVATE_KEY", None)
