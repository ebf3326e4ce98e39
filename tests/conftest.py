"""Pytest configuration and fixtures."""

import os
import shutil
import tempfile
from pathlib import Path

import pytest

# Use test database - PostgreSQL in Docker, SQLite locally
if os.getenv("DATABASE_URL"):
    # Running in Docker - use PostgreSQL test database
    SQLALCHEMY_DATABASE_URL = os.getenv("DATABASE_URL").replace("/filehost", "/filehost_test")
else:
    # Running locally - use SQLite
    SQLALCHEMY_DATABASE_URL = "sqlite:///./test.db"

# Must be set before the app modules read settings
UPLOAD_DIR = Path(tempfile.mkdtemp(prefix="filehost-test-uploads-"))
os.environ["DATABASE_URL"] = SQLALCHEMY_DATABASE_URL
os.environ["UPLOAD_DIR"] = str(UPLOAD_DIR)
os.environ["JWT_SECRET"] = "test-secret"  # noqa: S105

from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402

from filehost.config import get_settings  # noqa: E402
from filehost.database import Base, build_engine, get_db  # noqa: E402
from filehost.main import app  # noqa: E402
from filehost.services.storage import FileStorage  # noqa: E402

engine = build_engine(SQLALCHEMY_DATABASE_URL)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


class AuthHeaders(dict):
    """Dict subclass that also stores user info."""

    def __init__(self, *args, user_id: int | None = None, email: str = "", **kwargs):
        super().__init__(*args, **kwargs)
        self.user_id = user_id
        self.email = email


@pytest.fixture(scope="session", autouse=True)
def setup_test_database():
    """Create test database schema once at the start of the test session."""
    if "postgresql" in SQLALCHEMY_DATABASE_URL:
        # For PostgreSQL, create the test database
        from sqlalchemy_utils import create_database, database_exists

        # Create test database if it doesn't exist
        if not database_exists(SQLALCHEMY_DATABASE_URL):
            create_database(SQLALCHEMY_DATABASE_URL)

    from filehost import models  # noqa: F401

    Base.metadata.create_all(bind=engine)
    yield
    shutil.rmtree(UPLOAD_DIR, ignore_errors=True)


@pytest.fixture(scope="function", autouse=True)
def db():
    """Create a fresh database session for each test with cleanup."""
    session = TestingSessionLocal()

    yield session

    # Clean up all data after test
    session.rollback()
    for table in reversed(Base.metadata.sorted_tables):
        session.execute(table.delete())
    session.commit()
    session.close()

    # And every uploaded file
    if UPLOAD_DIR.exists():
        for entry in UPLOAD_DIR.iterdir():
            if entry.is_file():
                entry.unlink()


@pytest.fixture
def upload_dir() -> Path:
    """The directory the app writes uploads to."""
    return Path(get_settings().upload_dir)


@pytest.fixture
def storage(upload_dir) -> FileStorage:
    return FileStorage(upload_dir)


@pytest.fixture(scope="function")
def client(db):
    """Create a test client with database override."""

    def override_get_db():
        try:
            yield db
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


def register_and_login(client, username: str, email: str, password: str = "testpass123"):
    """Register a user through the API and return bearer headers for it."""
    response = client.post(
        "/api/v1/auth/register",
        json={"username": username, "email": email, "password": password},
    )
    assert response.status_code == 201
    user_id = response.json()["id"]

    response = client.post("/api/v1/auth/login", json={"email": email, "password": password})
    assert response.status_code == 200
    token = response.json()["token"]

    return AuthHeaders({"Authorization": f"Bearer {token}"}, user_id=user_id, email=email)


@pytest.fixture
def auth_headers(client):
    """Create a user and return auth headers with user info."""
    return register_and_login(client, "testuser", "test@example.com")


@pytest.fixture
def other_auth_headers(client):
    """A second, unrelated user."""
    return register_and_login(client, "otheruser", "other@example.com")
