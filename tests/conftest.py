"""
Pytest configuration and fixtures for Postboard API tests.
"""
import io
import os
import tempfile

# Keep the app's own engine and media root away from the working tree.
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("MEDIA_ROOT", tempfile.mkdtemp(prefix="postboard-test-"))

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from postboard.database import Base, enable_sqlite_foreign_keys, get_db
from postboard.limiter import limiter
from postboard.main import app
from postboard.models.user import User
from postboard.auth import get_password_hash, get_token_service
from postboard.storage import MediaStore, get_post_store, get_profile_store

# Disable rate limiting for tests
limiter.enabled = False

# Use in-memory SQLite for tests with shared connection
SQLALCHEMY_DATABASE_URL = "sqlite:///:memory:"

engine = create_engine(
    SQLALCHEMY_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
enable_sqlite_foreign_keys(engine)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

TEST_PASSWORD = "Secret1!"

# Global session for sharing across requests
_test_session = None


def get_test_db():
    """Get the shared test database session."""
    global _test_session
    try:
        yield _test_session
    finally:
        pass


@pytest.fixture(scope="function")
def db():
    """Create a fresh database for each test."""
    global _test_session

    Base.metadata.create_all(bind=engine)
    _test_session = TestingSessionLocal()
    app.dependency_overrides[get_db] = get_test_db

    yield _test_session

    app.dependency_overrides.pop(get_db, None)
    _test_session.close()
    _test_session = None
    Base.metadata.drop_all(bind=engine)


@pytest.fixture(scope="function")
def profile_store(tmp_path):
    return MediaStore(tmp_path / "usersProfiles")


@pytest.fixture(scope="function")
def post_store(tmp_path):
    return MediaStore(tmp_path / "userPost")


@pytest.fixture(scope="function")
def client(db, profile_store, post_store):
    """Create a test client writing media under tmp_path."""
    app.dependency_overrides[get_profile_store] = lambda: profile_store
    app.dependency_overrides[get_post_store] = lambda: post_store
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


def make_user(db, email="test@example.com", firstname="Tester", lastname="User", password=TEST_PASSWORD):
    user = User(
        profile="1700000000_avatar.png",
        email=email,
        firstname=firstname,
        lastname=lastname,
        ph="5551234567",
        password=get_password_hash(password),
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


@pytest.fixture(scope="function")
def test_user(db):
    """Create a test user."""
    return make_user(db)


@pytest.fixture(scope="function")
def other_user(db):
    return make_user(db, email="other@example.com", firstname="Other")


@pytest.fixture(scope="function")
def auth_headers(test_user):
    """Get auth headers for the test user."""
    return {"Authorization": f"Bearer {get_token_service().issue(test_user)}"}


@pytest.fixture(scope="function")
def other_headers(other_user):
    return {"Authorization": f"Bearer {get_token_service().issue(other_user)}"}


def image_file(name="photo.png", size=16):
    """A (filename, fileobj, content type) tuple for multipart uploads."""
    return (name, io.BytesIO(b"\x89PNG" + b"0" * size), "image/png")
