"""
pytest Fixtures for Book Catalogue API Tests

This file contains shared fixtures used across all test files.

FIXTURE SCOPES USED:
- function: a fresh in-memory database, session and client per test
- the image and staging directories are temporary directories emptied
  after each test

Each test gets its own SQLite engine, so a rollback issued by the code
under test (duplicate rating, failed commit) can never discard fixture
data created for another step of the same test.
"""

# =============================================================================
# TEST ENVIRONMENT SETUP
# =============================================================================
# IMPORTANT: Set environment variables BEFORE importing the app
import os
import tempfile

TEST_IMAGES_DIR = tempfile.mkdtemp(prefix="catalogue-images-")
TEST_STAGING_DIR = tempfile.mkdtemp(prefix="catalogue-staging-")

os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["SECRET_KEY"] = "test-secret-key-for-unit-tests-at-least-32-characters-long"
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["IMAGES_DIR"] = TEST_IMAGES_DIR
os.environ["UPLOAD_STAGING_DIR"] = TEST_STAGING_DIR

import io
import shutil
from collections.abc import Callable, Generator
from pathlib import Path

import pytest
from fastapi.testclient import TestClient
from PIL import Image
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from app.database import Base, get_db
from app.main import app
from app.models import Book, User
from app.services.security import create_access_token, hash_password

# =============================================================================
# DATABASE FIXTURES
# =============================================================================


@pytest.fixture
def engine():
    """
    SQLite in-memory engine with all tables created.

    StaticPool keeps the single connection alive; without it the in-memory
    database would disappear between connections.
    """
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)

    yield engine

    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def db_session(engine) -> Generator[Session, None, None]:
    """Database session shared by fixtures and the request handlers."""
    TestSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    session = TestSessionLocal()

    yield session

    session.close()


@pytest.fixture
def client(db_session: Session) -> Generator[TestClient, None, None]:
    """
    Test client using the test database.

    We override the get_db dependency to use our test session.
    """

    def override_get_db():
        try:
            yield db_session
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()


# =============================================================================
# IMAGE FIXTURES
# =============================================================================


def empty_directory(path: Path) -> None:
    for entry in path.iterdir():
        if entry.is_dir():
            shutil.rmtree(entry)
        else:
            entry.unlink()


@pytest.fixture(autouse=True)
def images_dir() -> Generator[Path, None, None]:
    """The configured (served) image directory, emptied after the test."""
    path = Path(TEST_IMAGES_DIR)
    path.mkdir(parents=True, exist_ok=True)

    yield path

    empty_directory(path)


@pytest.fixture(autouse=True)
def staging_dir() -> Generator[Path, None, None]:
    """The configured upload staging directory, emptied after the test."""
    path = Path(TEST_STAGING_DIR)
    path.mkdir(parents=True, exist_ok=True)

    yield path

    empty_directory(path)


@pytest.fixture
def make_image() -> Callable[..., bytes]:
    """Factory returning encoded image bytes of a given size and format."""

    def _make(
        width: int = 64,
        height: int = 48,
        fmt: str = "JPEG",
        mode: str = "RGB",
        **save_kwargs,
    ) -> bytes:
        image = Image.new(mode, (width, height), color="steelblue" if mode == "RGB" else None)
        buffer = io.BytesIO()
        image.save(buffer, fmt, **save_kwargs)
        return buffer.getvalue()

    return _make


def stored_files(path: Path) -> list[str]:
    return sorted(entry.name for entry in path.iterdir())


# =============================================================================
# USER FIXTURES
# =============================================================================


@pytest.fixture
def sample_user(db_session: Session) -> User:
    """Create a sample user for testing."""
    user = User(
        email="testuser@example.com",
        hashed_password=hash_password("SecurePass123"),
    )
    db_session.add(user)
    db_session.commit()
    db_session.refresh(user)
    return user


@pytest.fixture
def second_user(db_session: Session) -> User:
    """Create a second user for testing ownership scenarios."""
    user = User(
        email="seconduser@example.com",
        hashed_password=hash_password("SecurePass456"),
    )
    db_session.add(user)
    db_session.commit()
    db_session.refresh(user)
    return user


def get_auth_header(user: User) -> dict:
    """Create authorization header for a user."""
    token = create_access_token({"sub": str(user.id)})
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def auth_headers(sample_user: User) -> dict:
    return get_auth_header(sample_user)


@pytest.fixture
def second_auth_headers(second_user: User) -> dict:
    return get_auth_header(second_user)


# =============================================================================
# BOOK FIXTURES
# =============================================================================


@pytest.fixture
def sample_book(
    db_session: Session,
    sample_user: User,
    images_dir: Path,
    make_image,
) -> Book:
    """A book owned by sample_user, with its cover file on disk."""
    cover = images_dir / "dune-1700000000000000000.webp"
    cover.write_bytes(make_image(fmt="WEBP"))

    book = Book(
        owner_id=sample_user.id,
        title="Dune",
        author="Frank Herbert",
        genre="Science Fiction",
        year=1965,
        image_url=f"http://testserver/images/{cover.name}",
    )
    db_session.add(book)
    db_session.commit()
    db_session.refresh(book)
    return book
