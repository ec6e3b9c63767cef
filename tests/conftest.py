"""
pytest Fixtures for Book Network API Tests

Shared fixtures used across all test files.

FIXTURE SCOPES:
- function (default): New instance per test function
- session: Single instance for entire test session

The lending ledger commits and rolls back on its own, so tests cannot be
wrapped in an outer transaction. Each test gets a brand new in-memory
SQLite database instead.
"""

# =============================================================================
# TEST ENVIRONMENT SETUP
# =============================================================================
# IMPORTANT: Set environment variables BEFORE importing the app
import os
import tempfile

os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["SECRET_KEY"] = "test-secret-key-for-unit-tests-at-least-32-characters-long"
os.environ["DATABASE_URL"] = "sqlite:///:memory:"
os.environ["LOCK_BACKEND"] = "memory"
os.environ["MAIL_ENABLED"] = "false"
os.environ["UPLOAD_DIR"] = os.path.join(tempfile.gettempdir(), "booknet-test-uploads")

from collections.abc import Generator

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from booknet.database import Base, get_db
from booknet.dependencies import get_storage
from booknet.main import app
from booknet.models import Book, User
from booknet.services.locks import MemoryKeyedLock
from booknet.services.security import hash_password, issue_access_token
from booknet.services.storage import CoverStorage

TEST_PASSWORD = "SecurePass123"


# =============================================================================
# DATABASE FIXTURES
# =============================================================================
@pytest.fixture
def engine():
    """
    A fresh SQLite in-memory database for one test.

    StaticPool keeps the single connection alive; without it the
    in-memory database would disappear between connections.
    """
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)

    yield engine

    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def db_session(engine) -> Generator[Session, None, None]:
    """Database session bound to the test engine."""
    TestSessionLocal = sessionmaker(
        autocommit=False,
        autoflush=False,
        bind=engine,
    )
    session = TestSessionLocal()

    yield session

    session.close()


@pytest.fixture
def locks() -> MemoryKeyedLock:
    """Private lock manager, so tests never share lock state."""
    return MemoryKeyedLock()


@pytest.fixture
def client(db_session: Session, tmp_path) -> Generator[TestClient, None, None]:
    """
    Test client using the test database and a temporary upload folder.

    get_db and get_storage are overridden through FastAPI's dependency
    injection.
    """

    def override_get_db():
        yield db_session

    def override_get_storage():
        return CoverStorage(tmp_path / "uploads", max_size_bytes=1024 * 1024)

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_storage] = override_get_storage

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()


# =============================================================================
# SAMPLE DATA FIXTURES
# =============================================================================
def make_user(db: Session, username: str) -> User:
    user = User(
        email=f"{username}@example.com",
        username=username,
        hashed_password=hash_password(TEST_PASSWORD),
        full_name=username.capitalize(),
        is_active=True,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


def make_book(
    db: Session,
    owner: User,
    isbn: str,
    title: str = "Dune",
    shareable: bool = True,
    archived: bool = False,
) -> Book:
    book = Book(
        owner_id=owner.id,
        title=title,
        author_name="Frank Herbert",
        isbn=isbn,
        shareable=shareable,
        archived=archived,
    )
    db.add(book)
    db.commit()
    db.refresh(book)
    return book


@pytest.fixture
def alice(db_session: Session) -> User:
    """Owner of the sample book."""
    return make_user(db_session, "alice")


@pytest.fixture
def bob(db_session: Session) -> User:
    return make_user(db_session, "bob")


@pytest.fixture
def carol(db_session: Session) -> User:
    return make_user(db_session, "carol")


@pytest.fixture
def book(db_session: Session, alice: User) -> Book:
    """A shareable, non-archived book owned by alice."""
    return make_book(db_session, alice, isbn="9780441172719")


def auth_headers_for(user: User) -> dict[str, str]:
    token = issue_access_token(user.id)
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def alice_headers(alice: User) -> dict[str, str]:
    return auth_headers_for(alice)


@pytest.fixture
def bob_headers(bob: User) -> dict[str, str]:
    return auth_headers_for(bob)


@pytest.fixture
def carol_headers(carol: User) -> dict[str, str]:
    return auth_headers_for(carol)
