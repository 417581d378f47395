# Settings are read at import time, so the environment must be ready first
import os

os.environ.setdefault("SECRET_KEY", "test-secret-key")
os.environ.setdefault("ALGORITHM", "HS256")
os.environ.setdefault("DATABASE_URL", "sqlite:///./test_shareit.db")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from unittest.mock import AsyncMock
from jose import jwt

from shareit.main import app
from shareit.database import Base, get_db
from shareit.config import settings
from shareit.routers import booking_router
from shareit import models

# --- Test Database Setup ---
SQLALCHEMY_DATABASE_URL = "sqlite:///./test_shareit.db"

engine = create_engine(
    SQLALCHEMY_DATABASE_URL, connect_args={"check_same_thread": False}
)
# Objects built by fixtures stay readable after a request commits
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, expire_on_commit=False, bind=engine)


def create_test_token(user_id: int) -> str:
    """Creates a bearer token for the given user id."""
    token = jwt.encode({"sub": str(user_id)}, settings.SECRET_KEY, algorithm=settings.ALGORITHM)
    return f"Bearer {token}"


def auth_headers_for(user_id: int) -> dict:
    return {"Authorization": create_test_token(user_id)}


# --- Database Management Fixtures ---
@pytest.fixture(scope="session", autouse=True)
def setup_db():
    """Creates and drops the test database tables."""
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture(scope="function")
def db_session():
    """Provides a session whose work is rolled back after each test."""
    connection = engine.connect()
    transaction = connection.begin()
    session = TestingSessionLocal(bind=connection)
    yield session
    session.close()
    transaction.rollback()
    connection.close()


# --- Mocking External Services ---
@pytest.fixture(scope="function", autouse=True)
def mock_background_tasks(mocker):
    """
    Keeps the app lifespan away from Kafka and Redis.
    """
    mocker.patch("shareit.main.run_outbox_poller", new_callable=AsyncMock)
    mocker.patch("shareit.main.FastAPILimiter.init", new_callable=AsyncMock)


# --- Data helpers ---
@pytest.fixture
def make_user(db_session):
    def _make_user(name: str, email: str) -> models.User:
        user = models.User(name=name, email=email)
        db_session.add(user)
        db_session.commit()
        db_session.refresh(user)
        return user
    return _make_user


@pytest.fixture
def make_item(db_session):
    def _make_item(owner: models.User, name: str = "Drill", description: str = "Cordless drill",
                   available: bool = True) -> models.Item:
        item = models.Item(name=name, description=description, available=available, owner_id=owner.id)
        db_session.add(item)
        db_session.commit()
        db_session.refresh(item)
        return item
    return _make_item


@pytest.fixture
def make_booking(db_session):
    def _make_booking(item: models.Item, booker: models.User, start, end,
                      status: models.BookingStatus = models.BookingStatus.WAITING) -> models.Booking:
        booking = models.Booking(item_id=item.id, booker_id=booker.id, start=start, end=end, status=status)
        db_session.add(booking)
        db_session.commit()
        db_session.refresh(booking)
        return booking
    return _make_booking


# --- API Test Client Fixture ---
@pytest.fixture(scope="function")
def client(db_session):
    """Provides a TestClient bound to the test session, without rate limiting."""
    def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[booking_router.write_limiter] = lambda: None
    app.dependency_overrides[booking_router.read_limiter] = lambda: None

    with TestClient(app) as c:
        yield c

    app.dependency_overrides.clear()
