import os
import tempfile

# Keep the app's own engine, logs and lock file away from ./storage
_TMP_DIR = tempfile.mkdtemp(prefix="bookmark-tests-")
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["LOG_DIR"] = os.path.join(_TMP_DIR, "logs")
os.environ["CACHE_DIR"] = os.path.join(_TMP_DIR, "cache")
os.environ["SCHEDULER_ENABLED"] = "false"
os.environ["TIMEZONE"] = "UTC"

import pytest
from datetime import datetime, timedelta, timezone
from typing import Generator
from fastapi.testclient import TestClient
from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool
from unittest.mock import MagicMock

from app.api.deps import get_db, get_clock, get_notifier
from app.core.clock import Clock
from app.database import Base
from app.main import app
from app.models.book import Book, BookStatus, ReadingSession


# --- FIXTURE START ---
@pytest.fixture(scope="session", autouse=True)
def mock_background_services():
    """
    Global patch to prevent the scheduler thread from starting during tests.
    """
    from app.services.scheduler import scheduler_service

    scheduler_service.start = MagicMock()
    scheduler_service.stop = MagicMock()
# --- FIXTURE END ---


# 1. SETUP TEST DATABASE
# SQLite in-memory with StaticPool so the data persists
# for the duration of a single test function but isolates threads.
SQLALCHEMY_DATABASE_URL = "sqlite:///:memory:"

engine = create_engine(
    SQLALCHEMY_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool
)


@event.listens_for(engine, "connect")
def _enable_foreign_keys(dbapi_connection, connection_record):
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


# 2. DB SESSION FIXTURE
@pytest.fixture(scope="function")
def db():
    """
    Creates a fresh database for every single test case.
    """
    Base.metadata.create_all(bind=engine)

    session = TestingSessionLocal()
    yield session

    session.close()
    Base.metadata.drop_all(bind=engine)


# 3. CLOCK & NOTIFICATIONS
class FrozenClock(Clock):
    """Clock whose "now" only moves when a test says so"""

    def __init__(self, current: datetime, tz_name: str = "UTC"):
        super().__init__(tz_name, now_func=lambda: self.current)
        self.current = current

    def advance(self, **kwargs):
        self.current += timedelta(**kwargs)


# Wednesday. ISO week 42 of 2026 runs Mon 12 Oct .. Sun 18 Oct.
NOW = datetime(2026, 10, 14, 12, 0, tzinfo=timezone.utc)


@pytest.fixture(scope="function")
def clock():
    return FrozenClock(NOW)


class RecordingNotifier:
    def __init__(self):
        self.achievements = []
        self.streaks = []

    def notify_achievement_unlocked(self, title, message, achievement_id):
        self.achievements.append(achievement_id)

    def notify_streak(self, current_streak):
        self.streaks.append(current_streak)


@pytest.fixture(scope="function")
def notifier():
    return RecordingNotifier()


# 4. CLIENT FIXTURE
@pytest.fixture(scope="function")
def client(db, clock, notifier) -> Generator:
    """
    Returns a TestClient with the database, clock and notifier overridden.
    """

    def override_get_db():
        try:
            yield db
        finally:
            # The 'db' fixture handles the teardown at the end of the test function.
            pass

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_clock] = lambda: clock
    app.dependency_overrides[get_notifier] = lambda: notifier

    with TestClient(app) as c:
        yield c

    app.dependency_overrides.clear()


# 5. DATA HELPERS
@pytest.fixture(scope="function")
def make_book(db, clock):
    def _make(title="Dune", total_pages=100, current_page=0, status=BookStatus.SHELF.value):
        book = Book(
            title=title,
            author="Frank Herbert",
            total_pages=total_pages,
            current_page=current_page,
            status=status,
            created_at=clock.now(),
            last_interaction=clock.now(),
        )
        db.add(book)
        db.commit()
        db.refresh(book)
        return book

    return _make


@pytest.fixture(scope="function")
def add_session(db):
    def _add(book, pages_read, created_at):
        session = ReadingSession(book_id=book.id, pages_read=pages_read, created_at=created_at)
        db.add(session)
        db.commit()
        return session

    return _add
