"""
Persistence boundary.

Thin wrappers around the SQLAlchemy session so the engine code never
touches queries directly. Every store shares the caller's session, and
``save()`` is the single commit point: it either commits everything pending
or raises PersistenceError. It does NOT roll back; the owner of the session
(the API layer) decides that, same as with any other controller-owned
transaction.
"""
import logging
from datetime import datetime, timezone
from typing import List, Optional, Set

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.exceptions import PersistenceError
from app.models.book import Book, ReadingSession
from app.models.achievement import UnlockedAchievement

logger = logging.getLogger(__name__)


class _Store:
    def __init__(self, db: Session):
        self.db = db

    def save(self) -> None:
        try:
            self.db.commit()
        except SQLAlchemyError as e:
            logger.error(f"Commit failed: {e}")
            raise PersistenceError(f"Could not save changes: {e}") from e

    def _fetch(self, query, what: str) -> list:
        try:
            return query.all()
        except SQLAlchemyError as e:
            logger.error(f"Fetching {what} failed: {e}")
            raise PersistenceError(f"Could not fetch {what}: {e}") from e


class BookStore(_Store):

    def insert(self, book: Book) -> None:
        self.db.add(book)

    def delete(self, book: Book) -> None:
        self.db.delete(book)

    def get(self, book_id: int) -> Optional[Book]:
        try:
            return self.db.get(Book, book_id)
        except SQLAlchemyError as e:
            raise PersistenceError(f"Could not fetch book {book_id}: {e}") from e

    def fetch_all(self, status: Optional[str] = None) -> List[Book]:
        query = self.db.query(Book)
        if status:
            query = query.filter(Book.status == status)
        return self._fetch(query.order_by(Book.last_interaction.desc()), "books")


class SessionStore(_Store):
    """Append-only reading sessions. No ordering is promised to callers."""

    def insert(self, session: ReadingSession) -> None:
        self.db.add(session)

    def fetch_all(self) -> List[ReadingSession]:
        return self._fetch(self.db.query(ReadingSession), "reading sessions")

    def fetch_since(self, start: datetime) -> List[ReadingSession]:
        # Stored values are naive UTC, compare like with like
        if start.tzinfo is not None:
            start = start.astimezone(timezone.utc).replace(tzinfo=None)
        return self._fetch(
            self.db.query(ReadingSession).filter(ReadingSession.created_at >= start),
            "reading sessions"
        )

    def fetch_for_book(self, book_id: int) -> List[ReadingSession]:
        return self._fetch(
            self.db.query(ReadingSession)
            .filter(ReadingSession.book_id == book_id)
            .order_by(ReadingSession.created_at.desc()),
            "reading sessions"
        )


class AchievementStore(_Store):

    def insert(self, unlocked: UnlockedAchievement) -> None:
        self.db.add(unlocked)

    def fetch_all(self) -> List[UnlockedAchievement]:
        return self._fetch(self.db.query(UnlockedAchievement), "unlocked achievements")

    def fetch_unlocked_ids(self) -> Set[str]:
        return {u.achievement_id for u in self.fetch_all()}
