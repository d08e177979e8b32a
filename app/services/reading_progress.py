import logging
from typing import Optional

from sqlalchemy.orm import Session

from app.core.clock import Clock
from app.models.book import Book, BookStatus, ReadingSession
from app.services.stores import BookStore, SessionStore

logger = logging.getLogger(__name__)


class ReadingProgressService:
    """
    Turns "the reader is now on page N" into book state plus history.

    Delta rule (Z = X - Y):
      X = page the user entered, Y = page stored on the book.
      Z > 0 records a ReadingSession of Z pages, anything else records nothing.
      The position is always moved to X (backward corrections are honored),
      then clamped to total_pages, which also finishes the book.

    save() failures raise PersistenceError. The in-memory book keeps the new
    values either way; rolling back the session is the caller's job.
    """

    def __init__(self, db: Session, clock: Clock):
        self.db = db
        self.clock = clock
        self.books = BookStore(db)
        self.sessions = SessionStore(db)

    def update_progress(self, book: Book, new_page: int) -> Optional[ReadingSession]:
        """Move ``book`` to ``new_page``. Returns the recorded session, if any."""
        logger.debug(f"Updating progress for '{book.title}': {book.current_page} -> {new_page} ({book.status})")

        delta = new_page - (book.current_page or 0)
        if delta < 0:
            logger.info(f"Backward correction on book {book.id} ({delta} pages), no session recorded")

        return self._apply(book, new_page, delta)

    def finish_book(self, book: Book) -> Optional[ReadingSession]:
        """Jump straight to the last page. The remaining pages count as read now."""
        logger.debug(f"Force finishing '{book.title}' from page {book.current_page}")

        target = book.total_pages
        return self._apply(book, target, target - (book.current_page or 0))

    def _apply(self, book: Book, new_page: int, delta: int) -> Optional[ReadingSession]:
        now = self.clock.now()

        # Negative entries clamp to the first page
        book.current_page = max(new_page, 0)
        book.last_interaction = now

        if book.current_page >= book.total_pages:
            book.current_page = book.total_pages
            if book.status != BookStatus.FINISHED.value:
                logger.info(f"Book {book.id} finished ({book.total_pages} pages)")
            book.status = BookStatus.FINISHED.value
        else:
            if book.status == BookStatus.FINISHED.value:
                logger.info(f"Book {book.id} back to reading (re-read)")
            book.status = BookStatus.READING.value

        session = None
        if delta > 0:
            # Unclamped delta: pages past the end still count as read
            session = ReadingSession(pages_read=delta, created_at=now)
            session.book = book
            self.sessions.insert(session)
            logger.debug(f"Recorded session for book {book.id}: +{delta} pages")

        self.books.save()
        return session
