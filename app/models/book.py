from sqlalchemy import Column, Integer, String, DateTime, ForeignKey
from sqlalchemy.orm import relationship
from datetime import datetime, timezone
import enum
from app.database import Base


class BookStatus(str, enum.Enum):
    SHELF = "shelf"
    READING = "reading"
    FINISHED = "finished"


class Book(Base):
    __tablename__ = "books"
    # AUTOINCREMENT so ids of deleted books are never handed out again
    __table_args__ = {"sqlite_autoincrement": True}

    id = Column(Integer, primary_key=True, index=True)
    title = Column(String, nullable=False, index=True)
    author = Column(String, nullable=True)

    total_pages = Column(Integer, nullable=False)
    current_page = Column(Integer, nullable=False, default=0)

    status = Column(String, nullable=False, default=BookStatus.SHELF.value, index=True)

    created_at = Column(DateTime, default=lambda: datetime.now(timezone.utc), nullable=False)
    last_interaction = Column(DateTime, default=lambda: datetime.now(timezone.utc), nullable=False)

    # Deleting a book deletes its reading history
    sessions = relationship(
        "ReadingSession",
        back_populates="book",
        cascade="all, delete-orphan",
    )

    @property
    def progress_percentage(self) -> float:
        if not self.total_pages:
            return 0.0
        return round((self.current_page or 0) / self.total_pages * 100, 1)

    @property
    def pages_remaining(self) -> int:
        return max(self.total_pages - (self.current_page or 0), 0)

    @property
    def is_finished(self) -> bool:
        return self.status == BookStatus.FINISHED.value

    def __repr__(self):
        return f"<Book id={self.id} title={self.title!r} {self.current_page}/{self.total_pages} {self.status}>"


class ReadingSession(Base):
    """One forward page-delta recorded by a progress update. Never edited."""
    __tablename__ = "reading_sessions"

    id = Column(Integer, primary_key=True, index=True)
    book_id = Column(Integer, ForeignKey("books.id", ondelete="CASCADE"), nullable=False, index=True)

    # Always > 0, zero/negative deltas are never recorded
    pages_read = Column(Integer, nullable=False)

    created_at = Column(DateTime, default=lambda: datetime.now(timezone.utc), nullable=False, index=True)

    book = relationship("Book", back_populates="sessions")
