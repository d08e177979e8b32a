from functools import lru_cache
from typing import Generator, Annotated
from fastapi import Depends, Path
from sqlalchemy.orm import Session

from app.config import settings
from app.core.clock import Clock
from app.database import SessionLocal
from app.models.book import Book
from app.services.achievements import AchievementCatalog
from app.services.books import BookService
from app.services.notifications import LogNotificationSink, NotificationSink

# 1. DATABASE DEPENDENCY
def get_db() -> Generator:
    try:
        db = SessionLocal()
        yield db
    finally:
        db.close()


# 2. ENGINE COLLABORATORS
# Injected per request so tests can swap in a fixed clock or a recording sink.
def get_clock() -> Clock:
    return Clock(settings.timezone)


@lru_cache(maxsize=1)
def get_catalog() -> AchievementCatalog:
    """Loaded once per process, read-only afterwards"""
    return AchievementCatalog.load(settings.achievements_file)


def get_notifier() -> NotificationSink:
    return LogNotificationSink()


SessionDep = Annotated[Session, Depends(get_db)]
ClockDep = Annotated[Clock, Depends(get_clock)]
CatalogDep = Annotated[AchievementCatalog, Depends(get_catalog)]
NotifierDep = Annotated[NotificationSink, Depends(get_notifier)]


# --- BOOK DEPENDENCY ---
def get_book_service(db: SessionDep, clock: ClockDep) -> BookService:
    return BookService(db, clock)


BookServiceDep = Annotated[BookService, Depends(get_book_service)]


async def get_book(
        book_id: Annotated[int, Path(title="The ID of the book")],
        service: BookServiceDep
) -> Book:
    """Raises BookNotFoundError (404) when the id is unknown"""
    return service.get_book(book_id)


BookDep = Annotated[Book, Depends(get_book)]
