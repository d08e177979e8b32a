import logging
from typing import List, Optional

from sqlalchemy.orm import Session

from app.core.clock import Clock
from app.core.exceptions import BookNotFoundError
from app.models.book import Book, BookStatus
from app.schemas.book import BookCreate, BookUpdate
from app.services.stores import BookStore

logger = logging.getLogger(__name__)


class BookService:
    """Library management: add, edit, shelve, delete."""

    def __init__(self, db: Session, clock: Clock):
        self.clock = clock
        self.store = BookStore(db)

    def get_book(self, book_id: int) -> Book:
        book = self.store.get(book_id)
        if not book:
            raise BookNotFoundError(book_id)
        return book

    def list_books(self, status: Optional[str] = None) -> List[Book]:
        return self.store.fetch_all(status)

    def add_book(self, data: BookCreate) -> Book:
        now = self.clock.now()
        book = Book(
            title=data.title.strip(),
            author=(data.author or "").strip() or "Unknown",
            total_pages=data.total_pages,
            current_page=0,
            status=BookStatus.SHELF.value,
            created_at=now,
            last_interaction=now,
        )
        self.store.insert(book)
        self.store.save()
        logger.info(f"Book added: {book.title} ({book.total_pages} pages)")
        return book

    def update_book(self, book: Book, data: BookUpdate) -> Book:
        """Edit metadata or move between shelf and reading"""
        changes = data.model_dump(exclude_unset=True)

        if "title" in changes:
            book.title = changes["title"].strip()
        if "author" in changes:
            book.author = (changes["author"] or "").strip() or "Unknown"
        if "total_pages" in changes:
            book.total_pages = changes["total_pages"]

        if "status" in changes:
            book.status = changes["status"]

        # Keep "finished <=> last page" true after edits
        if book.current_page >= book.total_pages:
            book.current_page = book.total_pages
            book.status = BookStatus.FINISHED.value
        elif book.status == BookStatus.FINISHED.value:
            book.status = BookStatus.READING.value

        book.last_interaction = self.clock.now()
        self.store.save()
        return book

    def delete_book(self, book: Book) -> None:
        logger.info(f"Deleting book {book.id} ({book.title}) and its reading sessions")
        self.store.delete(book)
        self.store.save()
