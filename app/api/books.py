from fastapi import APIRouter, Query
from typing import List, Optional, Annotated

from app.api.deps import BookDep, BookServiceDep, SessionDep
from app.core.exceptions import PersistenceError
from app.schemas.book import BookCreate, BookRead, BookUpdate

router = APIRouter()


@router.get("/", response_model=List[BookRead], name="list_books")
async def list_books(
        service: BookServiceDep,
        status: Annotated[Optional[str], Query(pattern="^(shelf|reading|finished)$")] = None
):
    """List the library, most recently touched first"""
    return service.list_books(status)


@router.post("/", response_model=BookRead, name="add_book")
async def add_book(payload: BookCreate, service: BookServiceDep, db: SessionDep):
    """Add a book. New books start on the shelf at page 0."""
    try:
        book = service.add_book(payload)
    except PersistenceError:
        db.rollback()
        raise

    db.refresh(book)
    return book


@router.get("/{book_id}", response_model=BookRead, name="get_book")
async def get_book(book: BookDep):
    return book


@router.patch("/{book_id}", response_model=BookRead, name="update_book")
async def update_book(book: BookDep, payload: BookUpdate, service: BookServiceDep, db: SessionDep):
    try:
        book = service.update_book(book, payload)
    except PersistenceError:
        db.rollback()
        raise

    db.refresh(book)
    return book


@router.delete("/{book_id}", name="delete_book")
async def delete_book(book: BookDep, service: BookServiceDep, db: SessionDep):
    """Delete a book together with its reading history"""
    book_id = book.id
    try:
        service.delete_book(book)
    except PersistenceError:
        db.rollback()
        raise

    return {"book_id": book_id, "message": "Book deleted"}
