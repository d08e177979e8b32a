from fastapi import APIRouter, Depends
from typing import List, Annotated

from app.api.deps import BookDep, CatalogDep, ClockDep, NotifierDep, SessionDep
from app.core.exceptions import PersistenceError
from app.schemas.book import BookRead, ProgressResponse, ReadingSessionRead, UpdateProgressRequest
from app.services.activity import ActivitySnapshot, ReadingActivityService
from app.services.stores import SessionStore

router = APIRouter()


# Helper to initialize service with the request's collaborators
def get_activity_service(
        db: SessionDep,
        clock: ClockDep,
        catalog: CatalogDep,
        notifier: NotifierDep,
) -> ReadingActivityService:
    return ReadingActivityService(db, clock, catalog, notifier)


ActivityServiceDep = Annotated[ReadingActivityService, Depends(get_activity_service)]


def _to_response(snapshot: ActivitySnapshot) -> ProgressResponse:
    return ProgressResponse(
        book=BookRead.model_validate(snapshot.book),
        session=ReadingSessionRead.model_validate(snapshot.session) if snapshot.session else None,
        current_streak=snapshot.current_streak,
        newly_unlocked=snapshot.newly_unlocked,
        achievements_saved=snapshot.achievements_saved,
    )


@router.post("/{book_id}", response_model=ProgressResponse, name="update_progress")
async def update_book_progress(
        book: BookDep,
        request: UpdateProgressRequest,
        service: ActivityServiceDep,
        db: SessionDep
):
    """
    Record the page the reader is on.
    Forward moves log a reading session; backward moves only correct the position.
    A failed save is reported (500) and rolled back, never retried.
    """
    try:
        snapshot = service.record_progress(book, request.current_page)
    except PersistenceError:
        db.rollback()
        raise

    return _to_response(snapshot)


@router.post("/{book_id}/finish", response_model=ProgressResponse, name="finish_book")
async def finish_book(book: BookDep, service: ActivityServiceDep, db: SessionDep):
    """Mark a book as finished, logging the remaining pages as read"""
    try:
        snapshot = service.finish_book(book)
    except PersistenceError:
        db.rollback()
        raise

    return _to_response(snapshot)


@router.get("/{book_id}/sessions", response_model=List[ReadingSessionRead], name="book_sessions")
async def get_book_sessions(book: BookDep, db: SessionDep):
    """Reading history of one book, newest first"""
    return SessionStore(db).fetch_for_book(book.id)
