import logging
from dataclasses import dataclass, field
from datetime import date
from typing import Dict, List, Optional

from sqlalchemy.orm import Session

from app.core.clock import Clock
from app.core.exceptions import PersistenceError
from app.models.book import Book, ReadingSession
from app.schemas.achievement import AchievementDefinition
from app.services.achievements import AchievementCatalog, GamificationService
from app.services.heatmap import HeatmapService
from app.services.notifications import NotificationSink, send_safely
from app.services.reading_progress import ReadingProgressService
from app.services.streak import current_streak

logger = logging.getLogger(__name__)


@dataclass
class ActivitySnapshot:
    book: Book
    session: Optional[ReadingSession]
    current_streak: int
    heatmap: Dict[date, int] = field(default_factory=dict)
    newly_unlocked: List[AchievementDefinition] = field(default_factory=list)
    # False when progress was saved but the unlock write was not
    achievements_saved: bool = True


class ReadingActivityService:
    """
    Progress update followed by the refresh the dashboard needs, in order:
    ledger write -> commit -> heatmap/streak -> achievement check.
    """

    def __init__(self, db: Session, clock: Clock, catalog: AchievementCatalog,
                 notifier: Optional[NotificationSink] = None):
        self.db = db
        self.clock = clock
        self.notifier = notifier
        self.progress = ReadingProgressService(db, clock)
        self.heatmap = HeatmapService(db, clock)
        self.gamification = GamificationService(db, clock, catalog, notifier)

    def record_progress(self, book: Book, new_page: int) -> ActivitySnapshot:
        session = self.progress.update_progress(book, new_page)
        return self._refresh(book, session)

    def finish_book(self, book: Book) -> ActivitySnapshot:
        session = self.progress.finish_book(book)
        return self._refresh(book, session)

    def _refresh(self, book: Book, session: Optional[ReadingSession]) -> ActivitySnapshot:
        heatmap = self.heatmap.fetch_heatmap()
        streak = current_streak(heatmap, self.clock)

        if streak > 0 and self.notifier:
            send_safely(self.notifier.notify_streak, streak)

        # Progress is already committed here, a failed unlock write must not undo or mask it
        try:
            newly_unlocked = self.gamification.check_achievements().newly_unlocked
            achievements_saved = True
        except PersistenceError as e:
            self.db.rollback()
            logger.error(f"Progress for book {book.id} saved, achievement unlocks were not: {e}")
            newly_unlocked, achievements_saved = [], False

        logger.debug(f"Refreshed after book {book.id}: streak {streak}, {len(newly_unlocked)} new achievements")

        return ActivitySnapshot(
            book=book,
            session=session,
            current_streak=streak,
            heatmap=heatmap,
            newly_unlocked=newly_unlocked,
            achievements_saved=achievements_saved,
        )
