import logging
from collections import defaultdict
from datetime import date, datetime
from typing import Dict, Iterable, Optional

from sqlalchemy.orm import Session

from app.core.clock import Clock
from app.core.exceptions import PersistenceError
from app.models.book import ReadingSession
from app.services.stores import SessionStore

logger = logging.getLogger(__name__)


def aggregate(sessions: Iterable[ReadingSession], clock: Clock,
              window_start: Optional[datetime] = None) -> Dict[date, int]:
    """
    Sum pages read per local calendar day.

    Pure: no I/O, no hidden state. Sessions older than ``window_start`` are
    dropped. Keys come out sorted so identical input gives an identical dict,
    iteration order included.
    """
    if window_start is not None:
        window_start = clock.localize(window_start)

    totals = defaultdict(int)
    for session in sessions:
        created = clock.localize(session.created_at)
        if window_start is not None and created < window_start:
            continue
        totals[clock.start_of_day(created)] += session.pages_read

    return {day: totals[day] for day in sorted(totals)}


class HeatmapService:
    """Read path for the activity heatmap. Never raises on fetch failures."""

    def __init__(self, db: Session, clock: Clock):
        self.clock = clock
        self.sessions = SessionStore(db)

    def window_start(self, months: int) -> datetime:
        """Local midnight ``months`` calendar months before today"""
        start_day = self.clock.add_months(self.clock.today(), -months)
        return self.clock.day_start_instant(start_day)

    def fetch_heatmap(self, months: Optional[int] = None) -> Dict[date, int]:
        window = self.window_start(months) if months else None

        try:
            if window is not None:
                sessions = self.sessions.fetch_since(window)
            else:
                sessions = self.sessions.fetch_all()
        except PersistenceError as e:
            # Empty heatmap beats a broken dashboard
            logger.warning(f"Heatmap fetch failed, returning empty data: {e}")
            return {}

        logger.debug(f"Aggregating {len(sessions)} reading sessions (window: {window})")
        return aggregate(sessions, self.clock, window)
