import logging
from sqlalchemy import func, case
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.clock import Clock
from app.models.book import Book, BookStatus
from app.services.heatmap import HeatmapService
from app.services.streak import current_streak, longest_streak


class StatisticsService:
    def __init__(self, db: Session, clock: Clock):
        self.db = db
        self.clock = clock
        self.logger = logging.getLogger(__name__)
        self.heatmap_service = HeatmapService(db, clock)

    def get_library_counts(self) -> dict:
        """Books per status. Display only, so failures degrade to zeros."""
        try:
            row = self.db.query(
                func.count(Book.id).label('total'),
                func.count(case((Book.status == BookStatus.SHELF.value, 1))).label('shelf'),
                func.count(case((Book.status == BookStatus.READING.value, 1))).label('reading'),
                func.count(case((Book.status == BookStatus.FINISHED.value, 1))).label('finished'),
            ).one()
        except SQLAlchemyError as e:
            self.logger.warning(f"Library counts unavailable: {e}")
            return {"total": 0, "shelf": 0, "reading": 0, "finished": 0}

        return {
            "total": row.total or 0,
            "shelf": row.shelf or 0,
            "reading": row.reading or 0,
            "finished": row.finished or 0,
        }

    def get_streaks(self) -> dict:
        heatmap = self.heatmap_service.fetch_heatmap()
        return {
            "current_streak": current_streak(heatmap, self.clock),
            "longest_streak": longest_streak(heatmap, self.clock),
        }

    def get_dashboard_payload(self, months: int = 12):
        # Full history for totals and streaks, trailing window for the grid
        full_heatmap = self.heatmap_service.fetch_heatmap()
        window = self.heatmap_service.window_start(months)

        thirty_days_ago = self.clock.day_start_instant(self.clock.add_days(self.clock.today(), -30))
        last_30 = {d: p for d, p in full_heatmap.items() if d >= thirty_days_ago.date()}

        windowed = {d: p for d, p in full_heatmap.items() if d >= window.date()}

        total_pages = sum(full_heatmap.values())
        active_days = len(full_heatmap)

        return {
            "books": self.get_library_counts(),
            "reading_behavior": {
                "total_pages_read": total_pages,
                "active_days": active_days,
                "pages_per_active_day": round(total_pages / active_days, 1) if active_days else 0,
                "max_pages_in_single_day": max(full_heatmap.values(), default=0),
                "last_30_days": {
                    "pages_read": sum(last_30.values()),
                    "active_days": len(last_30),
                },
            },
            "current_streak": current_streak(full_heatmap, self.clock),
            "longest_streak": longest_streak(full_heatmap, self.clock),
            "heatmap": {day.isoformat(): pages for day, pages in windowed.items()},
        }
