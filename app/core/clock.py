import calendar
from datetime import date, datetime, timedelta, timezone
from typing import Callable, Optional, Tuple
from zoneinfo import ZoneInfo


class Clock:
    """
    Single source of "now" and of calendar-day math.

    Timestamps are stored in UTC (SQLite hands them back naive), but every
    day boundary is computed in ONE configured zone. Heatmap, streak and
    achievement code must all go through the same instance, otherwise a
    session near midnight can land on different days in different places.
    """

    def __init__(self, tz_name: str = "UTC", now_func: Optional[Callable[[], datetime]] = None):
        self.tz = ZoneInfo(tz_name)
        self._now_func = now_func or (lambda: datetime.now(timezone.utc))

    def now(self) -> datetime:
        """Current instant, always UTC-aware. A naive now_func value is read as UTC."""
        now = self._now_func()
        if now.tzinfo is None:
            return now.replace(tzinfo=timezone.utc)
        return now.astimezone(timezone.utc)

    def localize(self, ts: datetime) -> datetime:
        # Naive values come back from SQLite and are UTC by convention
        if ts.tzinfo is None:
            ts = ts.replace(tzinfo=timezone.utc)
        return ts.astimezone(self.tz)

    def start_of_day(self, ts: datetime) -> date:
        """Day key (local calendar date) for a timestamp"""
        return self.localize(ts).date()

    def today(self) -> date:
        return self.start_of_day(self.now())

    def day_start_instant(self, day: date) -> datetime:
        """Aware datetime for local midnight of ``day``, used for DB range filters"""
        return datetime(day.year, day.month, day.day, tzinfo=self.tz)

    @staticmethod
    def add_days(day: date, n: int) -> date:
        return day + timedelta(days=n)

    @staticmethod
    def add_months(day: date, n: int) -> date:
        """Shift by calendar months, clamping to the last day of the target month"""
        month_index = day.month - 1 + n
        year = day.year + month_index // 12
        month = month_index % 12 + 1
        last_day = calendar.monthrange(year, month)[1]
        return date(year, month, min(day.day, last_day))

    def hour_of_day(self, ts: datetime) -> int:
        return self.localize(ts).hour

    @staticmethod
    def week_key(day: date) -> Tuple[int, int]:
        """(ISO year, ISO week). Saturday and Sunday always share a key."""
        iso = day.isocalendar()
        return iso[0], iso[1]

    @staticmethod
    def weekday_of(day: date) -> int:
        """1 = Sunday ... 7 = Saturday"""
        return day.isoweekday() % 7 + 1


SUNDAY = 1
SATURDAY = 7
