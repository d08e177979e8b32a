from datetime import date, datetime, timedelta, timezone

from app.core.clock import Clock
from app.core.exceptions import PersistenceError
from app.models.book import ReadingSession
from app.services.heatmap import HeatmapService, aggregate
from app.services.stores import SessionStore


def _session(pages, when):
    return ReadingSession(pages_read=pages, created_at=when)


def test_same_day_sessions_are_summed():
    clock = Clock("UTC")
    sessions = [
        _session(20, datetime(2026, 10, 14, 8, 15, tzinfo=timezone.utc)),
        _session(30, datetime(2026, 10, 14, 21, 40, tzinfo=timezone.utc)),
    ]

    assert aggregate(sessions, clock) == {date(2026, 10, 14): 50}


def test_sessions_bucketed_per_day():
    clock = Clock("UTC")
    sessions = [
        _session(5, datetime(2026, 10, 12, 9, 0, tzinfo=timezone.utc)),
        _session(7, datetime(2026, 10, 13, 9, 0, tzinfo=timezone.utc)),
        _session(3, datetime(2026, 10, 12, 23, 59, tzinfo=timezone.utc)),
    ]

    assert aggregate(sessions, clock) == {date(2026, 10, 12): 8, date(2026, 10, 13): 7}


def test_day_boundaries_follow_the_configured_zone():
    """20:00 UTC is already the next day in Jakarta (UTC+7)"""
    session = _session(15, datetime(2026, 10, 14, 20, 0, tzinfo=timezone.utc))

    assert aggregate([session], Clock("UTC")) == {date(2026, 10, 14): 15}
    assert aggregate([session], Clock("Asia/Jakarta")) == {date(2026, 10, 15): 15}


def test_naive_timestamps_are_treated_as_utc():
    session = _session(9, datetime(2026, 10, 14, 20, 0))

    assert aggregate([session], Clock("Asia/Jakarta")) == {date(2026, 10, 15): 9}


def test_window_excludes_older_sessions():
    clock = Clock("UTC")
    window = datetime(2026, 10, 10, tzinfo=timezone.utc)
    sessions = [
        _session(40, datetime(2026, 10, 9, 23, 0, tzinfo=timezone.utc)),
        _session(10, datetime(2026, 10, 10, 0, 0, tzinfo=timezone.utc)),
    ]

    assert aggregate(sessions, clock, window) == {date(2026, 10, 10): 10}


def test_naive_window_is_treated_as_utc():
    clock = Clock("UTC")
    sessions = [
        _session(40, datetime(2026, 10, 9, 23, 0)),
        _session(10, datetime(2026, 10, 14, 12, 0)),
    ]

    assert aggregate(sessions, clock, datetime(2026, 10, 1)) == {date(2026, 10, 9): 40, date(2026, 10, 14): 10}
    assert aggregate(sessions, clock, datetime(2026, 10, 10)) == {date(2026, 10, 14): 10}
    # Naive 2026-10-10 00:00 is UTC, i.e. 07:00 on the 10th in Jakarta
    assert aggregate(sessions, Clock("Asia/Jakarta"), datetime(2026, 10, 10)) == {date(2026, 10, 14): 10}


def test_aggregate_is_pure():
    clock = Clock("Europe/Berlin")
    sessions = [
        _session(p, datetime(2026, 9, 1, 6, 0, tzinfo=timezone.utc) + timedelta(hours=13 * i))
        for i, p in enumerate([3, 14, 15, 9, 26, 5, 35])
    ]

    first = aggregate(sessions, clock)
    second = aggregate(list(reversed(sessions)), clock)

    assert first == second
    assert list(first) == list(second)


def test_empty_input_gives_empty_map():
    assert aggregate([], Clock("UTC")) == {}


def test_fetch_heatmap_reads_all_sessions(db, clock, make_book, add_session):
    book = make_book()
    add_session(book, 12, clock.now() - timedelta(days=1))
    add_session(book, 8, clock.now())
    add_session(book, 4, clock.now())

    heatmap = HeatmapService(db, clock).fetch_heatmap()

    assert heatmap == {date(2026, 10, 13): 12, date(2026, 10, 14): 12}


def test_fetch_heatmap_trailing_months(db, clock, make_book, add_session):
    book = make_book()
    add_session(book, 10, clock.now() - timedelta(days=10))
    add_session(book, 60, clock.now() - timedelta(days=60))

    heatmap = HeatmapService(db, clock).fetch_heatmap(months=1)

    assert heatmap == {date(2026, 10, 4): 10}


def test_fetch_failure_fails_open(db, clock, monkeypatch):
    def broken_fetch(self):
        raise PersistenceError("database is locked")

    monkeypatch.setattr(SessionStore, "fetch_all", broken_fetch)

    assert HeatmapService(db, clock).fetch_heatmap() == {}
