from sqlalchemy.exc import OperationalError

from app.models.achievement import UnlockedAchievement
from app.models.book import BookStatus, ReadingSession


def test_update_progress_records_session(client, db, make_book, notifier):
    book = make_book(total_pages=100)

    response = client.post(f"/api/progress/{book.id}", json={"current_page": 50})

    assert response.status_code == 200
    data = response.json()
    assert data["book"]["current_page"] == 50
    assert data["book"]["status"] == "reading"
    assert data["session"]["pages_read"] == 50
    assert data["current_streak"] == 1

    assert db.query(ReadingSession).count() == 1
    assert notifier.streaks == [1]


def test_backward_correction_has_no_session(client, db, make_book):
    book = make_book(total_pages=100, current_page=50, status=BookStatus.READING.value)

    data = client.post(f"/api/progress/{book.id}", json={"current_page": 40}).json()

    assert data["book"]["current_page"] == 40
    assert data["book"]["status"] == "reading"
    assert data["session"] is None
    assert data["current_streak"] == 0
    assert db.query(ReadingSession).count() == 0


def test_progress_to_last_page_finishes(client, make_book):
    book = make_book(total_pages=100, current_page=90, status=BookStatus.READING.value)

    data = client.post(f"/api/progress/{book.id}", json={"current_page": 100}).json()

    assert data["book"]["status"] == "finished"
    assert data["book"]["progress_percentage"] == 100.0
    assert data["session"]["pages_read"] == 10


def test_progress_unlocks_achievements_once(client, db, make_book, notifier):
    book = make_book(total_pages=400)

    first = client.post(f"/api/progress/{book.id}", json={"current_page": 120}).json()
    first_ids = {a["id"] for a in first["newly_unlocked"]}
    # One book added, 120 pages read, 120 pages in a single day
    assert {"first_steps", "page_turner", "marathon_reader"} <= first_ids

    second = client.post(f"/api/progress/{book.id}", json={"current_page": 130}).json()
    assert second["newly_unlocked"] == []

    stored = [u.achievement_id for u in db.query(UnlockedAchievement).all()]
    assert len(stored) == len(set(stored)) == len(first_ids)
    assert sorted(notifier.achievements) == sorted(first_ids)


def test_finish_endpoint(client, db, make_book):
    book = make_book(total_pages=520, current_page=20, status=BookStatus.READING.value)

    response = client.post(f"/api/progress/{book.id}/finish")

    assert response.status_code == 200
    data = response.json()
    assert data["book"]["current_page"] == 520
    assert data["book"]["status"] == "finished"
    assert data["session"]["pages_read"] == 500

    unlocked = {a["id"] for a in data["newly_unlocked"]}
    assert {"first_finish", "heavyweight"} <= unlocked


def test_book_sessions_newest_first(client, clock, make_book):
    book = make_book(total_pages=300)
    client.post(f"/api/progress/{book.id}", json={"current_page": 30})
    clock.advance(days=1)
    client.post(f"/api/progress/{book.id}", json={"current_page": 75})

    sessions = client.get(f"/api/progress/{book.id}/sessions").json()

    assert [s["pages_read"] for s in sessions] == [45, 30]


def test_save_failure_is_reported_not_retried(client, db, make_book, monkeypatch):
    book = make_book(total_pages=100)
    book_id = book.id

    calls = []

    def failing_commit():
        calls.append(1)
        raise OperationalError("COMMIT", {}, Exception("disk full"))

    monkeypatch.setattr(db, "commit", failing_commit)

    response = client.post(f"/api/progress/{book_id}", json={"current_page": 50})

    assert response.status_code == 500
    assert "error" in response.json()
    assert len(calls) == 1

    monkeypatch.undo()
    # Rolled back by the route
    assert db.query(ReadingSession).count() == 0
    assert client.get(f"/api/books/{book_id}").json()["current_page"] == 0


def test_unlock_failure_does_not_mask_saved_progress(client, db, make_book, notifier, monkeypatch):
    book = make_book(total_pages=400)
    book_id = book.id

    real_commit = db.commit
    calls = []

    def commit_then_fail():
        calls.append(1)
        if len(calls) == 1:
            return real_commit()
        raise OperationalError("COMMIT", {}, Exception("database is locked"))

    monkeypatch.setattr(db, "commit", commit_then_fail)

    response = client.post(f"/api/progress/{book_id}", json={"current_page": 120})

    assert response.status_code == 200
    data = response.json()
    assert data["book"]["current_page"] == 120
    assert data["session"]["pages_read"] == 120
    assert data["newly_unlocked"] == []
    assert data["achievements_saved"] is False
    assert len(calls) == 2

    monkeypatch.undo()
    assert client.get(f"/api/books/{book_id}").json()["current_page"] == 120
    assert db.query(ReadingSession).count() == 1
    assert db.query(UnlockedAchievement).count() == 0
    assert notifier.achievements == []

    # The next update picks the missed unlocks up again
    retry = client.post(f"/api/progress/{book_id}", json={"current_page": 125}).json()
    assert retry["achievements_saved"] is True
    assert "first_steps" in {a["id"] for a in retry["newly_unlocked"]}
