import logging
from collections import defaultdict
from dataclasses import dataclass, field
from datetime import date
from pathlib import Path
from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Set, Tuple

from pydantic import TypeAdapter, ValidationError
from sqlalchemy.orm import Session

from app.core.clock import Clock, SATURDAY, SUNDAY
from app.core.exceptions import PersistenceError, ResourceLoadError
from app.models.achievement import UnlockedAchievement
from app.models.book import Book, BookStatus, ReadingSession
from app.schemas.achievement import AchievementDefinition, ConditionType
from app.services.heatmap import HeatmapService
from app.services.notifications import NotificationSink, send_safely
from app.services.stores import AchievementStore, BookStore, SessionStore
from app.services.streak import current_streak

logger = logging.getLogger(__name__)

_definitions_adapter = TypeAdapter(List[AchievementDefinition])


# --- CATALOG ---

def load_achievement_definitions(path: Path) -> List[AchievementDefinition]:
    """Strict loader. Raises ResourceLoadError on any problem."""
    try:
        raw = Path(path).read_bytes()
    except OSError as e:
        raise ResourceLoadError(f"Achievement catalog not readable at {path}: {e}") from e

    try:
        definitions = _definitions_adapter.validate_json(raw)
    except ValidationError as e:
        raise ResourceLoadError(f"Achievement catalog at {path} is invalid: {e}") from e

    ids = [d.id for d in definitions]
    if len(ids) != len(set(ids)):
        raise ResourceLoadError(f"Achievement catalog at {path} has duplicate ids")

    return definitions


class AchievementCatalog:
    """Ordered, immutable list of definitions. Safe to share between threads."""

    def __init__(self, definitions: Sequence[AchievementDefinition] = ()):
        self._definitions: Tuple[AchievementDefinition, ...] = tuple(definitions)
        self._by_id = {d.id: d for d in self._definitions}

    @classmethod
    def load(cls, path: Path) -> "AchievementCatalog":
        # Fail open: an empty catalog withholds achievements, it never grants wrong ones
        try:
            definitions = load_achievement_definitions(path)
        except ResourceLoadError as e:
            logger.error(f"{e}. Continuing with an empty catalog.")
            return cls()

        logger.info(f"Loaded {len(definitions)} achievements from {path}")
        return cls(definitions)

    @property
    def definitions(self) -> Tuple[AchievementDefinition, ...]:
        return self._definitions

    def get(self, achievement_id: str) -> Optional[AchievementDefinition]:
        return self._by_id.get(achievement_id)

    def __len__(self):
        return len(self._definitions)

    def __iter__(self):
        return iter(self._definitions)


# --- EVALUATION ---

@dataclass(frozen=True)
class ReadingStats:
    """Everything the conditions look at, computed once per evaluation"""
    total_books_finished: int
    total_books_added: int
    total_pages_read: int
    current_streak: int
    max_pages_in_single_day: int
    has_weekend_read: bool
    max_days_read_in_week: int
    finished_book_sizes: Tuple[int, ...]
    session_hours: frozenset

    @classmethod
    def compute(cls, books: Sequence[Book], sessions: Sequence[ReadingSession],
                heatmap: Mapping[date, int], clock: Clock) -> "ReadingStats":
        finished = [b for b in books if b.status == BookStatus.FINISHED.value]

        days_by_week: Dict[Tuple[int, int], Set[date]] = defaultdict(set)
        for day in heatmap:
            days_by_week[clock.week_key(day)].add(day)

        weekend = any(
            {clock.weekday_of(d) for d in days} >= {SATURDAY, SUNDAY}
            for days in days_by_week.values()
        )

        return cls(
            total_books_finished=len(finished),
            total_books_added=len(books),
            total_pages_read=sum(s.pages_read for s in sessions),
            current_streak=current_streak(heatmap, clock),
            max_pages_in_single_day=max(heatmap.values(), default=0),
            has_weekend_read=weekend,
            max_days_read_in_week=max((len(days) for days in days_by_week.values()), default=0),
            finished_book_sizes=tuple(b.total_pages for b in finished),
            session_hours=frozenset(clock.hour_of_day(s.created_at) for s in sessions),
        )


@dataclass
class EvaluationResult:
    # Every achievement whose condition holds right now, catalog order
    unlocked: List[AchievementDefinition] = field(default_factory=list)
    # Subset of ``unlocked`` that was not persisted before this call
    newly_unlocked: List[AchievementDefinition] = field(default_factory=list)


class AchievementEvaluator:
    """
    Stateless. Idempotence comes from the caller passing the full set of
    already-persisted ids on every call.
    """

    def __init__(self, catalog: AchievementCatalog, clock: Clock):
        self.catalog = catalog
        self.clock = clock

    def evaluate(self, books: Sequence[Book], sessions: Sequence[ReadingSession],
                 heatmap: Mapping[date, int], already_unlocked_ids: Iterable[str]) -> EvaluationResult:
        already = set(already_unlocked_ids)
        stats = ReadingStats.compute(books, sessions, heatmap, self.clock)
        result = EvaluationResult()

        for definition in self.catalog:
            if not self._is_met(definition, stats):
                continue
            result.unlocked.append(definition)
            if definition.id not in already:
                result.newly_unlocked.append(definition)

        return result

    @staticmethod
    def _is_met(definition: AchievementDefinition, stats: ReadingStats) -> bool:
        kind = definition.condition_type
        value = definition.condition_value

        if kind is ConditionType.CONSECUTIVE_DAYS:
            return stats.current_streak >= value
        elif kind is ConditionType.PAGES_IN_SINGLE_DAY:
            return stats.max_pages_in_single_day >= value
        elif kind is ConditionType.TOTAL_PAGES_READ:
            return stats.total_pages_read >= value
        elif kind is ConditionType.READ_ON_WEEKEND:
            return stats.has_weekend_read
        elif kind is ConditionType.TOTAL_BOOKS_FINISHED:
            return stats.total_books_finished >= value
        elif kind is ConditionType.DAYS_READ_IN_WEEK:
            return stats.max_days_read_in_week >= value
        elif kind is ConditionType.FINISH_LARGE_BOOK:
            return any(pages >= value for pages in stats.finished_book_sizes)
        elif kind is ConditionType.TOTAL_BOOKS_ADDED:
            return stats.total_books_added >= value
        elif kind is ConditionType.READ_BEFORE_TIME:
            return any(hour < value for hour in stats.session_hours)
        elif kind is ConditionType.READ_AFTER_TIME:
            return any(hour >= value for hour in stats.session_hours)

        raise ValueError(f"Unhandled achievement condition: {kind!r}")


# --- ORCHESTRATION ---

class GamificationService:
    """
    Fetches the history, runs the evaluator and persists new unlocks.
    Reads fail open (empty data), the unlock write fails loud.
    """

    def __init__(self, db: Session, clock: Clock, catalog: AchievementCatalog,
                 notifier: Optional[NotificationSink] = None):
        self.clock = clock
        self.catalog = catalog
        self.notifier = notifier
        self.evaluator = AchievementEvaluator(catalog, clock)
        self.books = BookStore(db)
        self.sessions = SessionStore(db)
        self.unlocked = AchievementStore(db)
        self.heatmap = HeatmapService(db, clock)

    def fetch_unlocked(self) -> List[UnlockedAchievement]:
        try:
            return self.unlocked.fetch_all()
        except PersistenceError as e:
            logger.warning(f"Could not read unlocked achievements: {e}")
            return []

    def check_achievements(self) -> EvaluationResult:
        try:
            books = self.books.fetch_all()
            sessions = self.sessions.fetch_all()
        except PersistenceError as e:
            logger.warning(f"Achievement check running without history: {e}")
            books, sessions = [], []

        heatmap = self.heatmap.fetch_heatmap()
        already = {u.achievement_id for u in self.fetch_unlocked()}

        result = self.evaluator.evaluate(books, sessions, heatmap, already)
        if not result.newly_unlocked:
            return result

        now = self.clock.now()
        for definition in result.newly_unlocked:
            self.unlocked.insert(UnlockedAchievement(achievement_id=definition.id, unlocked_at=now))

        self.unlocked.save()

        for definition in result.newly_unlocked:
            logger.info(f"NEW achievement unlocked: {definition.title}")
            if self.notifier:
                send_safely(self.notifier.notify_achievement_unlocked,
                            definition.title, definition.message, definition.id)

        return result
