import enum
from datetime import datetime
from pydantic import BaseModel, ConfigDict
from typing import Optional, List


class ConditionType(str, enum.Enum):
    """
    Closed set of achievement conditions.
    Adding a member means adding a branch in AchievementEvaluator._is_met.
    """
    CONSECUTIVE_DAYS = "consecutive_days"
    PAGES_IN_SINGLE_DAY = "pages_in_single_day"
    TOTAL_PAGES_READ = "total_pages_read"
    READ_ON_WEEKEND = "read_on_weekend"
    TOTAL_BOOKS_FINISHED = "total_books_finished"
    DAYS_READ_IN_WEEK = "days_read_in_week"
    FINISH_LARGE_BOOK = "finish_large_book"
    TOTAL_BOOKS_ADDED = "total_books_added"
    READ_BEFORE_TIME = "read_before_time"
    READ_AFTER_TIME = "read_after_time"


class AchievementDefinition(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    title: str
    description: str
    message: str
    icon: str
    condition_type: ConditionType
    condition_value: int


# --- API Schemas ---
class AchievementStatus(BaseModel):
    id: str
    title: str
    description: str
    icon: str
    unlocked: bool
    unlocked_at: Optional[datetime] = None


class AchievementCheckResponse(BaseModel):
    unlocked: List[AchievementDefinition]
    newly_unlocked: List[AchievementDefinition]
