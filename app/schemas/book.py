from datetime import datetime
from pydantic import BaseModel, ConfigDict, Field, field_validator
from typing import Optional, List, Literal

from app.schemas.achievement import AchievementDefinition


# --- Requests ---
class BookCreate(BaseModel):
    title: str = Field(min_length=1)
    author: Optional[str] = None
    total_pages: int = Field(gt=0)


class BookUpdate(BaseModel):
    title: Optional[str] = Field(default=None, min_length=1)
    author: Optional[str] = None
    total_pages: Optional[int] = Field(default=None, gt=0)
    # Finishing only happens through the progress endpoints
    status: Optional[Literal["shelf", "reading"]] = None

    @field_validator("title", "total_pages", "status")
    @classmethod
    def not_null(cls, v):
        # Omit a field to leave it unchanged, null is not a value for it
        if v is None:
            raise ValueError("may be omitted but not null")
        return v


class UpdateProgressRequest(BaseModel):
    # Any integer is accepted, the ledger clamps it
    current_page: int


# --- Responses ---
class BookRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    title: str
    author: Optional[str] = None
    total_pages: int
    current_page: int
    status: str
    progress_percentage: float
    pages_remaining: int
    last_interaction: datetime
    created_at: datetime


class ReadingSessionRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    book_id: int
    pages_read: int
    created_at: datetime


class ProgressResponse(BaseModel):
    book: BookRead
    session: Optional[ReadingSessionRead] = None
    current_streak: int
    newly_unlocked: List[AchievementDefinition]
    achievements_saved: bool = True
