from sqlalchemy import Column, Integer, String, DateTime
from datetime import datetime, timezone
from app.database import Base


class UnlockedAchievement(Base):
    """Persisted fact that a catalog achievement was earned"""
    __tablename__ = "unlocked_achievements"

    id = Column(Integer, primary_key=True, index=True)

    # Id from the static catalog. UNIQUE: an achievement unlocks once, ever.
    achievement_id = Column(String, unique=True, nullable=False, index=True)

    unlocked_at = Column(DateTime, default=lambda: datetime.now(timezone.utc), nullable=False)
