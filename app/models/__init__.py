# Import all models here so SQLAlchemy can set up relationships
from app.models.book import Book, BookStatus, ReadingSession
from app.models.achievement import UnlockedAchievement

# This ensures all models are loaded before relationships are configured
__all__ = [
    'Book', 'BookStatus', 'ReadingSession',
    'UnlockedAchievement',
]
