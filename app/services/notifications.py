import logging
from typing import Protocol

logger = logging.getLogger(__name__)


class NotificationSink(Protocol):
    def notify_achievement_unlocked(self, title: str, message: str, achievement_id: str) -> None: ...

    def notify_streak(self, current_streak: int) -> None: ...


class LogNotificationSink:
    """Default sink. Delivery (push, email) is somebody else's problem, we just log."""

    def notify_achievement_unlocked(self, title: str, message: str, achievement_id: str) -> None:
        logger.info(f"Achievement unlocked: {title} ({achievement_id}) - {message}")

    def notify_streak(self, current_streak: int) -> None:
        logger.info(f"Streak update: {current_streak}-day streak, keep it up!")


def send_safely(func, *args) -> None:
    """Fire and forget. A failing sink never breaks the caller."""
    try:
        func(*args)
    except Exception as e:
        logger.warning(f"Notification {getattr(func, '__name__', func)} failed: {e}")
