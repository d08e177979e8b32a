from typing import ClassVar
from pydantic_settings import BaseSettings, SettingsConfigDict
from pathlib import Path


class Settings(BaseSettings):
    app_name: ClassVar[str] = "Bookmark"
    version: ClassVar[str] = "0.3.0"

    database_url: str = "sqlite:///./storage/database/reading.db"

    # --- CALENDAR ---
    # Every day-boundary decision (heatmap buckets, streaks, weekend checks)
    # is made in this zone. IANA name, e.g. "Asia/Jakarta".
    timezone: str = "UTC"

    # --- LOGGING ---
    log_level: str = "INFO"
    log_max_mb: int = 10
    log_backup_count: int = 10

    # --- GAMIFICATION ---
    achievements_file: Path = Path(__file__).parent / "data" / "achievements.json"

    # Default trailing window for the heatmap endpoint (months)
    heatmap_months: int = 12

    # --- SCHEDULER ---
    scheduler_enabled: bool = True
    streak_reminder_hour: int = 20  # 8 PM local

    # Storage paths
    log_dir: Path = Path("storage/logs")
    cache_dir: Path = Path("storage/cache")

    model_config = SettingsConfigDict(env_file=".env",
                                      extra="ignore",
                                      env_ignore_empty=True,
                                      case_sensitive=False,
                                      env_nested_delimiter=None
                                      )


settings = Settings()
