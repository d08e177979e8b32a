import logging
from pathlib import Path
from typing import Optional

from concurrent_log_handler import ConcurrentRotatingFileHandler

from app.config import settings

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# Third-party loggers that drown out reading activity at INFO
NOISY_LOGGERS = ("apscheduler",)


class LogConfig:
    """
    Logging for the ``app`` logger tree.

    One size-rotated file shared by every worker process (the handler locks
    the file) plus the console. The directory is resolved when logging is
    set up, not at import, so LOG_DIR set by the environment still applies.
    """

    def __init__(self, log_file: str = "bookmark.log", log_dir: Optional[Path] = None):
        self.log_file = log_file
        self._log_dir = log_dir
        self.logger: Optional[logging.Logger] = None

    @property
    def log_dir(self) -> Path:
        return Path(self._log_dir or settings.log_dir)

    @property
    def log_path(self) -> Path:
        return self.log_dir / self.log_file

    def setup_logging(self, log_level: str = "INFO") -> logging.Logger:
        self.log_dir.mkdir(parents=True, exist_ok=True)
        level = self._level(log_level)

        self.logger = logging.getLogger("app")
        self.logger.setLevel(level)
        # Lifespan runs this again per worker
        self.logger.handlers.clear()

        formatter = logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT)
        for handler in (self._file_handler(), logging.StreamHandler()):
            handler.setFormatter(formatter)
            self.logger.addHandler(handler)

        self._quiet_third_party(level)
        return self.logger

    def update_log_level(self, log_level: str) -> None:
        if self.logger is None:
            return
        level = self._level(log_level)
        self.logger.setLevel(level)
        self._quiet_third_party(level)
        self.logger.info(f"Log level updated to {log_level.upper()}")

    def _file_handler(self) -> ConcurrentRotatingFileHandler:
        return ConcurrentRotatingFileHandler(
            filename=self.log_path,
            maxBytes=settings.log_max_mb * 1024 * 1024,
            backupCount=settings.log_backup_count,
            encoding="utf-8",
            use_gzip=True
        )

    @staticmethod
    def _level(log_level: str) -> int:
        level = logging.getLevelName(log_level.upper())
        if not isinstance(level, int):
            raise ValueError(f"Unknown log level: {log_level}")
        return level

    @staticmethod
    def _quiet_third_party(level: int) -> None:
        for name in NOISY_LOGGERS:
            logging.getLogger(name).setLevel(level if level <= logging.DEBUG else logging.WARNING)


log_config = LogConfig()
