import os
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from fastapi.middleware.cors import CORSMiddleware
import logging
from contextlib import asynccontextmanager
from pathlib import Path

import portalocker

from app.database import engine, Base
from app.config import settings
from app.logging import log_config
from app.core.exceptions import BookNotFoundError, PersistenceError
from app.services.scheduler import scheduler_service

# Registers every table on Base.metadata
from app.models import Book, ReadingSession, UnlockedAchievement  # noqa: F401

# API Routes
from app.api import books, progress, stats, achievements

logger = log_config.setup_logging(settings.log_level)


def _ensure_sqlite_dir(url: str):
    # sqlite:///./storage/database/reading.db -> ./storage/database
    if url.startswith("sqlite:///") and ":memory:" not in url:
        Path(url[len("sqlite:///"):]).parent.mkdir(parents=True, exist_ok=True)


@asynccontextmanager
async def lifespan(app: FastAPI):

    # --- 1. GLOBAL SETUP (Run on ALL Uvicorn Workers) ---
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)

    settings.log_dir.mkdir(parents=True, exist_ok=True)
    settings.cache_dir.mkdir(parents=True, exist_ok=True)
    _ensure_sqlite_dir(settings.database_url)

    Base.metadata.create_all(bind=engine)

    logger = log_config.setup_logging(settings.log_level)
    worker_pid = os.getpid()
    logger.info(f"Worker process PID:{worker_pid} startup (Log Level: {settings.log_level}, TZ: {settings.timezone})")

    # --- 2. SINGLETON SETUP (Run ONLY on one process) ---
    # The scheduler must not run once per worker, or reminders go out N times.
    lock_file_path = settings.cache_dir / "scheduler.lock"
    lock_file = open(lock_file_path, "w")
    is_manager = False

    if settings.scheduler_enabled:
        try:
            portalocker.lock(lock_file, portalocker.LOCK_EX | portalocker.LOCK_NB)
            is_manager = True
            logger.info(f"Worker {worker_pid} acquired Manager Lock. Starting Scheduler...")
            scheduler_service.start()
        except portalocker.LockException:
            logger.info(f"Worker {worker_pid} could not acquire lock. Skipping scheduler.")

    yield

    # --- SHUTDOWN ---
    logger.info(f"Worker {worker_pid} shutting down...")

    if is_manager:
        scheduler_service.stop()
        try:
            portalocker.unlock(lock_file)
        except portalocker.LockException as e:
            logger.error(f"Error releasing lock: {e}")

    lock_file.close()


app = FastAPI(
    title=settings.app_name,
    version=settings.version,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(BookNotFoundError)
async def book_not_found_handler(request: Request, exc: BookNotFoundError):
    return JSONResponse(status_code=404, content={"detail": str(exc)})


@app.exception_handler(PersistenceError)
async def persistence_error_handler(request: Request, exc: PersistenceError):
    # Reported to the user, not retried. The route already rolled back.
    logger.error(f"Persistence failure on {request.url.path}: {exc}")
    return JSONResponse(status_code=500, content={"error": "Could not save your changes. Please try again."})


@app.exception_handler(Exception)
async def general_exception_handler(request: Request, exc: Exception):
    logger.error(f"Unexpected error: {exc}", exc_info=True)
    return JSONResponse(
        status_code=500,
        content={"error": "Internal server error"}
    )


# --- ROUTER REGISTRATION ---
app.include_router(books.router, prefix="/api/books", tags=["books"])
app.include_router(progress.router, prefix="/api/progress", tags=["progress"])
app.include_router(stats.router, prefix="/api/stats", tags=["stats"])
app.include_router(achievements.router, prefix="/api/achievements", tags=["achievements"])


# Health check endpoint
@app.get("/health")
async def health_check():
    """Health check endpoint"""
    return {"status": "healthy", "service": "bookmark"}
