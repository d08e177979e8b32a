from fastapi import APIRouter, Depends, Query
from typing import Annotated, Optional

from app.api.deps import SessionDep, ClockDep
from app.config import settings
from app.services.heatmap import HeatmapService
from app.services.statistics import StatisticsService

router = APIRouter()


def get_statistics_service(db: SessionDep, clock: ClockDep) -> StatisticsService:
    return StatisticsService(db, clock)


StatsServiceDep = Annotated[StatisticsService, Depends(get_statistics_service)]


@router.get("/")
async def get_dashboard(
        service: StatsServiceDep,
        months: Annotated[int, Query(ge=1, le=120)] = settings.heatmap_months
):
    """
    Reading dashboard: library counts, page totals, streaks and the heatmap
    for the trailing ``months``. Read-only, degrades to empty data on errors.
    """
    return service.get_dashboard_payload(months)


@router.get("/heatmap")
async def get_heatmap(
        db: SessionDep,
        clock: ClockDep,
        months: Annotated[Optional[int], Query(ge=1, le=120)] = None
):
    """Pages read per day (YYYY-MM-DD -> pages). Whole history unless ``months`` is given."""
    heatmap = HeatmapService(db, clock).fetch_heatmap(months)
    return {day.isoformat(): pages for day, pages in heatmap.items()}


@router.get("/streak")
async def get_streak(service: StatsServiceDep):
    return service.get_streaks()
