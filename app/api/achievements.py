from fastapi import APIRouter, Depends
from typing import List, Annotated

from app.api.deps import SessionDep, ClockDep, CatalogDep, NotifierDep
from app.core.exceptions import PersistenceError
from app.schemas.achievement import AchievementCheckResponse, AchievementStatus
from app.services.achievements import GamificationService

router = APIRouter()


def get_gamification_service(
        db: SessionDep,
        clock: ClockDep,
        catalog: CatalogDep,
        notifier: NotifierDep,
) -> GamificationService:
    return GamificationService(db, clock, catalog, notifier)


GamificationDep = Annotated[GamificationService, Depends(get_gamification_service)]


@router.get("/", response_model=List[AchievementStatus])
async def list_achievements(service: GamificationDep):
    """Whole catalog in display order, flagged with what has been earned"""
    unlocked = {u.achievement_id: u.unlocked_at for u in service.fetch_unlocked()}

    return [
        AchievementStatus(
            id=definition.id,
            title=definition.title,
            description=definition.description,
            icon=definition.icon,
            unlocked=definition.id in unlocked,
            unlocked_at=unlocked.get(definition.id),
        )
        for definition in service.catalog
    ]


@router.post("/check", response_model=AchievementCheckResponse)
async def check_achievements(service: GamificationDep, db: SessionDep):
    """
    Evaluate every achievement against the reading history.
    New unlocks are persisted once; calling this again is a no-op for them.
    """
    try:
        result = service.check_achievements()
    except PersistenceError:
        db.rollback()
        raise

    return AchievementCheckResponse(
        unlocked=result.unlocked,
        newly_unlocked=result.newly_unlocked,
    )
