"""Leaderboard API routes."""

from fastapi import APIRouter, Depends, Query

from predictduel.api.dependencies import get_app_settings, get_services
from predictduel.config import Settings
from predictduel.services.leaderboard_service import DEFAULT_SORT, LeaderboardPage
from predictduel.services.registry import ServiceRegistry

router = APIRouter(prefix="/api/leaderboard", tags=["Leaderboard"])


@router.get("", response_model=LeaderboardPage)
async def get_leaderboard(
    sort_by: str = Query(DEFAULT_SORT, alias="sortBy"),
    skip: int = Query(0, ge=0),
    limit: int | None = Query(None, ge=1),
    user_id: str | None = None,
    services: ServiceRegistry = Depends(get_services),
    settings: Settings = Depends(get_app_settings),
):
    """Users ranked by lifetime stats, plus the caller's rank when user_id is given."""
    page_size = min(limit or settings.api.default_page_size, settings.api.max_page_size)
    return await services.leaderboard.get_leaderboard(
        sort_by=sort_by, skip=skip, limit=page_size, user_id=user_id
    )
