"""Activity feed API routes."""

from fastapi import APIRouter, Depends, Query

from predictduel.api.dependencies import get_services
from predictduel.services.activity_service import ActivityFeed
from predictduel.services.registry import ServiceRegistry

router = APIRouter(prefix="/api/activity", tags=["Activity"])


@router.get("/feed", response_model=ActivityFeed)
async def get_feed(
    limit: int = Query(20, ge=1, le=100),
    services: ServiceRegistry = Depends(get_services),
):
    """Recent wins, new duels, hot streaks and top earners, newest first."""
    return await services.activity.feed(limit=limit)
