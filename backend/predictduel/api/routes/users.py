"""User API routes."""

from fastapi import APIRouter, Depends, Query

from predictduel.api.dependencies import get_app_settings, get_services
from predictduel.api.schemas import CreateUserRequest, UserSearchResponse
from predictduel.config import Settings
from predictduel.models import PublicUser
from predictduel.services.registry import ServiceRegistry

router = APIRouter(prefix="/api/users", tags=["Users"])


@router.post("", response_model=PublicUser)
async def create_user(
    body: CreateUserRequest, services: ServiceRegistry = Depends(get_services)
):
    """Return the user for a Privy id, creating it on first sight."""
    user = await services.duels.get_or_create_user(
        body.privy_id, wallet_address=body.wallet_address, username=body.username
    )
    return PublicUser.from_user(user)


@router.get("/search", response_model=UserSearchResponse)
async def search_users(
    search: str | None = None,
    skip: int = Query(0, ge=0),
    limit: int = Query(20, ge=1),
    services: ServiceRegistry = Depends(get_services),
    settings: Settings = Depends(get_app_settings),
):
    """Users whose username contains the search text, top earners first."""
    users = await services.profiles.search_users(
        search, skip=skip, limit=min(limit, settings.api.max_page_size)
    )
    return UserSearchResponse(users=users, count=len(users))


@router.get("/{user_id}", response_model=PublicUser)
async def get_user(user_id: str, services: ServiceRegistry = Depends(get_services)):
    return PublicUser.from_user(await services.duels.get_user(user_id))


@router.post("/{user_id}/reconcile", response_model=PublicUser)
async def reconcile_user(user_id: str, services: ServiceRegistry = Depends(get_services)):
    """Recompute a user's stats from every resolved duel they joined."""
    return PublicUser.from_user(await services.settlement.reconcile_user_stats(user_id))
