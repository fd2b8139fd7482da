"""Profile API routes for the signed-in user."""

from fastapi import APIRouter, Depends

from predictduel.api.dependencies import get_services
from predictduel.api.schemas import UpdateProfileRequest
from predictduel.models import PublicUser
from predictduel.services.profile_service import Profile
from predictduel.services.registry import ServiceRegistry

router = APIRouter(prefix="/api/profile", tags=["Profile"])


@router.get("", response_model=Profile)
async def get_profile(privy_id: str, services: ServiceRegistry = Depends(get_services)):
    """Stats, recent duels with opponent and result, and created duels."""
    return await services.profiles.get_profile(privy_id)


@router.put("", response_model=PublicUser)
async def update_profile(
    body: UpdateProfileRequest, services: ServiceRegistry = Depends(get_services)
):
    return await services.profiles.update_profile(
        body.privy_id, username=body.username, wallet_address=body.wallet_address
    )
