"""Duel API routes."""

from fastapi import APIRouter, Depends, Query

from predictduel.api.dependencies import get_app_settings, get_services
from predictduel.api.schemas import (
    BetRequest,
    CancelRequest,
    ClaimRequest,
    CreateDuelRequest,
    DuelListResponse,
    DuelSummary,
    ResolveRequest,
)
from predictduel.config import Settings
from predictduel.models import Duel
from predictduel.services.registry import ServiceRegistry
from predictduel.services.settlement_service import ClaimResult, ResolutionResult

router = APIRouter(prefix="/api/duels", tags=["Duels"])


@router.get("", response_model=DuelListResponse)
async def list_duels(
    status: str = "active",
    category: str | None = None,
    search: str | None = None,
    skip: int = Query(0, ge=0),
    limit: int | None = Query(None, ge=1),
    services: ServiceRegistry = Depends(get_services),
    settings: Settings = Depends(get_app_settings),
):
    """List public duels (active, resolved, all, or a specific status)."""
    page_size = min(limit or settings.api.default_page_size, settings.api.max_page_size)
    duels = await services.duels.list_duels(
        status=status, category=category, search=search, skip=skip, limit=page_size
    )
    summaries = [DuelSummary.from_duel(d) for d in duels]
    return DuelListResponse(duels=summaries, count=len(summaries))


@router.post("", response_model=Duel, status_code=201)
async def create_duel(
    body: CreateDuelRequest, services: ServiceRegistry = Depends(get_services)
):
    caller = await services.duels.user_for_privy_id(body.privy_id)
    return await services.duels.create_duel(
        creator_id=caller.id,
        question=body.question,
        category=body.category,
        stake=body.stake,
        deadline=body.deadline,
        prediction=body.prediction,
        duel_type=body.duel_type,
        challenged_user_id=body.challenged_user_id,
        market_pda=body.market_pda,
        tx_signature=body.tx_signature,
    )


@router.get("/{duel_id}", response_model=Duel)
async def get_duel(duel_id: str, services: ServiceRegistry = Depends(get_services)):
    return await services.duels.get_duel(duel_id)


@router.post("/{duel_id}/bet", response_model=Duel)
async def place_bet(
    duel_id: str, body: BetRequest, services: ServiceRegistry = Depends(get_services)
):
    caller = await services.duels.user_for_privy_id(body.privy_id)
    return await services.duels.place_bet(
        duel_id, caller.id, body.prediction, body.stake, body.tx_signature
    )


@router.post("/{duel_id}/resolve", response_model=ResolutionResult)
async def resolve_duel(
    duel_id: str, body: ResolveRequest, services: ServiceRegistry = Depends(get_services)
):
    """Creator declares the outcome after the deadline; payouts are computed here."""
    caller = await services.duels.user_for_privy_id(body.privy_id)
    return await services.settlement.resolve(
        duel_id, caller.id, body.outcome, body.tx_signature
    )


@router.post("/{duel_id}/claim", response_model=ClaimResult)
async def claim_winnings(
    duel_id: str, body: ClaimRequest, services: ServiceRegistry = Depends(get_services)
):
    caller = await services.duels.user_for_privy_id(body.privy_id)
    return await services.settlement.claim(duel_id, caller.id, body.tx_signature)


@router.post("/{duel_id}/cancel", response_model=Duel)
async def cancel_duel(
    duel_id: str, body: CancelRequest, services: ServiceRegistry = Depends(get_services)
):
    caller = await services.duels.user_for_privy_id(body.privy_id)
    return await services.duels.cancel_duel(duel_id, caller.id)
