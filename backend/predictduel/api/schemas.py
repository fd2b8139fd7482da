"""Request and response schemas for the HTTP API."""

from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field

from predictduel.models import Duel, Money, Notification, PublicUser


class BaseSchema(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class CreateUserRequest(BaseSchema):
    privy_id: str
    wallet_address: str | None = None
    username: str | None = None


class CreateDuelRequest(BaseSchema):
    privy_id: str
    question: str
    category: str | None = None
    stake: Decimal
    deadline: datetime
    prediction: str | None = None
    duel_type: str = "public"
    challenged_user_id: str | None = None
    market_pda: str | None = None
    tx_signature: str | None = None


class BetRequest(BaseSchema):
    privy_id: str
    prediction: str | None = None
    stake: Decimal
    tx_signature: str | None = None


class ResolveRequest(BaseSchema):
    privy_id: str
    outcome: str | None = None
    tx_signature: str | None = None


class ClaimRequest(BaseSchema):
    privy_id: str
    tx_signature: str | None = None


class CancelRequest(BaseSchema):
    privy_id: str


class MarkReadRequest(BaseSchema):
    privy_id: str
    notification_id: str | None = None
    mark_all: bool = False


class UpdateProfileRequest(BaseSchema):
    privy_id: str
    username: str | None = None
    wallet_address: str | None = None


class UserSearchResponse(BaseSchema):
    users: list[PublicUser]
    count: int


class DuelSummary(BaseSchema):
    id: str
    question: str
    category: str
    stake: Money
    deadline: datetime
    status: str
    outcome: str | None
    pool_size: Money
    yes_count: int
    no_count: int
    market_pda: str | None
    creator_id: str
    participants: int
    created_at: datetime

    @classmethod
    def from_duel(cls, duel: Duel) -> "DuelSummary":
        return cls(
            id=duel.id,
            question=duel.question,
            category=duel.category,
            stake=duel.stake,
            deadline=duel.deadline,
            status=duel.status,
            outcome=duel.outcome,
            pool_size=duel.pool_size,
            yes_count=duel.yes_count,
            no_count=duel.no_count,
            market_pda=duel.market_pda,
            creator_id=duel.creator_id,
            participants=len(duel.participants),
            created_at=duel.created_at,
        )


class DuelListResponse(BaseSchema):
    duels: list[DuelSummary]
    count: int


class NotificationListResponse(BaseSchema):
    notifications: list[Notification]
    unread_count: int


class MarkReadResponse(BaseSchema):
    updated: int = Field(ge=0)
