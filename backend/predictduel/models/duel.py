"""Duel aggregate and its participant entries."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Annotated, Literal
from uuid import uuid4

from beanie import DecimalAnnotation
from pydantic import BaseModel, Field, PlainSerializer

from .base import TimestampMixin, utcnow

# Decimal in Python, Decimal128 in MongoDB, a JSON number over HTTP
Money = Annotated[
    DecimalAnnotation,
    PlainSerializer(lambda v: float(v), return_type=float, when_used="json"),
]

DuelStatus = Literal["pending", "active", "resolving", "resolved", "cancelled"]
Prediction = Literal["yes", "no"]
DuelType = Literal["public", "friend"]
Category = Literal["Crypto", "Weather", "Sports", "Meme", "Local", "Other"]

CATEGORIES: tuple[str, ...] = ("Crypto", "Weather", "Sports", "Meme", "Local", "Other")
UNRESOLVED_STATUSES: tuple[str, ...] = ("pending", "active")


def generate_id(prefix: str) -> str:
    """Generate a prefixed document id (e.g. 'duel_1a2b3c4d5e6f')."""
    return f"{prefix}_{uuid4().hex[:12]}"


class Participant(BaseModel):
    """One user's position within a duel."""

    id: str = Field(default_factory=lambda: generate_id("part"))
    user_id: str
    prediction: Prediction
    stake: Money = Field(gt=0)
    won: bool = False
    payout: Money | None = None
    claimed: bool = False
    claim_signature: str | None = None
    # Set once this duel has been folded into the user's lifetime stats
    stats_applied: bool = False
    tx_signatures: list[str] = Field(default_factory=list)
    joined_at: datetime = Field(default_factory=utcnow)


class Duel(TimestampMixin):
    """A yes/no prediction market with a shared pool."""

    id: str = Field(default_factory=lambda: generate_id("duel"))
    creator_id: str
    question: str = Field(min_length=1, max_length=200)
    category: Category = "Other"
    duel_type: DuelType = "public"
    challenged_user_id: str | None = None
    stake: Money = Field(ge=Decimal("0.01"))
    deadline: datetime
    status: DuelStatus = "pending"
    outcome: Prediction | None = None
    pool_size: Money = Decimal("0")
    yes_count: int = 0
    no_count: int = 0
    participants: list[Participant] = Field(default_factory=list)
    market_pda: str | None = None
    tx_signature: str | None = None
    resolution_signature: str | None = None
    resolved_at: datetime | None = None

    @property
    def is_unresolved(self) -> bool:
        return self.status in UNRESOLVED_STATUSES

    @property
    def total_stakes(self) -> Decimal:
        return sum((p.stake for p in self.participants), Decimal("0"))

    def participant(self, participant_id: str) -> Participant | None:
        return next((p for p in self.participants if p.id == participant_id), None)

    def entries_for(self, user_id: str) -> list[Participant]:
        """All participant entries held by a user (one per side at most)."""
        return [p for p in self.participants if p.user_id == user_id]

    def has_participant(self, user_id: str) -> bool:
        return any(p.user_id == user_id for p in self.participants)

    def stats_pending_for(self, user_id: str) -> bool:
        return any(not p.stats_applied for p in self.entries_for(user_id))
