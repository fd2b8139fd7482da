"""User profile and lifetime duel statistics."""

from decimal import Decimal

from pydantic import BaseModel, Field

from .base import TimestampMixin
from .duel import Money, generate_id


class UserStats(BaseModel):
    """Lifetime counters maintained incrementally per resolved duel."""

    wins: int = 0
    losses: int = 0
    total_earned: Money = Decimal("0")
    win_rate: float = 0.0
    current_streak: int = 0
    best_streak: int = 0

    @property
    def games(self) -> int:
        return self.wins + self.losses


class User(TimestampMixin):
    id: str = Field(default_factory=lambda: generate_id("user"))
    # Login identity; never returned by public endpoints
    privy_id: str
    username: str = Field(min_length=3, max_length=30)
    wallet_address: str | None = None
    stats: UserStats = Field(default_factory=UserStats)

    @property
    def has_activity(self) -> bool:
        return self.stats.games > 0 or self.stats.total_earned > 0


class PublicUser(BaseModel):
    """A user as other people see it."""

    id: str
    username: str
    wallet_address: str | None = None
    stats: UserStats

    @classmethod
    def from_user(cls, user: User) -> "PublicUser":
        return cls(
            id=user.id,
            username=user.username,
            wallet_address=user.wallet_address,
            stats=user.stats,
        )
