"""User-facing profile reads and edits, plus username search."""

import logging
from collections import Counter
from datetime import datetime
from decimal import Decimal
from typing import Callable, Literal

from pydantic import BaseModel, ValidationError

from predictduel.database import DuelRepository, UserRepository
from predictduel.exceptions import InvalidInputError, InvalidStateError, NotFoundError
from predictduel.models import Duel, Money, PublicUser, User, utcnow

logger = logging.getLogger(__name__)

PROFILE_DUEL_LIMIT = 20

DuelResult = Literal["won", "lost", "active", "pending", "resolving", "cancelled"]


class ProfileDuel(BaseModel):
    """One duel as it appears on a user's profile."""

    id: str
    question: str
    category: str
    status: str
    opponent: str
    result: DuelResult
    stake: Money
    date: datetime


class CategoryShare(BaseModel):
    label: str
    value: int


class Profile(BaseModel):
    user: PublicUser
    member_since: datetime
    recent_activity: list[ProfileDuel]
    created_duels: list[ProfileDuel]
    created_count: int
    category_stats: list[CategoryShare]


def duel_result(duel: Duel, user_id: str) -> DuelResult:
    if duel.status == "resolved":
        return "won" if any(p.won for p in duel.entries_for(user_id)) else "lost"
    return duel.status  # type: ignore[return-value]


def opponent_id(duel: Duel, user_id: str) -> str:
    """First other participant, or the creator when nobody else joined."""
    other = next((p for p in duel.participants if p.user_id != user_id), None)
    return other.user_id if other is not None else duel.creator_id


def category_shares(duels: list[Duel]) -> list[CategoryShare]:
    """Percentage of resolved duels per category, largest first."""
    counts = Counter(d.category for d in duels if d.status == "resolved")
    total = sum(counts.values())
    shares = [
        CategoryShare(label=category, value=round(count * 100 / total))
        for category, count in counts.items()
    ]
    return sorted(shares, key=lambda s: s.value, reverse=True)


class ProfileService:
    def __init__(
        self,
        duels: DuelRepository,
        users: UserRepository,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.duels = duels
        self.users = users
        self.clock = clock

    async def _require_privy(self, privy_id: str | None) -> User:
        if not privy_id:
            raise InvalidInputError("privy_id is required", reason="missing_privy_id")
        user = await self.users.get_by_privy_id(privy_id)
        if user is None:
            raise NotFoundError("user", privy_id)
        return user

    async def search_users(
        self, text: str | None, skip: int = 0, limit: int = 20
    ) -> list[PublicUser]:
        """Users whose username contains ``text``; empty text matches nobody."""
        if not text or not text.strip():
            return []
        users = await self.users.search(text.strip(), skip=skip, limit=limit)
        return [PublicUser.from_user(u) for u in users]

    async def _profile_duels(self, duels: list[Duel], user: User) -> list[ProfileDuel]:
        opponents = {d.id: opponent_id(d, user.id) for d in duels}
        names = await self.users.get_many(opponents.values())

        entries = []
        for duel in duels:
            other = names.get(opponents[duel.id])
            entries.append(
                ProfileDuel(
                    id=duel.id,
                    question=duel.question,
                    category=duel.category,
                    status=duel.status,
                    opponent=other.username if other is not None else "Unknown",
                    result=duel_result(duel, user.id),
                    stake=sum((p.stake for p in duel.entries_for(user.id)), Decimal("0")),
                    date=duel.updated_at,
                )
            )
        return entries

    async def get_profile(self, privy_id: str | None) -> Profile:
        user = await self._require_privy(privy_id)

        joined = await self.duels.for_participant(user.id, limit=PROFILE_DUEL_LIMIT)
        created = await self.duels.created_by(user.id, limit=PROFILE_DUEL_LIMIT)
        resolved = await self.duels.find_resolved_for_user(user.id)

        return Profile(
            user=PublicUser.from_user(user),
            member_since=user.created_at,
            recent_activity=await self._profile_duels(joined, user),
            created_duels=await self._profile_duels(created, user),
            created_count=await self.duels.count_created_by(user.id),
            category_stats=category_shares(resolved),
        )

    async def update_profile(
        self,
        privy_id: str | None,
        username: str | None = None,
        wallet_address: str | None = None,
    ) -> PublicUser:
        """Change username and/or wallet; fields left as None are kept."""
        user = await self._require_privy(privy_id)

        changes: dict = {}
        if username is not None:
            changes["username"] = username.strip()
        if wallet_address is not None:
            changes["wallet_address"] = wallet_address.strip() or None
        if not changes:
            return PublicUser.from_user(user)

        try:
            User.model_validate({**user.model_dump(), **changes})
        except ValidationError as e:
            raise InvalidInputError(
                "Username must be 3-30 characters", reason="invalid_username"
            ) from e

        updated = user.model_copy(update={**changes, "updated_at": self.clock()})
        stored = await self.users.commit(user, updated)
        if stored is None:
            raise InvalidStateError(
                "Profile changed while updating, please retry", reason="conflict"
            )
        logger.info(f"Updated profile for user {user.id}: {sorted(changes)}")
        return PublicUser.from_user(stored)
