"""Leaderboard rankings over users' lifetime stats."""

import logging

from pydantic import BaseModel

from predictduel.database import UserRepository
from predictduel.models import Money, User

logger = logging.getLogger(__name__)

# Primary key first, then tie-breaks
SORT_ORDERS: dict[str, list[str]] = {
    "totalEarned": ["stats.total_earned", "stats.win_rate", "stats.wins"],
    "wins": ["stats.wins", "stats.win_rate", "stats.total_earned"],
    "winRate": ["stats.win_rate", "stats.wins", "stats.total_earned"],
    "currentStreak": ["stats.current_streak", "stats.wins", "stats.total_earned"],
}
DEFAULT_SORT = "totalEarned"


class LeaderboardEntry(BaseModel):
    rank: int
    user_id: str
    username: str
    wallet_address: str | None = None
    wins: int
    losses: int
    win_rate: float
    total_earned: Money
    current_streak: int
    best_streak: int

    @classmethod
    def from_user(cls, rank: int, user: User) -> "LeaderboardEntry":
        return cls(
            rank=rank,
            user_id=user.id,
            username=user.username,
            wallet_address=user.wallet_address,
            wins=user.stats.wins,
            losses=user.stats.losses,
            win_rate=user.stats.win_rate,
            total_earned=user.stats.total_earned,
            current_streak=user.stats.current_streak,
            best_streak=user.stats.best_streak,
        )


class LeaderboardPage(BaseModel):
    entries: list[LeaderboardEntry]
    sort_by: str
    user_rank: int | None = None


class LeaderboardService:
    def __init__(self, users: UserRepository):
        self.users = users

    async def get_leaderboard(
        self,
        sort_by: str = DEFAULT_SORT,
        skip: int = 0,
        limit: int = 50,
        user_id: str | None = None,
    ) -> LeaderboardPage:
        if sort_by not in SORT_ORDERS:
            logger.info(f"Unknown leaderboard sort {sort_by!r}, using {DEFAULT_SORT}")
            sort_by = DEFAULT_SORT
        keys = SORT_ORDERS[sort_by]

        users = await self.users.leaderboard(keys, skip=skip, limit=limit)
        entries = [
            LeaderboardEntry.from_user(skip + index, user)
            for index, user in enumerate(users, 1)
        ]

        user_rank = None
        if user_id:
            user = await self.users.get(user_id)
            if user is not None:
                user_rank = await self.rank_of(user, keys)

        return LeaderboardPage(entries=entries, sort_by=sort_by, user_rank=user_rank)

    async def rank_of(self, user: User, keys: list[str]) -> int:
        """1 + number of users strictly ahead under the same ordering."""
        return await self.users.count_ahead(user, keys) + 1
