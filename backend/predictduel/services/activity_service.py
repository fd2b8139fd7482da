"""Live activity ticker: recent wins, new duels, hot streaks and top earners."""

from datetime import datetime
from typing import Literal

from pydantic import BaseModel

from predictduel.database import DuelRepository, UserRepository
from predictduel.models import Money

STREAK_THRESHOLD = 5
TOP_EARNER_MINIMUM = 1

ActivityType = Literal["win", "duel_created", "streak", "top_earner"]


class Activity(BaseModel):
    type: ActivityType
    message: str
    timestamp: datetime


class ActivityStats(BaseModel):
    total_duels: int
    total_won: Money


class ActivityFeed(BaseModel):
    activities: list[Activity]
    count: int
    stats: ActivityStats


def shorten(text: str, length: int) -> str:
    return text if len(text) <= length else f"{text[:length]}..."


class ActivityService:
    def __init__(
        self,
        duels: DuelRepository,
        users: UserRepository,
        currency_symbol: str = "SOL",
    ):
        self.duels = duels
        self.users = users
        self.currency_symbol = currency_symbol

    async def feed(self, limit: int = 20) -> ActivityFeed:
        """Newest events first, capped at ``limit``, plus site-wide totals.

        Each source gets a share of the limit: all of it for wins, half for
        new duels, a third for streaks and a quarter for top earners.
        """
        activities: list[Activity] = []

        # A zero limit means "no limit" to MongoDB, so empty shares are skipped
        wins = await self.duels.recent_wins(limit) if limit else []
        open_duels = await self.duels.recent_open(limit // 2) if limit // 2 else []
        streaking = (
            await self.users.streaking(STREAK_THRESHOLD, limit // 3) if limit // 3 else []
        )
        earners = await self.users.top_earners(limit // 4) if limit // 4 else []

        names = await self.users.get_many(
            [p.user_id for d in wins for p in d.participants if p.won]
            + [d.creator_id for d in open_duels]
        )

        for duel in wins:
            for entry in duel.participants:
                winner = names.get(entry.user_id)
                if not entry.won or not entry.payout or winner is None:
                    continue
                activities.append(
                    Activity(
                        type="win",
                        message=(
                            f"@{winner.username} just won {entry.payout:.2f} "
                            f"{self.currency_symbol} "
                            f'predicting "{shorten(duel.question, 40)}"!'
                        ),
                        timestamp=duel.updated_at,
                    )
                )

        for duel in open_duels:
            creator = names.get(duel.creator_id)
            if creator is None:
                continue
            activities.append(
                Activity(
                    type="duel_created",
                    message=(
                        f'@{creator.username} created a new duel: "{shorten(duel.question, 50)}"'
                    ),
                    timestamp=duel.created_at,
                )
            )

        for user in streaking:
            activities.append(
                Activity(
                    type="streak",
                    message=f"@{user.username} is on a {user.stats.current_streak}-win streak!",
                    timestamp=user.updated_at,
                )
            )

        for user in earners:
            if user.stats.total_earned <= TOP_EARNER_MINIMUM:
                continue
            activities.append(
                Activity(
                    type="top_earner",
                    message=(
                        f"@{user.username} has earned {user.stats.total_earned:.2f} "
                        f"{self.currency_symbol} total!"
                    ),
                    timestamp=user.updated_at,
                )
            )

        activities.sort(key=lambda a: a.timestamp, reverse=True)
        activities = activities[:limit]

        return ActivityFeed(
            activities=activities,
            count=len(activities),
            stats=ActivityStats(
                total_duels=await self.duels.count_all(),
                total_won=await self.users.total_earned(),
            ),
        )
