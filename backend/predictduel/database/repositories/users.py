"""User persistence through Beanie."""

import logging
import re
from decimal import Decimal
from typing import Any, Iterable
from uuid import uuid4

import pymongo
from beanie import UpdateResponse
from beanie.odm.operators.update.general import SetRevisionId
from beanie.operators import In, Set

from predictduel.database.documents import UserDocument
from predictduel.exceptions import NotFoundError
from predictduel.models import User

from .base import revision_of, to_decimal, update_fields

logger = logging.getLogger(__name__)

ACTIVE_USERS_FILTER: dict[str, Any] = {
    "$or": [
        {"stats.wins": {"$gt": 0}},
        {"stats.losses": {"$gt": 0}},
        {"stats.total_earned": {"$gt": Decimal("0")}},
    ]
}


def stat_value(user: User, path: str) -> Any:
    """Value of a 'stats.<field>' path on a user."""
    return getattr(user.stats, path.split(".", 1)[1])


class UserRepository:
    async def get(self, user_id: str) -> User | None:
        return await UserDocument.get(user_id)

    async def require(self, user_id: str) -> User:
        user = await self.get(user_id)
        if user is None:
            raise NotFoundError("user", user_id)
        return user

    async def get_by_privy_id(self, privy_id: str) -> User | None:
        return await UserDocument.find_one(UserDocument.privy_id == privy_id)

    async def get_many(self, user_ids: Iterable[str]) -> dict[str, User]:
        ids = list(set(user_ids))
        if not ids:
            return {}
        users = await UserDocument.find(In(UserDocument.id, ids)).to_list()
        return {user.id: user for user in users}

    async def insert(self, user: User) -> User:
        document = UserDocument.model_validate(user.model_dump())
        await document.insert()
        return document

    async def commit(self, current: User, updated: User) -> User | None:
        """Write ``updated`` if nobody wrote the user since ``current`` was read."""
        stored = await UserDocument.find_one(
            UserDocument.id == current.id,
            UserDocument.revision_id == revision_of(current),
        ).update(
            Set(update_fields(updated)),
            SetRevisionId(uuid4()),
            response_type=UpdateResponse.NEW_DOCUMENT,
        )
        if stored is None:
            logger.info(f"Conditional write rejected for user {current.id}")
        return stored

    async def search(self, text: str, skip: int = 0, limit: int = 20) -> list[User]:
        """Case-insensitive username substring match, top earners first."""
        pattern = re.escape(text)
        return (
            await UserDocument.find({"username": {"$regex": pattern, "$options": "i"}})
            .sort(
                ("stats.total_earned", pymongo.DESCENDING),
                ("created_at", pymongo.DESCENDING),
            )
            .skip(skip)
            .limit(limit)
            .to_list()
        )

    async def leaderboard(self, keys: list[str], skip: int = 0, limit: int = 50) -> list[User]:
        """Users with any activity, ordered by ``keys`` descending."""
        sort = [(key, pymongo.DESCENDING) for key in keys] + [("_id", pymongo.ASCENDING)]
        return (
            await UserDocument.find(ACTIVE_USERS_FILTER)
            .sort(*sort)
            .skip(skip)
            .limit(limit)
            .to_list()
        )

    async def count_ahead(self, user: User, keys: list[str]) -> int:
        """Users strictly ahead of ``user`` under the same ordering."""
        clauses = []
        for depth, key in enumerate(keys):
            clause: dict[str, Any] = {k: stat_value(user, k) for k in keys[:depth]}
            clause[key] = {"$gt": stat_value(user, key)}
            clauses.append(clause)
        return await UserDocument.find({"$or": clauses}).count()

    async def streaking(self, min_streak: int, limit: int) -> list[User]:
        return (
            await UserDocument.find({"stats.current_streak": {"$gte": min_streak}})
            .sort(
                ("stats.current_streak", pymongo.DESCENDING),
                ("updated_at", pymongo.DESCENDING),
            )
            .limit(limit)
            .to_list()
        )

    async def top_earners(self, limit: int) -> list[User]:
        return (
            await UserDocument.find({"stats.total_earned": {"$gt": Decimal("0")}})
            .sort(
                ("stats.total_earned", pymongo.DESCENDING),
                ("updated_at", pymongo.DESCENDING),
            )
            .limit(limit)
            .to_list()
        )

    async def total_earned(self) -> Decimal:
        return to_decimal(await UserDocument.find_all().sum("stats.total_earned"))
