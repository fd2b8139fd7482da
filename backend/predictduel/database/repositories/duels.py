"""Duel persistence through Beanie."""

import logging
import re
from datetime import datetime
from typing import Any, Sequence
from uuid import uuid4

import pymongo
from beanie import UpdateResponse
from beanie.odm.operators.update.general import SetRevisionId
from beanie.operators import In, Set

from predictduel.database.documents import DuelDocument
from predictduel.exceptions import NotFoundError
from predictduel.models import Duel, UNRESOLVED_STATUSES

from .base import revision_of, update_fields

logger = logging.getLogger(__name__)


class DuelRepository:
    async def get(self, duel_id: str) -> Duel | None:
        return await DuelDocument.get(duel_id)

    async def require(self, duel_id: str) -> Duel:
        duel = await self.get(duel_id)
        if duel is None:
            raise NotFoundError("duel", duel_id)
        return duel

    async def insert(self, duel: Duel) -> Duel:
        document = DuelDocument.model_validate(duel.model_dump())
        await document.insert()
        return document

    async def commit(
        self, current: Duel, updated: Duel, statuses: Sequence[str]
    ) -> Duel | None:
        """Write ``updated`` if the stored duel is still ``current`` and in ``statuses``.

        Returns the stored duel, or None when someone else wrote first.
        """
        stored = await DuelDocument.find_one(
            DuelDocument.id == current.id,
            DuelDocument.revision_id == revision_of(current),
            In(DuelDocument.status, list(statuses)),
        ).update(
            Set(update_fields(updated)),
            SetRevisionId(uuid4()),
            response_type=UpdateResponse.NEW_DOCUMENT,
        )
        if stored is None:
            logger.warning(f"Conditional write rejected for duel {current.id}")
        return stored

    async def claim_entry(
        self, duel_id: str, participant_id: str, signature: str, now: datetime
    ) -> Duel | None:
        """Flip one winning entry to claimed; None if it is already claimed."""
        return await DuelDocument.find_one(
            {
                "_id": duel_id,
                "status": "resolved",
                "participants": {
                    "$elemMatch": {"id": participant_id, "won": True, "claimed": False}
                },
            }
        ).update(
            {
                "$set": {
                    "participants.$.claimed": True,
                    "participants.$.claim_signature": signature,
                    "updated_at": now,
                }
            },
            SetRevisionId(uuid4()),
            response_type=UpdateResponse.NEW_DOCUMENT,
        )

    async def set_stats_applied(self, duel_id: str, user_id: str, applied: bool = True) -> bool:
        """Mark every entry of ``user_id``; False if they already had that mark."""
        result = await DuelDocument.find_one(
            {
                "_id": duel_id,
                "status": "resolved",
                "participants": {
                    "$elemMatch": {"user_id": user_id, "stats_applied": not applied}
                },
            }
        ).update(
            {"$set": {"participants.$[entry].stats_applied": applied}},
            SetRevisionId(uuid4()),
            array_filters=[{"entry.user_id": user_id}],
        )
        return result is not None and result.modified_count > 0

    async def list_public(
        self,
        status: str,
        category: str | None,
        search: str | None,
        now: datetime,
        skip: int = 0,
        limit: int = 50,
    ) -> list[Duel]:
        """Public duels, newest first. ``status`` may be 'active' or 'all'."""
        query: dict[str, Any] = {"duel_type": "public"}

        if status == "active":
            query["status"] = {"$in": list(UNRESOLVED_STATUSES)}
            query["deadline"] = {"$gt": now}
        elif status != "all":
            query["status"] = status

        if category:
            query["category"] = category

        if search:
            pattern = re.escape(search)
            query["$or"] = [
                {"question": {"$regex": pattern, "$options": "i"}},
                {"category": {"$regex": pattern, "$options": "i"}},
            ]

        return (
            await DuelDocument.find(query)
            .sort(("created_at", pymongo.DESCENDING))
            .skip(skip)
            .limit(limit)
            .to_list()
        )

    async def find_resolved_for_user(self, user_id: str) -> list[Duel]:
        """The user's resolved duels in resolution order."""
        return (
            await DuelDocument.find(
                {"status": "resolved", "participants.user_id": user_id}
            )
            .sort(("resolved_at", pymongo.ASCENDING), ("_id", pymongo.ASCENDING))
            .to_list()
        )

    async def for_participant(self, user_id: str, limit: int = 20) -> list[Duel]:
        return (
            await DuelDocument.find({"participants.user_id": user_id})
            .sort(("updated_at", pymongo.DESCENDING))
            .limit(limit)
            .to_list()
        )

    async def created_by(self, user_id: str, limit: int = 20) -> list[Duel]:
        return (
            await DuelDocument.find(DuelDocument.creator_id == user_id)
            .sort(("created_at", pymongo.DESCENDING))
            .limit(limit)
            .to_list()
        )

    async def count_created_by(self, user_id: str) -> int:
        return await DuelDocument.find(DuelDocument.creator_id == user_id).count()

    async def recent_wins(self, limit: int) -> list[Duel]:
        return (
            await DuelDocument.find({"status": "resolved", "participants.won": True})
            .sort(("updated_at", pymongo.DESCENDING))
            .limit(limit)
            .to_list()
        )

    async def recent_open(self, limit: int) -> list[Duel]:
        return (
            await DuelDocument.find(
                DuelDocument.duel_type == "public",
                In(DuelDocument.status, list(UNRESOLVED_STATUSES)),
            )
            .sort(("created_at", pymongo.DESCENDING))
            .limit(limit)
            .to_list()
        )

    async def count_all(self) -> int:
        return await DuelDocument.count()
