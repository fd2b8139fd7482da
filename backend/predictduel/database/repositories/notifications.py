"""Notification persistence through Beanie."""

import pymongo
from beanie.operators import Set

from predictduel.database.documents import NotificationDocument
from predictduel.models import Notification


class NotificationRepository:
    async def insert(self, notification: Notification) -> Notification:
        document = NotificationDocument.model_validate(notification.model_dump())
        await document.insert()
        return document

    async def for_user(self, user_id: str, limit: int = 50) -> list[Notification]:
        return (
            await NotificationDocument.find(NotificationDocument.user_id == user_id)
            .sort(("created_at", pymongo.DESCENDING))
            .limit(limit)
            .to_list()
        )

    async def count_unread(self, user_id: str) -> int:
        return await NotificationDocument.find(
            NotificationDocument.user_id == user_id,
            NotificationDocument.read == False,  # noqa: E712
        ).count()

    async def mark_read(self, user_id: str, notification_id: str) -> bool:
        result = await NotificationDocument.find_one(
            NotificationDocument.id == notification_id,
            NotificationDocument.user_id == user_id,
        ).update(Set({NotificationDocument.read: True}))
        return result is not None and result.matched_count > 0

    async def mark_all_read(self, user_id: str) -> int:
        result = await NotificationDocument.find(
            NotificationDocument.user_id == user_id,
            NotificationDocument.read == False,  # noqa: E712
        ).update(Set({NotificationDocument.read: True}))
        return result.modified_count if result is not None else 0
