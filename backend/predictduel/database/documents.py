"""Beanie documents: the domain models bound to their MongoDB collections."""

import pymongo
from pymongo import IndexModel

from predictduel.models import Duel, Notification, User

from .base import BaseDocument


class DuelDocument(Duel, BaseDocument):
    class Settings(BaseDocument.Settings):
        name = "duels"
        indexes = [
            IndexModel([("status", pymongo.ASCENDING), ("deadline", pymongo.ASCENDING)]),
            IndexModel([("creator_id", pymongo.ASCENDING), ("created_at", pymongo.DESCENDING)]),
            IndexModel([("category", pymongo.ASCENDING), ("status", pymongo.ASCENDING)]),
            IndexModel([("participants.user_id", pymongo.ASCENDING)]),
        ]


class UserDocument(User, BaseDocument):
    class Settings(BaseDocument.Settings):
        name = "users"
        indexes = [
            IndexModel([("privy_id", pymongo.ASCENDING)], unique=True),
            IndexModel([("username", pymongo.ASCENDING)]),
            IndexModel([("stats.total_earned", pymongo.DESCENDING)]),
            IndexModel([("stats.win_rate", pymongo.DESCENDING)]),
            IndexModel([("stats.current_streak", pymongo.DESCENDING)]),
        ]


class NotificationDocument(Notification, BaseDocument):
    class Settings(BaseDocument.Settings):
        name = "notifications"
        indexes = [
            IndexModel(
                [
                    ("user_id", pymongo.ASCENDING),
                    ("read", pymongo.ASCENDING),
                    ("created_at", pymongo.DESCENDING),
                ]
            ),
        ]


DOCUMENT_MODELS = [DuelDocument, UserDocument, NotificationDocument]
