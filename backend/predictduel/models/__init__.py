"""Domain models for duels, users and notifications."""

from .base import TimestampMixin, utcnow
from .duel import (
    CATEGORIES,
    Category,
    Duel,
    DuelStatus,
    DuelType,
    Money,
    Participant,
    Prediction,
    UNRESOLVED_STATUSES,
    generate_id,
)
from .notification import Notification, NotificationType
from .user import PublicUser, User, UserStats

__all__ = [
    "TimestampMixin",
    "utcnow",
    "CATEGORIES",
    "Category",
    "Duel",
    "DuelStatus",
    "DuelType",
    "Money",
    "Participant",
    "Prediction",
    "UNRESOLVED_STATUSES",
    "generate_id",
    "Notification",
    "NotificationType",
    "PublicUser",
    "User",
    "UserStats",
]
