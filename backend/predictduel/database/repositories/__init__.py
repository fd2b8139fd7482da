"""Repositories: the queries and conditional writes the services rely on."""

from .duels import DuelRepository
from .notifications import NotificationRepository
from .users import ACTIVE_USERS_FILTER, UserRepository, stat_value

__all__ = [
    "ACTIVE_USERS_FILTER",
    "DuelRepository",
    "NotificationRepository",
    "UserRepository",
    "stat_value",
]
