"""User-facing notification records."""

from typing import Literal

from pydantic import Field

from .base import TimestampMixin
from .duel import generate_id

NotificationType = Literal[
    "win",
    "challenge",
    "reminder",
    "achievement",
    "system",
    "bet",
    "duel_created",
    "duel_resolved",
]


class Notification(TimestampMixin):
    id: str = Field(default_factory=lambda: generate_id("notif"))
    user_id: str
    type: NotificationType
    title: str
    message: str
    read: bool = False
    action_url: str | None = None
    related_duel_id: str | None = None
    related_user_id: str | None = None
