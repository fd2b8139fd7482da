"""API routes module."""

from predictduel.api.routes.activity import router as activity_router
from predictduel.api.routes.duels import router as duels_router
from predictduel.api.routes.leaderboard import router as leaderboard_router
from predictduel.api.routes.notifications import router as notifications_router
from predictduel.api.routes.profile import router as profile_router
from predictduel.api.routes.users import router as users_router

__all__ = [
    "activity_router",
    "duels_router",
    "leaderboard_router",
    "notifications_router",
    "profile_router",
    "users_router",
]
