"""Wiring of repositories and services around one database."""

from dataclasses import dataclass
from datetime import datetime
from typing import Callable

from predictduel.config import Settings
from predictduel.database import (
    Database,
    DuelRepository,
    NotificationRepository,
    UserRepository,
)
from predictduel.models import utcnow
from predictduel.services.solana import SolanaClient, TransactionVerifier

from .activity_service import ActivityService
from .duel_service import DuelService
from .leaderboard_service import LeaderboardService
from .notification_service import NotificationService
from .profile_service import ProfileService
from .settlement_service import SettlementService


@dataclass
class Repositories:
    duels: DuelRepository
    users: UserRepository
    notifications: NotificationRepository


@dataclass
class ServiceRegistry:
    database: Database
    solana: SolanaClient
    repositories: Repositories
    duels: DuelService
    settlement: SettlementService
    leaderboard: LeaderboardService
    notifications: NotificationService
    profiles: ProfileService
    activity: ActivityService


def build_services(
    settings: Settings,
    database: Database,
    solana: SolanaClient | None = None,
    clock: Callable[[], datetime] = utcnow,
    repositories: Repositories | None = None,
) -> ServiceRegistry:
    """Build every service; tests pass in-memory ``repositories``."""
    solana = solana or SolanaClient(settings.solana)
    repos = repositories or Repositories(
        duels=DuelRepository(),
        users=UserRepository(),
        notifications=NotificationRepository(),
    )
    currency = settings.settlement.currency_symbol
    notifier = NotificationService(repos.notifications, currency)

    return ServiceRegistry(
        database=database,
        solana=solana,
        repositories=repos,
        duels=DuelService(repos.duels, repos.users, notifier, clock=clock),
        settlement=SettlementService(
            repos.duels,
            repos.users,
            TransactionVerifier(solana),
            notifier,
            config=settings.settlement,
            clock=clock,
        ),
        leaderboard=LeaderboardService(repos.users),
        notifications=notifier,
        profiles=ProfileService(repos.duels, repos.users, clock=clock),
        activity=ActivityService(repos.duels, repos.users, currency),
    )
