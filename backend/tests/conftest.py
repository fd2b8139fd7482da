"""Test configuration and fixtures for PredictDuel."""

from datetime import datetime, timedelta, timezone

import pytest

from predictduel.config import Settings
from predictduel.services.registry import Repositories, build_services
from predictduel.services.solana import SolanaConfig

from fakes import (
    FakeDatabase,
    InMemoryDuelRepository,
    InMemoryNotificationRepository,
    InMemoryUserRepository,
)

START = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)


class FakeClock:
    """Callable clock the tests move forward explicitly."""

    def __init__(self, now: datetime = START):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def settings(tmp_path):
    return Settings(
        _env_file=None,
        data_dir=tmp_path,
        solana=SolanaConfig(paper_mode=True),
    )


@pytest.fixture
def repos():
    return Repositories(
        duels=InMemoryDuelRepository(),
        users=InMemoryUserRepository(),
        notifications=InMemoryNotificationRepository(),
    )


@pytest.fixture
def services(settings, repos, clock):
    return build_services(settings, FakeDatabase(), clock=clock, repositories=repos)
