import os

# Settings are read once at import; keep the limiter out of API tests.
os.environ.setdefault("RATE_LIMIT_ENABLED", "false")

import pytest

from factories import (
    FakeGroupRepository,
    FakeNotifier,
    FakePoolRequestRepository,
    FakeUserService,
)
from app.services.group_registry import GroupRegistry
from app.services.match_engine import MatchEngine
from app.services.pool_request_registry import PoolRequestRegistry


@pytest.fixture
def group_repo():
    return FakeGroupRepository()


@pytest.fixture
def pool_repo():
    return FakePoolRequestRepository()


@pytest.fixture
def notifier():
    return FakeNotifier()


@pytest.fixture
def user_service():
    return FakeUserService()


@pytest.fixture
def group_registry(group_repo, notifier):
    return GroupRegistry(repository=group_repo, notifier=notifier)


@pytest.fixture
def pool_registry(pool_repo, notifier):
    return PoolRequestRegistry(repository=pool_repo, notifier=notifier)


@pytest.fixture
def engine(pool_repo, group_repo, user_service):
    return MatchEngine(
        pool_repository=pool_repo,
        group_repository=group_repo,
        user_service=user_service,
        time_window_minutes=25,
        pool_min_score=0.0,
        group_min_score=30.0,
    )
