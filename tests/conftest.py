"""Shared fixtures for activity_timer tests."""

from datetime import datetime

import pytest

from activity_timer.config import TimerSettings
from activity_timer.db import open_store
from activity_timer.repositories import ActivityRepository, JobRepository
from activity_timer.service import ActivityService, JobService


class FakeClock:
    """Callable clock whose current time tests can move."""

    def __init__(self, now: datetime) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now


@pytest.fixture
def store():
    """In-memory store, closed after the test."""
    store = open_store(":memory:")
    yield store
    store.close()


@pytest.fixture
def activity_repo(store):
    return ActivityRepository(store)


@pytest.fixture
def job_repo(store):
    return JobRepository(store)


@pytest.fixture
def clock():
    return FakeClock(datetime(2024, 3, 4, 12, 0))


@pytest.fixture
def settings():
    return TimerSettings(rounding_minutes=15, default_duration_minutes=90)


@pytest.fixture
def service(activity_repo, settings, clock):
    return ActivityService(activity_repo, settings, clock=clock)


@pytest.fixture
def job_service(job_repo):
    return JobService(job_repo)
