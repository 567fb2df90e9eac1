"""
Configuration variables and fixtures for the service layer tests.
"""

from datetime import timedelta
from decimal import Decimal

import pytest
import pytest_asyncio

from grouplearn.config.settings import Settings
from grouplearn.service import lifecycle as lifecycle_service
from grouplearn.service.membership import StaticMembership
from grouplearn.service.notifications import RecordingNotificationSink
from grouplearn.service.store import MemoryRequestStore, SQLRequestStore


@pytest.fixture
def settings():
    return Settings(write_retry_backoff=timedelta(0), run_scheduler=False)


@pytest.fixture
def store():
    return MemoryRequestStore()


@pytest.fixture
def membership(group_id, users):
    return StaticMembership({group_id: set(users[:8])})


@pytest.fixture
def sink():
    return RecordingNotificationSink()


class Clock:
    """
    A controllable clock.
    """

    def __init__(self, now):
        self.now = now

    def __call__(self):
        return self.now

    def advance(self, delta: timedelta):
        self.now += delta


@pytest.fixture
def clock(now):
    return Clock(now)


@pytest_asyncio.fixture(loop_scope="session")
async def request_id(group_id, users, store, membership, logger, clock):
    request = await lifecycle_service.create(
        group_id=group_id,
        creator_id=users[0],
        title="Organic chemistry: reaction mechanisms",
        description="Walk through SN1/SN2 before the exam.",
        rate=Decimal("200"),
        store=store,
        membership=membership,
        log=logger,
        clock=clock,
    )
    return request.request_id


@pytest_asyncio.fixture(scope="session", loop_scope="session")
async def sql_store(server_settings, database):
    manager = server_settings.async_manager()
    yield SQLRequestStore(manager=manager)
    await manager.dispose()
