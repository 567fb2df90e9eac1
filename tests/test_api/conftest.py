"""
Fixtures for the HTTP API tests. The app is driven with in-memory
collaborators; the lifespan (schema creation, scheduler) is not started.
"""

from datetime import timedelta

import pytest
from fastapi.testclient import TestClient

from grouplearn.api import dependencies
from grouplearn.api.app import app
from grouplearn.config.settings import Settings
from grouplearn.service.membership import StaticMembership
from grouplearn.service.notifications import RecordingNotificationSink
from grouplearn.service.store import MemoryRequestStore


@pytest.fixture
def sink():
    return RecordingNotificationSink()


@pytest.fixture
def client(group_id, users, sink):
    store = MemoryRequestStore()
    membership = StaticMembership({group_id: set(users[:8])})
    settings = Settings(write_retry_backoff=timedelta(0), run_scheduler=False)

    app.dependency_overrides[dependencies.get_store] = lambda: store
    app.dependency_overrides[dependencies.get_membership] = lambda: membership
    app.dependency_overrides[dependencies.get_sink] = lambda: sink
    app.dependency_overrides[dependencies.SETTINGS] = lambda: settings

    yield TestClient(app)

    app.dependency_overrides.clear()
