"""
Core configuration
"""

from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest
import structlog

from grouplearn.config.settings import Settings
from grouplearn.core.request import GroupRequestData, RequestStatus
from grouplearn.core.uuid import UUID, uuid7

NOW = datetime(2025, 3, 1, 12, 0, tzinfo=timezone.utc)


@pytest.fixture(scope="session")
def database_file(tmp_path_factory):
    yield tmp_path_factory.mktemp("database") / "grouplearn.db"


@pytest.fixture(scope="session")
def server_settings(database_file):
    yield Settings(
        database_type="sqlite",
        database_db=str(database_file),
        write_retry_backoff=timedelta(0),
        run_scheduler=False,
    )


@pytest.fixture(scope="session")
def database(server_settings: Settings):
    server_settings.sync_manager().create_all()


@pytest.fixture(scope="session")
def logger():
    yield structlog.get_logger()


@pytest.fixture
def now():
    return NOW


@pytest.fixture
def group_id() -> UUID:
    return uuid7()


@pytest.fixture
def users() -> list[UUID]:
    """
    Ten user ids. users[0] creates requests in the tests.
    """
    return [uuid7() for _ in range(10)]


@pytest.fixture
def make_request(group_id, users):
    """
    Build a snapshot directly in a given state, bypassing the engine.
    """

    def factory(status: RequestStatus = RequestStatus.PENDING, **kwargs):
        values = dict(
            request_id=uuid7(),
            group_id=group_id,
            creator_id=users[0],
            title="Linear algebra revision",
            status=status,
            rate=Decimal("200"),
            created_at=NOW,
            updated_at=NOW,
        )
        values.update(kwargs)
        return GroupRequestData(**values)

    return factory
