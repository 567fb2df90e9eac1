"""
Dependencies used by the API.
"""

from functools import lru_cache
from typing import Annotated

from fastapi import Depends, Header
from structlog import get_logger
from structlog.typing import FilteringBoundLogger

from grouplearn.config.settings import Settings
from grouplearn.core.uuid import UUID
from grouplearn.service.membership import GroupMembershipDirectory, SQLMembership
from grouplearn.service.notifications import LoggingNotificationSink, NotificationSink
from grouplearn.service.store import RequestStore, SQLRequestStore


@lru_cache
def SETTINGS():
    return Settings()


DATABASE_MANAGER = SETTINGS().async_manager()


@lru_cache
def get_store() -> RequestStore:
    return SQLRequestStore(manager=DATABASE_MANAGER)


@lru_cache
def get_membership() -> GroupMembershipDirectory:
    return SQLMembership(manager=DATABASE_MANAGER)


@lru_cache
def get_sink() -> NotificationSink:
    return LoggingNotificationSink(log=get_logger())


def logger():
    return get_logger()


async def actor(x_actor_id: Annotated[UUID, Header()]) -> UUID:
    # Authentication happens upstream; the gateway forwards the user id.
    return x_actor_id


SettingsDependency = Annotated[Settings, Depends(SETTINGS)]
StoreDependency = Annotated[RequestStore, Depends(get_store)]
MembershipDependency = Annotated[GroupMembershipDirectory, Depends(get_membership)]
SinkDependency = Annotated[NotificationSink, Depends(get_sink)]
LoggerDependency = Annotated[FilteringBoundLogger, Depends(logger)]
ActorDependency = Annotated[UUID, Depends(actor)]
