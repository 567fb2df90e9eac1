"""
Best-effort delivery of notification intents.
"""

import abc
from typing import Any

from structlog.typing import FilteringBoundLogger

from grouplearn.core.intents import NotificationIntent
from grouplearn.core.uuid import UUID


class NotificationSink(abc.ABC):
    """
    The base class for notification sinks. Downstream must implement:

    - notify: hand one notification to the delivery channel.
    """

    @abc.abstractmethod
    async def notify(self, user_id: UUID, kind: str, payload: dict[str, Any]) -> None:
        raise NotImplementedError


class LoggingNotificationSink(NotificationSink):
    """
    Writes notifications to the structured log. Useful when no delivery
    channel is configured.
    """

    log: FilteringBoundLogger

    def __init__(self, log: FilteringBoundLogger):
        self.log = log

    async def notify(self, user_id: UUID, kind: str, payload: dict[str, Any]) -> None:
        await self.log.ainfo(
            "notification.sent", user_id=str(user_id), kind=kind, payload=payload
        )


class RecordingNotificationSink(NotificationSink):
    """
    Keeps every notification in memory, used for testing.
    """

    sent: list[NotificationIntent]

    def __init__(self):
        self.sent = []

    async def notify(self, user_id: UUID, kind: str, payload: dict[str, Any]) -> None:
        self.sent.append(
            NotificationIntent(user_id=user_id, kind=kind, payload=payload)
        )

    def kinds_for(self, user_id: UUID) -> list[str]:
        return [x.kind for x in self.sent if x.user_id == user_id]


async def deliver(
    intents: list[NotificationIntent],
    sink: NotificationSink,
    log: FilteringBoundLogger,
) -> int:
    """
    Deliver `intents` to `sink`. Notifications are not required for
    correctness, so a failed delivery is logged and skipped.

    Returns
    -------
    int
        The number of notifications delivered.
    """
    delivered = 0

    for intent in intents:
        try:
            await sink.notify(intent.user_id, intent.kind, intent.payload)
            delivered += 1
        except Exception as e:
            await log.awarning(
                "notification.failed",
                user_id=str(intent.user_id),
                kind=intent.kind,
                error=repr(e),
            )

    return delivered
