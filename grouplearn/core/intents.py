"""
Side-effect intents produced by transitions. They describe who should be told
what; delivery belongs to a `NotificationSink`.
"""

from typing import Any, Iterable, Literal

from pydantic import BaseModel

from grouplearn.core.uuid import UUID

IntentKind = Literal[
    "voting_opened",
    "teacher_applied",
    "teacher_withdrew",
    "teacher_selected",
    "payment_requested",
    "payment_received",
    "payment_complete",
    "payment_expired",
    "conference_link_ready",
    "session_started",
    "session_completed",
    "request_cancelled",
    "refund_requested",
]


class NotificationIntent(BaseModel):
    user_id: UUID
    kind: IntentKind
    payload: dict[str, Any] = {}


def notify_all(
    user_ids: Iterable[UUID], kind: IntentKind, **payload: Any
) -> list[NotificationIntent]:
    """
    One intent per user, in a stable order so that delivery is reproducible.
    """
    return [
        NotificationIntent(user_id=user_id, kind=kind, payload=payload)
        for user_id in sorted(set(user_ids), key=str)
    ]
