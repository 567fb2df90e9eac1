"""
Events that can be applied to a group learning request.
"""

from decimal import Decimal
from typing import Annotated, Literal, Union

from pydantic import BaseModel, Field

from grouplearn.core.uuid import UUID


class CastVote(BaseModel):
    kind: Literal["cast_vote"] = "cast_vote"


class Unvote(BaseModel):
    kind: Literal["unvote"] = "unvote"


class Join(BaseModel):
    kind: Literal["join"] = "join"


class Leave(BaseModel):
    kind: Literal["leave"] = "leave"


class TeachApply(BaseModel):
    kind: Literal["teach_apply"] = "teach_apply"


class TeachWithdraw(BaseModel):
    kind: Literal["teach_withdraw"] = "teach_withdraw"


class SelectTeacher(BaseModel):
    kind: Literal["select_teacher"] = "select_teacher"
    teacher_id: UUID
    deadline_hours: int


class RecordPayment(BaseModel):
    kind: Literal["record_payment"] = "record_payment"
    user_id: UUID
    amount: Decimal
    # Optional idempotency key from the payment provider
    payment_id: str | None = None


class DeadlineExpired(BaseModel):
    kind: Literal["deadline_expired"] = "deadline_expired"


class AdvanceToInProgress(BaseModel):
    kind: Literal["advance_to_in_progress"] = "advance_to_in_progress"


class AdvanceToCompleted(BaseModel):
    kind: Literal["advance_to_completed"] = "advance_to_completed"


class Cancel(BaseModel):
    kind: Literal["cancel"] = "cancel"
    reason: str = ""


Event = Annotated[
    Union[
        CastVote,
        Unvote,
        Join,
        Leave,
        TeachApply,
        TeachWithdraw,
        SelectTeacher,
        RecordPayment,
        DeadlineExpired,
        AdvanceToInProgress,
        AdvanceToCompleted,
        Cancel,
    ],
    Field(discriminator="kind"),
]

EventKind = Literal[
    "cast_vote",
    "unvote",
    "join",
    "leave",
    "teach_apply",
    "teach_withdraw",
    "select_teacher",
    "record_payment",
    "deadline_expired",
    "advance_to_in_progress",
    "advance_to_completed",
    "cancel",
]

# Events emitted by the scheduler rather than a user. These are idempotent:
# when their precondition no longer holds they are silently dropped.
TIMER_EVENTS: frozenset[str] = frozenset({"deadline_expired", "advance_to_in_progress"})

# Events that require the actor to belong to the request's group.
MEMBERSHIP_GATED_EVENTS: frozenset[str] = frozenset(
    {"cast_vote", "join", "teach_apply"}
)


class EventEnvelope(BaseModel):
    """
    Wrapper used to parse an event from JSON, e.g. `{"event": {"kind": "join"}}`.
    """

    event: Event
