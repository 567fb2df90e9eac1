"""
The lifecycle engine: the single authority deciding how a group learning
request moves between states.

`LifecycleEngine.apply` is a pure function of its inputs. Reading the
snapshot, checking group membership and persisting the result all happen in
the caller (see `grouplearn.service.lifecycle`), which re-runs `apply` against
a fresh snapshot whenever its write loses a version race.
"""

from datetime import datetime, timedelta
from typing import Callable

from pydantic import BaseModel, ConfigDict

from grouplearn.core import enrollment, payment, voting
from grouplearn.core.countdown import conference_link_due, session_started
from grouplearn.core.errors import (
    Forbidden,
    InvalidTransition,
    NotAMember,
    Terminal,
    TransitionError,
)
from grouplearn.core.events import (
    MEMBERSHIP_GATED_EVENTS,
    TIMER_EVENTS,
    Event,
    EventKind,
    RecordPayment,
    SelectTeacher,
)
from grouplearn.core.intents import NotificationIntent, notify_all
from grouplearn.core.request import GroupRequestData, RequestStatus
from grouplearn.core.uuid import UUID

S = RequestStatus

TRANSITIONS: dict[RequestStatus, frozenset[EventKind]] = {
    S.PENDING: frozenset({"cast_vote", "unvote", "cancel"}),
    S.VOTING_OPEN: frozenset({"join", "leave", "teach_apply", "cancel"}),
    S.ACCEPTED: frozenset(
        {"teach_apply", "teach_withdraw", "join", "leave", "select_teacher", "cancel"}
    ),
    S.FUNDING: frozenset({"record_payment", "deadline_expired", "cancel"}),
    S.PAID: frozenset({"cancel"}),
    S.PAYMENT_COMPLETE: frozenset({"advance_to_in_progress"}),
    S.IN_PROGRESS: frozenset({"advance_to_completed"}),
    S.COMPLETED: frozenset(),
    S.CANCELLED: frozenset(),
}


class EngineConfig(BaseModel):
    vote_threshold: int = 5
    payment_deadline_options: frozenset[int] = frozenset({12, 24, 48, 72})
    session_lead_time: timedelta = timedelta(hours=1)
    conference_link_window: timedelta = timedelta(minutes=10)
    conference_base_url: str = "https://meet.jit.si"
    # Payment provider callbacks may record payments on behalf of participants.
    system_actor_id: UUID | None = None


class Transition(BaseModel):
    """
    The outcome of applying one event. Exactly one of `state` and `error` is
    set. `changed` is False for accepted no-ops (repeated votes, late timer
    events), which callers must not write back.
    """

    model_config = ConfigDict(arbitrary_types_allowed=True)

    state: GroupRequestData | None = None
    intents: list[NotificationIntent] = []
    error: TransitionError | None = None
    changed: bool = False

    @property
    def ok(self) -> bool:
        return self.error is None


Step = tuple[GroupRequestData, list[NotificationIntent]]


class LifecycleEngine:
    config: EngineConfig

    def __init__(self, config: EngineConfig | None = None):
        self.config = config or EngineConfig()

        self._handlers: dict[str, Callable[[GroupRequestData, UUID, Event, datetime], Step]] = {
            "cast_vote": self._cast_vote,
            "unvote": self._unvote,
            "join": self._join,
            "leave": self._leave,
            "teach_apply": self._teach_apply,
            "teach_withdraw": self._teach_withdraw,
            "select_teacher": self._select_teacher,
            "record_payment": self._record_payment,
            "deadline_expired": self._deadline_expired,
            "advance_to_in_progress": self._advance_to_in_progress,
            "advance_to_completed": self._advance_to_completed,
            "cancel": self._cancel,
        }

    def allowed_events(self, status: RequestStatus) -> frozenset[EventKind]:
        return TRANSITIONS[status]

    def apply(
        self,
        snapshot: GroupRequestData,
        actor_id: UUID,
        event: Event,
        now: datetime,
        actor_is_member: bool = True,
    ) -> Transition:
        """
        Apply `event` by `actor_id` to `snapshot` at time `now`.

        Parameters
        ----------
        snapshot: GroupRequestData
            The latest snapshot read from the store.
        actor_id: UUID
            The user (or system actor) submitting the event.
        event: Event
            The event to apply.
        now: datetime
            The current time, supplied by whoever owns the clock.
        actor_is_member: bool
            Result of the group membership lookup for events that require
            it. Ignored for other events.

        Returns
        -------
        Transition
            The new state and its side-effect intents, or a typed error.
        """
        kind = event.kind
        allowed = TRANSITIONS[snapshot.status]

        # Timer events that arrive late, early or twice are dropped.
        if kind in TIMER_EVENTS and kind not in allowed:
            return Transition(state=snapshot)

        if snapshot.is_terminal:
            return Transition(error=Terminal())

        if kind not in allowed:
            return Transition(
                error=InvalidTransition(
                    f"Cannot {kind.replace('_', ' ')} while the request is "
                    f"{snapshot.status.value.replace('_', ' ')}."
                )
            )

        if (
            kind in MEMBERSHIP_GATED_EVENTS
            and actor_id != snapshot.creator_id
            and not actor_is_member
        ):
            return Transition(error=NotAMember())

        try:
            state, intents = self._handlers[kind](snapshot, actor_id, event, now)
        except TransitionError as e:
            return Transition(error=e)

        return Transition(state=state, intents=intents, changed=state is not snapshot)

    def conference_link(self, request: GroupRequestData) -> str:
        return f"{self.config.conference_base_url.rstrip('/')}/grouplearn-{request.request_id.hex}"

    def _cast_vote(self, request, actor_id, event, now) -> Step:
        return voting.cast_vote(request, actor_id, self.config.vote_threshold, now)

    def _unvote(self, request, actor_id, event, now) -> Step:
        return voting.unvote(request, actor_id, now)

    def _join(self, request, actor_id, event, now) -> Step:
        return enrollment.join(request, actor_id, now)

    def _leave(self, request, actor_id, event, now) -> Step:
        return enrollment.leave(request, actor_id, now)

    def _teach_apply(self, request, actor_id, event, now) -> Step:
        return enrollment.teach_apply(request, actor_id, now)

    def _teach_withdraw(self, request, actor_id, event, now) -> Step:
        return enrollment.teach_withdraw(request, actor_id, now)

    def _select_teacher(self, request, actor_id, event: SelectTeacher, now) -> Step:
        return enrollment.select_teacher(
            request,
            actor_id,
            teacher_id=event.teacher_id,
            deadline_hours=event.deadline_hours,
            deadline_options=self.config.payment_deadline_options,
            now=now,
        )

    def _record_payment(self, request, actor_id, event: RecordPayment, now) -> Step:
        return payment.record_payment(
            request,
            actor_id=actor_id,
            user_id=event.user_id,
            amount=event.amount,
            payment_id=event.payment_id,
            session_lead_time=self.config.session_lead_time,
            now=now,
            system_actor_id=self.config.system_actor_id,
        )

    def _deadline_expired(self, request, actor_id, event, now) -> Step:
        if not payment.is_expired(request, now):
            return request, []

        return payment.expire(request, now)

    def _advance_to_in_progress(self, request, actor_id, event, now) -> Step:
        """
        Issue the conference link once the session is within the link window,
        and start the session once its scheduled time has passed.
        """
        recipients = set(request.participants)
        if request.selected_teacher_id is not None:
            recipients.add(request.selected_teacher_id)

        intents = []
        update = {}

        if request.conference_link is None and (
            session_started(request, now)
            or conference_link_due(request, now, self.config.conference_link_window)
        ):
            update["conference_link"] = self.conference_link(request)
            intents += notify_all(
                recipients,
                "conference_link_ready",
                request_id=str(request.request_id),
                conference_link=update["conference_link"],
            )

        if session_started(request, now):
            update["status"] = RequestStatus.IN_PROGRESS
            update["session_started_at"] = now
            intents += notify_all(
                recipients,
                "session_started",
                request_id=str(request.request_id),
            )

        if not update:
            return request, []

        update["updated_at"] = now

        return request.model_copy(update=update), intents

    def _advance_to_completed(self, request, actor_id, event, now) -> Step:
        allowed = {request.creator_id, *request.participants}
        if request.selected_teacher_id is not None:
            allowed.add(request.selected_teacher_id)

        if actor_id not in allowed:
            raise Forbidden("Only the people taking part can complete a session.")

        request = request.model_copy(
            update={
                "status": RequestStatus.COMPLETED,
                "completed_at": now,
                "updated_at": now,
            }
        )

        return request, notify_all(
            allowed - {actor_id},
            "session_completed",
            request_id=str(request.request_id),
        )

    def _cancel(self, request, actor_id, event, now) -> Step:
        if actor_id != request.creator_id:
            raise Forbidden("You can only cancel your own requests.")

        update = {
            "status": RequestStatus.CANCELLED,
            "cancellation_reason": event.reason or None,
            "cancelled_at": now,
            "payment_deadline": None,
            "updated_at": now,
        }

        intents = notify_all(
            (request.participants | request.teachers) - {actor_id},
            "request_cancelled",
            request_id=str(request.request_id),
            reason=event.reason,
        )

        if request.payments:
            update["refund_status"] = "pending"
            for record in request.payments:
                intents += notify_all(
                    [record.user_id],
                    "refund_requested",
                    request_id=str(request.request_id),
                    payment_id=record.payment_id,
                    amount=str(record.amount),
                )

        return request.model_copy(update=update), intents
