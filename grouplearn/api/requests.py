"""
Group request routes.
"""

from datetime import datetime, timezone
from decimal import Decimal

from fastapi import APIRouter
from pydantic import BaseModel

from grouplearn.core import payment
from grouplearn.core.countdown import Countdown, payment_countdown, session_countdown
from grouplearn.core.engine import LifecycleEngine
from grouplearn.core.events import EventEnvelope
from grouplearn.core.request import GroupRequestData
from grouplearn.core.uuid import UUID
from grouplearn.service import lifecycle as lifecycle_service

from .dependencies import (
    ActorDependency,
    LoggerDependency,
    MembershipDependency,
    SettingsDependency,
    SinkDependency,
    StoreDependency,
)

request_app = APIRouter(tags=["Group Requests"])


class RequestCreationRequest(BaseModel):
    """
    Request model for proposing a new group session.
    """

    group_id: UUID
    title: str
    description: str = ""
    rate: Decimal = Decimal("0")


class CountdownResponse(BaseModel):
    status: str
    allowed_events: list[str]
    amount_due: Decimal
    total_paid: Decimal
    payment: Countdown | None
    session: Countdown | None


@request_app.put(
    "",
    summary="Create a group request",
    description=(
        "Propose a new group session. The request starts in the pending state "
        "and needs votes from other group members before people can join."
    ),
    responses={
        200: {"description": "Request created."},
        403: {"description": "The creator is not a member of the group."},
        422: {"description": "Invalid title or rate."},
    },
)
async def create_request(
    content: RequestCreationRequest,
    actor_id: ActorDependency,
    store: StoreDependency,
    membership: MembershipDependency,
    log: LoggerDependency,
) -> GroupRequestData:
    return await lifecycle_service.create(
        group_id=content.group_id,
        creator_id=actor_id,
        title=content.title,
        description=content.description,
        rate=content.rate,
        store=store,
        membership=membership,
        log=log,
    )


@request_app.get(
    "/{request_id}",
    summary="Get a group request",
    responses={
        200: {"description": "The current snapshot of the request."},
        404: {"description": "Request not found."},
    },
)
async def get_request(
    request_id: UUID, store: StoreDependency, log: LoggerDependency
) -> GroupRequestData:
    return await lifecycle_service.read(request_id=request_id, store=store, log=log)


@request_app.get(
    "/{request_id}/countdown",
    summary="Time left on the request's deadlines",
    description=(
        "Remaining time on the payment window while funding, and until the "
        "session starts once payment is complete, "
        "alongside the amount due from all participants."
    ),
    responses={
        200: {"description": "Countdowns, computed at the time of the call."},
        404: {"description": "Request not found."},
    },
)
async def get_countdown(
    request_id: UUID,
    store: StoreDependency,
    settings: SettingsDependency,
    log: LoggerDependency,
) -> CountdownResponse:
    request = await lifecycle_service.read(request_id=request_id, store=store, log=log)
    engine = LifecycleEngine(settings.engine_config())
    now = datetime.now(tz=timezone.utc)

    return CountdownResponse(
        status=request.status.value,
        allowed_events=sorted(engine.allowed_events(request.status)),
        amount_due=payment.amount_due(request),
        total_paid=request.total_paid,
        payment=payment_countdown(request, now),
        session=session_countdown(request, now),
    )


@request_app.post(
    "/{request_id}/events",
    summary="Apply an event to a group request",
    description=(
        "Vote, join, apply to teach, select a teacher, pay, complete or cancel. "
        "Concurrent updates are retried transparently."
    ),
    responses={
        200: {"description": "The snapshot after the event."},
        403: {"description": "The actor may not perform this event."},
        404: {"description": "Request not found."},
        409: {"description": "The event is not available in the current state."},
        410: {"description": "The request is closed."},
        422: {"description": "Invalid event payload."},
    },
)
async def submit_event(
    request_id: UUID,
    content: EventEnvelope,
    actor_id: ActorDependency,
    store: StoreDependency,
    membership: MembershipDependency,
    sink: SinkDependency,
    settings: SettingsDependency,
    log: LoggerDependency,
) -> GroupRequestData:
    return await lifecycle_service.submit(
        request_id=request_id,
        actor_id=actor_id,
        event=content.event,
        store=store,
        membership=membership,
        sink=sink,
        settings=settings,
        log=log,
    )
