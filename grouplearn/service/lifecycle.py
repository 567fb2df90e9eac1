"""
Service layer for group request lifecycles: creation, reads, and the
optimistic read-apply-write loop around the lifecycle engine.
"""

import asyncio
from datetime import datetime, timezone
from decimal import Decimal
from typing import Callable

from structlog.typing import FilteringBoundLogger

from grouplearn.config.settings import Settings
from grouplearn.core import payment
from grouplearn.core.engine import LifecycleEngine
from grouplearn.core.errors import Conflict, NotAMember, ValidationError
from grouplearn.core.events import MEMBERSHIP_GATED_EVENTS, Event
from grouplearn.core.request import GroupRequestData, RequestStatus
from grouplearn.core.uuid import UUID, uuid7

from .membership import GroupMembershipDirectory
from .notifications import NotificationSink, deliver
from .store import RequestStore

Clock = Callable[[], datetime]


def utcnow() -> datetime:
    return datetime.now(tz=timezone.utc)


async def create(
    group_id: UUID,
    creator_id: UUID,
    title: str,
    description: str,
    rate: Decimal,
    store: RequestStore,
    membership: GroupMembershipDirectory,
    log: FilteringBoundLogger,
    clock: Clock = utcnow,
) -> GroupRequestData:
    """
    Create a new group request in the `pending` state.

    Parameters
    ----------
    group_id: UUID
        The group the request is addressed to.
    creator_id: UUID
        The user proposing the session. Must be a member of the group.
    title: str
        Short title of the session.
    description: str
        What the session should cover.
    rate: Decimal
        The cost per participant.

    Raises
    ------
    NotAMember
        If the creator does not belong to the group.
    ValidationError
        If the rate is negative or finer than whole cents, or the title is
        empty.
    """
    log = log.bind(group_id=str(group_id), creator_id=str(creator_id))

    if not title.strip():
        await log.ainfo("request.create.no_title")
        raise ValidationError("A request needs a title.")

    if rate < 0:
        await log.ainfo("request.create.negative_rate", rate=str(rate))
        raise ValidationError("The rate cannot be negative.")

    if not payment.has_money_precision(rate):
        await log.ainfo("request.create.rate_precision", rate=str(rate))
        raise ValidationError(
            f"The rate cannot have more than {payment.MONEY_PLACES} decimal places."
        )

    if not await membership.is_member(group_id, creator_id):
        await log.ainfo("request.create.not_a_member")
        raise NotAMember("You must be a member of the group to create requests.")

    now = clock()

    request = GroupRequestData(
        request_id=uuid7(),
        group_id=group_id,
        creator_id=creator_id,
        title=title.strip(),
        description=description,
        status=RequestStatus.PENDING,
        rate=rate,
        version=0,
        created_at=now,
        updated_at=now,
    )

    request = await store.create(request)

    await log.ainfo("request.created", request_id=str(request.request_id))

    return request


async def read(
    request_id: UUID, store: RequestStore, log: FilteringBoundLogger
) -> GroupRequestData:
    """
    Read the current snapshot of a request.

    Raises
    ------
    RequestNotFound
        If the request does not exist.
    """
    log = log.bind(request_id=str(request_id))
    snapshot, _ = await store.read(request_id)
    await log.adebug("request.read", version=snapshot.version)
    return snapshot


async def submit(
    request_id: UUID,
    actor_id: UUID,
    event: Event,
    store: RequestStore,
    membership: GroupMembershipDirectory,
    sink: NotificationSink,
    settings: Settings,
    log: FilteringBoundLogger,
    clock: Clock = utcnow,
) -> GroupRequestData:
    """
    Apply `event` by `actor_id` to a request, retrying on lost writes.

    Each attempt reads the latest snapshot, checks group membership where
    the event needs it, applies the engine and tries a compare-and-swap
    write. Because every retry recomputes from the snapshot it just read,
    concurrent events are never lost. Notifications are only sent for the
    attempt that was written.

    Returns
    -------
    GroupRequestData
        The snapshot after the event; unchanged for accepted no-ops.

    Raises
    ------
    RequestNotFound
        If the request does not exist.
    TransitionError
        Any non-conflict error from the engine, verbatim.
    Conflict
        If every attempt lost its write.
    """
    log = log.bind(
        request_id=str(request_id), actor_id=str(actor_id), event_kind=event.kind
    )
    engine = LifecycleEngine(settings.engine_config())

    attempts = max(settings.write_retry_attempts, 1)
    backoff = settings.write_retry_backoff.total_seconds()

    for attempt in range(attempts):
        snapshot, version = await store.read(request_id)

        actor_is_member = True
        if event.kind in MEMBERSHIP_GATED_EVENTS and actor_id != snapshot.creator_id:
            actor_is_member = await membership.is_member(snapshot.group_id, actor_id)

        transition = engine.apply(
            snapshot, actor_id, event, now=clock(), actor_is_member=actor_is_member
        )

        if not transition.ok:
            await log.ainfo(
                "request.event.rejected",
                status=snapshot.status.value,
                error=transition.error.kind,
            )
            raise transition.error

        if not transition.changed:
            await log.adebug("request.event.no_op", status=snapshot.status.value)
            return snapshot

        try:
            new = await store.write_if_version(request_id, version, transition.state)
        except Conflict:
            await log.adebug("request.event.conflict", attempt=attempt, version=version)
            if attempt + 1 < attempts:
                await asyncio.sleep(backoff * 2**attempt)
            continue

        await log.ainfo(
            "request.event.applied",
            previous_status=snapshot.status.value,
            status=new.status.value,
            version=new.version,
        )

        await deliver(transition.intents, sink, log)

        return new

    await log.awarning("request.event.retries_exhausted", attempts=attempts)
    raise Conflict()
