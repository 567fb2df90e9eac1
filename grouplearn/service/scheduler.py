"""
Deadline-driven transitions. The scheduler compares the clock with stored
deadlines and injects `DeadlineExpired` and `AdvanceToInProgress` events
through the normal submit path. Those events are idempotent, so running
several schedulers, or racing a user's payment, is safe.
"""

import asyncio
from datetime import datetime, timedelta

from structlog.typing import FilteringBoundLogger

from grouplearn.config.settings import Settings
from grouplearn.core import payment
from grouplearn.core.countdown import conference_link_due, session_started
from grouplearn.core.errors import RequestNotFound, TransitionError
from grouplearn.core.events import AdvanceToInProgress, DeadlineExpired, Event
from grouplearn.core.request import GroupRequestData, RequestStatus
from grouplearn.core.uuid import UUID

from . import lifecycle as lifecycle_service
from .lifecycle import Clock, utcnow
from .membership import GroupMembershipDirectory
from .notifications import NotificationSink
from .store import RequestStore

WATCHED_STATUSES = (RequestStatus.FUNDING, RequestStatus.PAYMENT_COMPLETE)


def due_event(
    request: GroupRequestData, now: datetime, conference_link_window: timedelta
) -> Event | None:
    """
    The timer event `request` is waiting for at `now`, if any.
    """
    if payment.is_expired(request, now):
        return DeadlineExpired()

    if request.status == RequestStatus.PAYMENT_COMPLETE:
        if session_started(request, now):
            return AdvanceToInProgress()
        if request.conference_link is None and conference_link_due(
            request, now, conference_link_window
        ):
            return AdvanceToInProgress()

    return None


async def check_request(
    request_id: UUID,
    store: RequestStore,
    membership: GroupMembershipDirectory,
    sink: NotificationSink,
    settings: Settings,
    log: FilteringBoundLogger,
    clock: Clock = utcnow,
) -> GroupRequestData | None:
    """
    Inject the due timer event for a single request.

    Returns
    -------
    GroupRequestData | None
        The snapshot after the event, or None if nothing was due.
    """
    log = log.bind(request_id=str(request_id))

    snapshot, _ = await store.read(request_id)
    event = due_event(snapshot, clock(), settings.conference_link_window)

    if event is None:
        await log.adebug("scheduler.nothing_due", status=snapshot.status.value)
        return None

    await log.ainfo("scheduler.event_due", event_kind=event.kind)

    return await lifecycle_service.submit(
        request_id=request_id,
        actor_id=settings.system_actor_id,
        event=event,
        store=store,
        membership=membership,
        sink=sink,
        settings=settings,
        log=log,
        clock=clock,
    )


async def sweep(
    store: RequestStore,
    membership: GroupMembershipDirectory,
    sink: NotificationSink,
    settings: Settings,
    log: FilteringBoundLogger,
    clock: Clock = utcnow,
) -> int:
    """
    Check every request with a pending deadline once.

    Returns
    -------
    int
        The number of requests an event was injected for.
    """
    requests = await store.list_by_status(WATCHED_STATUSES)
    now = clock()
    injected = 0

    for request in requests:
        if due_event(request, now, settings.conference_link_window) is None:
            continue

        try:
            await check_request(
                request_id=request.request_id,
                store=store,
                membership=membership,
                sink=sink,
                settings=settings,
                log=log,
                clock=clock,
            )
            injected += 1
        except (RequestNotFound, TransitionError) as e:
            # The next sweep will look at this request again.
            await log.awarning(
                "scheduler.check_failed",
                request_id=str(request.request_id),
                error=repr(e),
            )

    await log.adebug("scheduler.swept", checked=len(requests), injected=injected)

    return injected


async def run_forever(
    store: RequestStore,
    membership: GroupMembershipDirectory,
    sink: NotificationSink,
    settings: Settings,
    log: FilteringBoundLogger,
    clock: Clock = utcnow,
) -> None:
    """
    Sweep every `settings.scheduler_interval` until cancelled.
    """
    interval = settings.scheduler_interval.total_seconds()
    await log.ainfo("scheduler.started", interval=interval)

    try:
        while True:
            await sweep(
                store=store,
                membership=membership,
                sink=sink,
                settings=settings,
                log=log,
                clock=clock,
            )
            await asyncio.sleep(interval)
    finally:
        await log.ainfo("scheduler.stopped")
