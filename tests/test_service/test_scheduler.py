"""
Tests the deadline scheduler.
"""

from datetime import timedelta
from decimal import Decimal

import pytest

from grouplearn.core.events import AdvanceToInProgress, DeadlineExpired
from grouplearn.core.request import RequestStatus
from grouplearn.service import scheduler as scheduler_service

WINDOW = timedelta(minutes=10)


@pytest.fixture
def funding(make_request, users, now):
    return make_request(
        status=RequestStatus.FUNDING,
        participants=frozenset({users[0], users[1]}),
        teachers=frozenset({users[6]}),
        selected_teacher_id=users[6],
        payment_deadline=now + timedelta(hours=12),
    )


@pytest.fixture
def scheduled(make_request, users, now):
    return make_request(
        status=RequestStatus.PAYMENT_COMPLETE,
        participants=frozenset({users[0], users[1]}),
        paid_participants=frozenset({users[0], users[1]}),
        teachers=frozenset({users[6]}),
        selected_teacher_id=users[6],
        total_paid=Decimal("400"),
        scheduled_date_time=now + timedelta(hours=1),
    )


def test_due_event(funding, scheduled, make_request, now):
    assert scheduler_service.due_event(funding, now, WINDOW) is None
    assert isinstance(
        scheduler_service.due_event(funding, now + timedelta(hours=12), WINDOW),
        DeadlineExpired,
    )

    assert scheduler_service.due_event(scheduled, now, WINDOW) is None
    assert isinstance(
        scheduler_service.due_event(scheduled, now + timedelta(minutes=50), WINDOW),
        AdvanceToInProgress,
    )

    linked = scheduled.model_copy(update={"conference_link": "https://meet/x"})
    assert scheduler_service.due_event(linked, now + timedelta(minutes=50), WINDOW) is None
    assert isinstance(
        scheduler_service.due_event(linked, now + timedelta(hours=1), WINDOW),
        AdvanceToInProgress,
    )

    assert scheduler_service.due_event(make_request(), now + timedelta(days=9), WINDOW) is None


@pytest.mark.asyncio(loop_scope="session")
async def test_check_request(
    funding, store, membership, sink, settings, logger, clock, users
):
    await store.create(funding)

    nothing = await scheduler_service.check_request(
        request_id=funding.request_id,
        store=store,
        membership=membership,
        sink=sink,
        settings=settings,
        log=logger,
        clock=clock,
    )
    assert nothing is None

    clock.advance(timedelta(hours=13))

    expired = await scheduler_service.check_request(
        request_id=funding.request_id,
        store=store,
        membership=membership,
        sink=sink,
        settings=settings,
        log=logger,
        clock=clock,
    )

    assert expired.status == RequestStatus.PAID
    assert expired.payment_expired_at == clock.now
    assert "payment_expired" in sink.kinds_for(users[1])


@pytest.mark.asyncio(loop_scope="session")
async def test_sweep_is_idempotent(
    funding, scheduled, store, membership, sink, settings, logger, clock
):
    await store.create(funding)
    await store.create(scheduled)

    async def sweep():
        return await scheduler_service.sweep(
            store=store,
            membership=membership,
            sink=sink,
            settings=settings,
            log=logger,
            clock=clock,
        )

    assert await sweep() == 0

    # Both the payment deadline and the session start have passed.
    clock.advance(timedelta(hours=12))
    assert await sweep() == 2

    sent = len(sink.sent)
    assert await sweep() == 0
    assert len(sink.sent) == sent

    expired, _ = await store.read(funding.request_id)
    started, _ = await store.read(scheduled.request_id)

    assert expired.status == RequestStatus.PAID
    assert expired.version == 1
    assert started.status == RequestStatus.IN_PROGRESS
    assert started.conference_link is not None
    assert started.version == 1
