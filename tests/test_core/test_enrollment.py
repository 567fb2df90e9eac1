"""
Tests participant and teacher enrollment.
"""

from datetime import timedelta

import pytest

from grouplearn.core import enrollment
from grouplearn.core.errors import Forbidden, InvalidTransition, ValidationError
from grouplearn.core.request import RequestStatus

OPTIONS = frozenset({12, 24, 48, 72})


@pytest.fixture
def voting_open(make_request, users):
    return make_request(
        status=RequestStatus.VOTING_OPEN,
        votes=frozenset(users[1:6]),
        participants=frozenset(users[0:6]),
    )


def test_join_and_leave(voting_open, users, now):
    joined, _ = enrollment.join(voting_open, users[7], now)
    assert users[7] in joined.participants
    assert joined.participant_count == 7

    # Joining twice changes nothing
    again, _ = enrollment.join(joined, users[7], now)
    assert again is joined

    left, _ = enrollment.leave(joined, users[7], now)
    assert users[7] not in left.participants

    again, _ = enrollment.leave(left, users[7], now)
    assert again is left


def test_creator_cannot_join_or_leave(voting_open, users, now):
    with pytest.raises(Forbidden):
        enrollment.join(voting_open, users[0], now)

    with pytest.raises(Forbidden):
        enrollment.leave(voting_open, users[0], now)


def test_join_outside_enrollment(make_request, users, now):
    with pytest.raises(InvalidTransition):
        enrollment.join(make_request(), users[1], now)


def test_first_teacher_accepts(voting_open, users, now):
    accepted, intents = enrollment.teach_apply(voting_open, users[6], now)

    assert accepted.status == RequestStatus.ACCEPTED
    assert accepted.teachers == {users[6]}
    assert accepted.accepted_at == now
    assert [(x.user_id, x.kind) for x in intents] == [(users[0], "teacher_applied")]

    second, _ = enrollment.teach_apply(accepted, users[7], now)
    assert second.status == RequestStatus.ACCEPTED
    assert second.teacher_count == 2


def test_participant_may_also_teach(voting_open, users, now):
    accepted, _ = enrollment.teach_apply(voting_open, users[1], now)

    assert users[1] in accepted.participants
    assert users[1] in accepted.teachers


def test_creator_cannot_teach(voting_open, users, now):
    with pytest.raises(Forbidden):
        enrollment.teach_apply(voting_open, users[0], now)


def test_last_teacher_withdrawing_reopens_voting(voting_open, users, now):
    accepted, _ = enrollment.teach_apply(voting_open, users[6], now)
    accepted, _ = enrollment.teach_apply(accepted, users[7], now)

    one_left, _ = enrollment.teach_withdraw(accepted, users[6], now)
    assert one_left.status == RequestStatus.ACCEPTED

    none_left, _ = enrollment.teach_withdraw(one_left, users[7], now)
    assert none_left.status == RequestStatus.VOTING_OPEN
    assert none_left.teachers == frozenset()
    assert none_left.accepted_at is None


def test_teach_withdraw_requires_accepted(voting_open, users, now):
    with pytest.raises(InvalidTransition):
        enrollment.teach_withdraw(voting_open, users[6], now)


def test_select_teacher(make_request, users, now):
    request = make_request(
        status=RequestStatus.ACCEPTED,
        participants=frozenset({users[0], users[1], users[5]}),
        teachers=frozenset({users[6]}),
    )

    funding, intents = enrollment.select_teacher(
        request, users[0], users[6], 24, OPTIONS, now
    )

    assert funding.status == RequestStatus.FUNDING
    assert funding.selected_teacher_id == users[6]
    assert funding.payment_deadline == now + timedelta(hours=24)

    kinds = {(x.user_id, x.kind) for x in intents}
    assert (users[6], "teacher_selected") in kinds
    assert (users[1], "payment_requested") in kinds


def test_select_teacher_checks(make_request, users, now):
    request = make_request(
        status=RequestStatus.ACCEPTED,
        participants=frozenset({users[0], users[1]}),
        teachers=frozenset({users[6]}),
    )

    with pytest.raises(Forbidden):
        enrollment.select_teacher(request, users[1], users[6], 24, OPTIONS, now)

    with pytest.raises(ValidationError):
        enrollment.select_teacher(request, users[0], users[7], 24, OPTIONS, now)

    with pytest.raises(ValidationError):
        enrollment.select_teacher(request, users[0], users[6], 5, OPTIONS, now)
