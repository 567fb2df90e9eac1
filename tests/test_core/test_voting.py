"""
Tests voting on pending requests.
"""

import pytest

from grouplearn.core import voting
from grouplearn.core.errors import Forbidden, InvalidTransition
from grouplearn.core.request import RequestStatus


def test_cast_vote_adds_voter(make_request, users, now):
    request = make_request()

    new, intents = voting.cast_vote(request, users[1], threshold=5, now=now)

    assert new.votes == {users[1]}
    assert new.vote_count == 1
    assert new.status == RequestStatus.PENDING
    assert intents == []
    # The original snapshot is untouched
    assert request.votes == frozenset()


def test_cast_vote_twice_is_a_no_op(make_request, users, now):
    request = make_request(votes=frozenset({users[1]}))

    new, intents = voting.cast_vote(request, users[1], threshold=5, now=now)

    assert new is request
    assert len(new.votes) == 1
    assert intents == []


def test_creator_cannot_vote(make_request, users, now):
    request = make_request()

    with pytest.raises(Forbidden):
        voting.cast_vote(request, users[0], threshold=5, now=now)

    with pytest.raises(Forbidden):
        voting.unvote(request, users[0], now=now)


def test_unvote(make_request, users, now):
    request = make_request(votes=frozenset({users[1], users[2]}))

    new, _ = voting.unvote(request, users[1], now=now)
    assert new.votes == {users[2]}

    again, _ = voting.unvote(new, users[1], now=now)
    assert again is new


def test_voting_rejected_after_pending(make_request, users, now):
    request = make_request(status=RequestStatus.VOTING_OPEN)

    with pytest.raises(InvalidTransition):
        voting.cast_vote(request, users[1], threshold=5, now=now)

    with pytest.raises(InvalidTransition):
        voting.unvote(request, users[1], now=now)


def test_threshold_merges_votes_creator_and_existing_participants(
    make_request, users, now
):
    request = make_request(
        votes=frozenset(users[1:5]), participants=frozenset({users[8]})
    )

    new, intents = voting.cast_vote(request, users[5], threshold=5, now=now)

    assert new.status == RequestStatus.VOTING_OPEN
    assert new.participants == {users[0], users[8], *users[1:6]}
    assert new.voting_opened_at == now
    assert {x.user_id for x in intents} == new.participants
    assert {x.kind for x in intents} == {"voting_opened"}


def test_below_threshold_stays_pending(make_request, users, now):
    request = make_request(votes=frozenset(users[1:4]))

    new, intents = voting.promote_if_threshold(request, threshold=5, now=now)

    assert new is request
    assert intents == []
