"""
Voting on pending requests. Five distinct votes open a request up for
enrollment.
"""

from datetime import datetime

from grouplearn.core.errors import Forbidden, InvalidTransition
from grouplearn.core.intents import NotificationIntent, notify_all
from grouplearn.core.request import GroupRequestData, RequestStatus
from grouplearn.core.uuid import UUID

Step = tuple[GroupRequestData, list[NotificationIntent]]


def _check_can_vote(request: GroupRequestData, actor_id: UUID):
    if request.status != RequestStatus.PENDING:
        raise InvalidTransition("Voting is closed for this request.")

    if actor_id == request.creator_id:
        raise Forbidden("You cannot vote on your own request.")


def cast_vote(
    request: GroupRequestData, actor_id: UUID, threshold: int, now: datetime
) -> Step:
    """
    Add `actor_id` to the votes. Casting a vote twice is a no-op. When the
    vote crosses `threshold` the request is promoted; the merge uses the
    `request` passed in, which must be the freshest snapshot available.
    """
    _check_can_vote(request, actor_id)

    if actor_id in request.votes:
        return request, []

    request = request.model_copy(
        update={"votes": request.votes | {actor_id}, "updated_at": now}
    )

    return promote_if_threshold(request, threshold, now)


def unvote(request: GroupRequestData, actor_id: UUID, now: datetime) -> Step:
    _check_can_vote(request, actor_id)

    if actor_id not in request.votes:
        return request, []

    return (
        request.model_copy(
            update={"votes": request.votes - {actor_id}, "updated_at": now}
        ),
        [],
    )


def promote_if_threshold(
    request: GroupRequestData, threshold: int, now: datetime
) -> Step:
    """
    Move a pending request to `voting_open` once it has `threshold` voters.
    Every voter and the creator become participants, keeping anyone who was
    already enrolled.
    """
    if request.status != RequestStatus.PENDING or len(request.votes) < threshold:
        return request, []

    participants = request.votes | {request.creator_id} | request.participants

    request = request.model_copy(
        update={
            "participants": participants,
            "status": RequestStatus.VOTING_OPEN,
            "voting_opened_at": now,
            "updated_at": now,
        }
    )

    return request, notify_all(
        participants,
        "voting_opened",
        request_id=str(request.request_id),
        title=request.title,
    )
