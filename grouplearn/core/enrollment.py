"""
Enrollment of participants and teachers, and selection of the teacher.

A user may be both a participant and a teacher candidate at the same time;
the two sets are managed independently.
"""

from datetime import datetime, timedelta

from grouplearn.core.errors import Forbidden, InvalidTransition, ValidationError
from grouplearn.core.intents import NotificationIntent, notify_all
from grouplearn.core.request import GroupRequestData, RequestStatus
from grouplearn.core.uuid import UUID

Step = tuple[GroupRequestData, list[NotificationIntent]]

ENROLLMENT_STATUSES = frozenset({RequestStatus.VOTING_OPEN, RequestStatus.ACCEPTED})


def _check_not_creator(request: GroupRequestData, actor_id: UUID, action: str):
    if actor_id == request.creator_id:
        raise Forbidden(f"The creator of a request cannot {action}.")


def _check_enrollment_open(request: GroupRequestData):
    if request.status not in ENROLLMENT_STATUSES:
        raise InvalidTransition("Enrollment is closed for this request.")


def join(request: GroupRequestData, actor_id: UUID, now: datetime) -> Step:
    _check_enrollment_open(request)
    _check_not_creator(request, actor_id, "join it as a participant")

    if actor_id in request.participants:
        return request, []

    return (
        request.model_copy(
            update={
                "participants": request.participants | {actor_id},
                "updated_at": now,
            }
        ),
        [],
    )


def leave(request: GroupRequestData, actor_id: UUID, now: datetime) -> Step:
    _check_enrollment_open(request)
    _check_not_creator(request, actor_id, "leave it")

    if actor_id not in request.participants:
        return request, []

    return (
        request.model_copy(
            update={
                "participants": request.participants - {actor_id},
                "updated_at": now,
            }
        ),
        [],
    )


def teach_apply(request: GroupRequestData, actor_id: UUID, now: datetime) -> Step:
    """
    Register `actor_id` as a candidate teacher. The first candidate moves the
    request to `accepted`.
    """
    _check_enrollment_open(request)
    _check_not_creator(request, actor_id, "teach it")

    if actor_id in request.teachers:
        return request, []

    update = {"teachers": request.teachers | {actor_id}, "updated_at": now}

    if request.status == RequestStatus.VOTING_OPEN:
        update["status"] = RequestStatus.ACCEPTED
        update["accepted_at"] = now

    request = request.model_copy(update=update)

    return request, notify_all(
        [request.creator_id],
        "teacher_applied",
        request_id=str(request.request_id),
        teacher_id=str(actor_id),
    )


def teach_withdraw(request: GroupRequestData, actor_id: UUID, now: datetime) -> Step:
    """
    Remove `actor_id` from the candidate teachers. Losing the last candidate
    sends the request back to `voting_open`.
    """
    if request.status != RequestStatus.ACCEPTED:
        raise InvalidTransition("There are no teacher applications to withdraw.")

    if actor_id not in request.teachers:
        return request, []

    teachers = request.teachers - {actor_id}
    update = {"teachers": teachers, "updated_at": now}

    if not teachers:
        update["status"] = RequestStatus.VOTING_OPEN
        update["accepted_at"] = None

    request = request.model_copy(update=update)

    return request, notify_all(
        [request.creator_id],
        "teacher_withdrew",
        request_id=str(request.request_id),
        teacher_id=str(actor_id),
    )


def select_teacher(
    request: GroupRequestData,
    actor_id: UUID,
    teacher_id: UUID,
    deadline_hours: int,
    deadline_options: frozenset[int],
    now: datetime,
) -> Step:
    """
    The creator picks one candidate and opens the funding window of
    `deadline_hours`.
    """
    if request.status != RequestStatus.ACCEPTED:
        raise InvalidTransition("A teacher can only be selected once accepted.")

    if actor_id != request.creator_id:
        raise Forbidden("Only the creator of a request can select its teacher.")

    if teacher_id not in request.teachers:
        raise ValidationError("The selected teacher has not applied to this request.")

    if deadline_hours not in deadline_options:
        options = ", ".join(str(x) for x in sorted(deadline_options))
        raise ValidationError(
            f"The payment deadline must be one of {options} hours, "
            f"got {deadline_hours}."
        )

    deadline = now + timedelta(hours=deadline_hours)

    request = request.model_copy(
        update={
            "selected_teacher_id": teacher_id,
            "payment_deadline": deadline,
            "status": RequestStatus.FUNDING,
            "updated_at": now,
        }
    )

    intents = notify_all(
        [teacher_id],
        "teacher_selected",
        request_id=str(request.request_id),
    )
    intents += notify_all(
        request.participants,
        "payment_requested",
        request_id=str(request.request_id),
        amount=str(request.rate),
        deadline=deadline.isoformat(),
    )

    return request, intents
