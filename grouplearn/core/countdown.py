"""
Read-side countdowns. These are pure functions of a deadline and the current
time; nothing here keeps timer state.
"""

from datetime import datetime, timedelta

from pydantic import BaseModel, computed_field

from grouplearn.core.request import GroupRequestData, RequestStatus


class Countdown(BaseModel):
    hours: int
    minutes: int
    seconds: int
    expired: bool

    @computed_field
    @property
    def display(self) -> str:
        return f"{self.hours:02d}:{self.minutes:02d}:{self.seconds:02d}"


def remaining(deadline: datetime, now: datetime) -> timedelta:
    """
    Time left until `deadline`, never negative.
    """
    return max(deadline - now, timedelta(0))


def countdown(deadline: datetime, now: datetime) -> Countdown:
    left = remaining(deadline, now)
    total_seconds = int(left.total_seconds())
    hours, rest = divmod(total_seconds, 3600)
    minutes, seconds = divmod(rest, 60)

    return Countdown(
        hours=hours, minutes=minutes, seconds=seconds, expired=left == timedelta(0)
    )


def payment_countdown(request: GroupRequestData, now: datetime) -> Countdown | None:
    if request.status != RequestStatus.FUNDING or request.payment_deadline is None:
        return None

    return countdown(request.payment_deadline, now)


def session_countdown(request: GroupRequestData, now: datetime) -> Countdown | None:
    if (
        request.status != RequestStatus.PAYMENT_COMPLETE
        or request.scheduled_date_time is None
    ):
        return None

    return countdown(request.scheduled_date_time, now)


def session_started(request: GroupRequestData, now: datetime) -> bool:
    return (
        request.scheduled_date_time is not None and now >= request.scheduled_date_time
    )


def conference_link_due(
    request: GroupRequestData, now: datetime, window: timedelta
) -> bool:
    """
    Whether a session is close enough to start (within `window`) that its
    conference link should be issued.
    """
    return (
        request.status == RequestStatus.PAYMENT_COMPLETE
        and request.scheduled_date_time is not None
        and remaining(request.scheduled_date_time, now) <= window
    )
