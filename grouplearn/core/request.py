"""
Core group learning request data models.
"""

from datetime import datetime
from decimal import Decimal
from enum import Enum

from pydantic import BaseModel, computed_field, model_validator

from grouplearn.core.uuid import UUID


class RequestStatus(str, Enum):
    PENDING = "pending"
    VOTING_OPEN = "voting_open"
    ACCEPTED = "accepted"
    FUNDING = "funding"
    PAID = "paid"
    PAYMENT_COMPLETE = "payment_complete"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


TERMINAL_STATUSES = frozenset({RequestStatus.COMPLETED, RequestStatus.CANCELLED})


class PaymentRecord(BaseModel):
    payment_id: str
    user_id: UUID
    amount: Decimal
    paid_at: datetime


class GroupRequestData(BaseModel):
    """
    A snapshot of a group learning request. Snapshots are treated as
    immutable: every transition produces a new one through `model_copy`, and
    the sets are always rebuilt rather than mutated in place.
    """

    request_id: UUID
    group_id: UUID
    creator_id: UUID

    title: str = ""
    description: str = ""

    status: RequestStatus = RequestStatus.PENDING

    votes: frozenset[UUID] = frozenset()
    participants: frozenset[UUID] = frozenset()
    teachers: frozenset[UUID] = frozenset()
    selected_teacher_id: UUID | None = None

    paid_participants: frozenset[UUID] = frozenset()
    payments: tuple[PaymentRecord, ...] = ()
    total_paid: Decimal = Decimal("0")
    rate: Decimal = Decimal("0")

    payment_deadline: datetime | None = None
    scheduled_date_time: datetime | None = None
    conference_link: str | None = None
    cancellation_reason: str | None = None
    payment_expired_at: datetime | None = None
    refund_status: str | None = None

    voting_opened_at: datetime | None = None
    accepted_at: datetime | None = None
    payment_completed_at: datetime | None = None
    session_started_at: datetime | None = None
    completed_at: datetime | None = None
    cancelled_at: datetime | None = None

    version: int = 0
    created_at: datetime
    updated_at: datetime

    @computed_field
    @property
    def vote_count(self) -> int:
        return len(self.votes)

    @computed_field
    @property
    def participant_count(self) -> int:
        return len(self.participants)

    @computed_field
    @property
    def teacher_count(self) -> int:
        return len(self.teachers)

    @computed_field
    @property
    def paid_count(self) -> int:
        return len(self.paid_participants)

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES

    @model_validator(mode="after")
    def check_invariants(self):
        if not self.paid_participants <= self.participants:
            raise ValueError("'paid_participants' must be a subset of 'participants'.")
        if (
            self.selected_teacher_id is not None
            and self.selected_teacher_id not in self.teachers
        ):
            raise ValueError("'selected_teacher_id' must be one of 'teachers'.")
        if self.payment_deadline is not None and self.status != RequestStatus.FUNDING:
            raise ValueError("'payment_deadline' may only be set while funding.")
        if self.creator_id in self.votes:
            raise ValueError("The creator of a request cannot vote on it.")
        if self.total_paid < 0:
            raise ValueError("'total_paid' cannot be negative.")
        return self
