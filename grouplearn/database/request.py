"""
Group request ORM.
"""

from datetime import datetime, timezone
from decimal import Decimal
from typing import Any

from sqlalchemy import JSON, Column, DateTime, Numeric
from sqlmodel import Field, SQLModel

from grouplearn.core.request import GroupRequestData, PaymentRecord, RequestStatus
from grouplearn.core.uuid import UUID, uuid7


def _aware(value: datetime | None) -> datetime | None:
    # SQLite drops the timezone on the way back out.
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def _timestamp(**kwargs) -> Any:
    return Field(sa_column=Column(DateTime(timezone=True), **kwargs), default=None)


class GroupRequest(SQLModel, table=True):
    __tablename__ = "grouprequest"

    request_id: UUID = Field(primary_key=True, default_factory=uuid7)
    group_id: UUID = Field(index=True)
    creator_id: UUID

    title: str = ""
    description: str = ""

    status: str = Field(default=RequestStatus.PENDING.value, index=True)

    votes: list[str] = Field(default_factory=list, sa_column=Column(JSON))
    participants: list[str] = Field(default_factory=list, sa_column=Column(JSON))
    teachers: list[str] = Field(default_factory=list, sa_column=Column(JSON))
    selected_teacher_id: UUID | None = None

    paid_participants: list[str] = Field(default_factory=list, sa_column=Column(JSON))
    payments: list[dict] = Field(default_factory=list, sa_column=Column(JSON))
    total_paid: Decimal = Field(
        default=Decimal("0"), sa_column=Column(Numeric(12, 2), nullable=False)
    )
    rate: Decimal = Field(
        default=Decimal("0"), sa_column=Column(Numeric(12, 2), nullable=False)
    )

    # Derived from the sets above and rewritten on every write.
    vote_count: int = 0
    participant_count: int = 0
    teacher_count: int = 0
    paid_count: int = 0

    payment_deadline: datetime | None = _timestamp()
    scheduled_date_time: datetime | None = _timestamp()
    conference_link: str | None = None
    cancellation_reason: str | None = None
    payment_expired_at: datetime | None = _timestamp()
    refund_status: str | None = None

    voting_opened_at: datetime | None = _timestamp()
    accepted_at: datetime | None = _timestamp()
    payment_completed_at: datetime | None = _timestamp()
    session_started_at: datetime | None = _timestamp()
    completed_at: datetime | None = _timestamp()
    cancelled_at: datetime | None = _timestamp()

    version: int = 0
    created_at: datetime = Field(sa_column=Column(DateTime(timezone=True)))
    updated_at: datetime = Field(sa_column=Column(DateTime(timezone=True)))

    @staticmethod
    def column_values(data: GroupRequestData) -> dict[str, Any]:
        """
        The column values representing `data`, with the derived counters
        recomputed from the sets.
        """
        return dict(
            request_id=data.request_id,
            group_id=data.group_id,
            creator_id=data.creator_id,
            title=data.title,
            description=data.description,
            status=data.status.value,
            votes=sorted(str(x) for x in data.votes),
            participants=sorted(str(x) for x in data.participants),
            teachers=sorted(str(x) for x in data.teachers),
            selected_teacher_id=data.selected_teacher_id,
            paid_participants=sorted(str(x) for x in data.paid_participants),
            payments=[p.model_dump(mode="json") for p in data.payments],
            total_paid=data.total_paid,
            rate=data.rate,
            vote_count=len(data.votes),
            participant_count=len(data.participants),
            teacher_count=len(data.teachers),
            paid_count=len(data.paid_participants),
            payment_deadline=data.payment_deadline,
            scheduled_date_time=data.scheduled_date_time,
            conference_link=data.conference_link,
            cancellation_reason=data.cancellation_reason,
            payment_expired_at=data.payment_expired_at,
            refund_status=data.refund_status,
            voting_opened_at=data.voting_opened_at,
            accepted_at=data.accepted_at,
            payment_completed_at=data.payment_completed_at,
            session_started_at=data.session_started_at,
            completed_at=data.completed_at,
            cancelled_at=data.cancelled_at,
            version=data.version,
            created_at=data.created_at,
            updated_at=data.updated_at,
        )

    @classmethod
    def from_core(cls, data: GroupRequestData) -> "GroupRequest":
        return cls(**cls.column_values(data))

    def to_core(self) -> GroupRequestData:
        """
        Convert this GroupRequest ORM object to a GroupRequestData snapshot.
        """
        return GroupRequestData(
            request_id=self.request_id,
            group_id=self.group_id,
            creator_id=self.creator_id,
            title=self.title,
            description=self.description,
            status=RequestStatus(self.status),
            votes=frozenset(UUID(x) for x in self.votes),
            participants=frozenset(UUID(x) for x in self.participants),
            teachers=frozenset(UUID(x) for x in self.teachers),
            selected_teacher_id=self.selected_teacher_id,
            paid_participants=frozenset(UUID(x) for x in self.paid_participants),
            payments=tuple(PaymentRecord.model_validate(p) for p in self.payments),
            total_paid=Decimal(self.total_paid),
            rate=Decimal(self.rate),
            payment_deadline=_aware(self.payment_deadline),
            scheduled_date_time=_aware(self.scheduled_date_time),
            conference_link=self.conference_link,
            cancellation_reason=self.cancellation_reason,
            payment_expired_at=_aware(self.payment_expired_at),
            refund_status=self.refund_status,
            voting_opened_at=_aware(self.voting_opened_at),
            accepted_at=_aware(self.accepted_at),
            payment_completed_at=_aware(self.payment_completed_at),
            session_started_at=_aware(self.session_started_at),
            completed_at=_aware(self.completed_at),
            cancelled_at=_aware(self.cancelled_at),
            version=self.version,
            created_at=_aware(self.created_at),
            updated_at=_aware(self.updated_at),
        )
