"""
Group membership ORM. The membership directory itself is maintained
elsewhere; this table is the read model the request service consults.
"""

from datetime import datetime, timezone

from sqlalchemy import Column, DateTime
from sqlmodel import Field, SQLModel

from grouplearn.core.uuid import UUID


class GroupMember(SQLModel, table=True):
    """
    A record of a user's membership of a group.
    """

    __tablename__ = "groupmember"

    group_id: UUID = Field(primary_key=True)
    user_id: UUID = Field(primary_key=True)
    joined_at: datetime = Field(
        sa_column=Column(DateTime(timezone=True)),
        default_factory=lambda: datetime.now(tz=timezone.utc),
    )
