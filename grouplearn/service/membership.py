"""
Group membership lookups. Voting, joining and applying to teach all require
the actor to belong to the request's group.
"""

import abc
import asyncio

from sqlalchemy import delete, select
from structlog.typing import FilteringBoundLogger

from grouplearn.config.managers import AsyncSessionManager
from grouplearn.core.uuid import UUID
from grouplearn.database.group import GroupMember


class GroupMembershipDirectory(abc.ABC):
    """
    The base class for membership directories. Downstream must implement:

    - is_member: whether `user_id` currently belongs to `group_id`.
    """

    @abc.abstractmethod
    async def is_member(self, group_id: UUID, user_id: UUID) -> bool:
        raise NotImplementedError


class StaticMembership(GroupMembershipDirectory):
    """
    A fixed, in-memory directory, used for testing.
    """

    groups: dict[UUID, set[UUID]]

    def __init__(self, groups: dict[UUID, set[UUID]] | None = None):
        self.groups = {k: set(v) for k, v in (groups or {}).items()}

    def add(self, group_id: UUID, *user_ids: UUID):
        self.groups.setdefault(group_id, set()).update(user_ids)

    def remove(self, group_id: UUID, user_id: UUID):
        self.groups.get(group_id, set()).discard(user_id)

    async def is_member(self, group_id: UUID, user_id: UUID) -> bool:
        await asyncio.sleep(0)
        return user_id in self.groups.get(group_id, set())


class SQLMembership(GroupMembershipDirectory):
    """
    Membership read from the `groupmember` table.
    """

    manager: AsyncSessionManager

    def __init__(self, manager: AsyncSessionManager):
        self.manager = manager

    async def is_member(self, group_id: UUID, user_id: UUID) -> bool:
        async with self.manager.session() as conn:
            row = await conn.get(GroupMember, (group_id, user_id))
            return row is not None

    async def add_member(
        self, group_id: UUID, user_id: UUID, log: FilteringBoundLogger
    ) -> None:
        log = log.bind(group_id=str(group_id), user_id=str(user_id))

        async with self.manager.session() as conn:
            async with conn.begin():
                if await conn.get(GroupMember, (group_id, user_id)) is not None:
                    await log.ainfo("membership.already_member")
                    return
                conn.add(GroupMember(group_id=group_id, user_id=user_id))

        await log.ainfo("membership.added")

    async def remove_member(
        self, group_id: UUID, user_id: UUID, log: FilteringBoundLogger
    ) -> None:
        log = log.bind(group_id=str(group_id), user_id=str(user_id))

        async with self.manager.session() as conn:
            async with conn.begin():
                await conn.execute(
                    delete(GroupMember)
                    .where(GroupMember.group_id == group_id)
                    .where(GroupMember.user_id == user_id)
                )

        await log.ainfo("membership.removed")

    async def members(self, group_id: UUID) -> set[UUID]:
        async with self.manager.session() as conn:
            result = await conn.execute(
                select(GroupMember.user_id).where(GroupMember.group_id == group_id)
            )
            return set(result.scalars().all())
