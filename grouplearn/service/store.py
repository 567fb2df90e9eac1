"""
Versioned storage for group requests.

Every write is a compare-and-swap against the version the writer last read.
Nothing is ever locked for the duration of a read-modify-write cycle; a lost
race surfaces as `Conflict` and the caller retries against a fresh snapshot.
"""

import abc
import asyncio
from typing import Callable, Iterable

from sqlalchemy import select, update
from structlog import get_logger

from grouplearn.config.managers import AsyncSessionManager
from grouplearn.core.errors import Conflict, RequestNotFound
from grouplearn.core.request import GroupRequestData, RequestStatus
from grouplearn.core.uuid import UUID
from grouplearn.database.request import GroupRequest

Subscriber = Callable[[GroupRequestData], None]


class RequestStore(abc.ABC):
    """
    The base class for request stores. Downstream must implement:

    - read: the current snapshot and its version.
    - write_if_version: persist a new snapshot only if the stored version
                        still matches, raising `Conflict` otherwise.
    - create: persist a brand new request.
    - list_by_status: snapshots of every request in the given statuses, used
                      by the scheduler to find deadlines.

    Subscriptions are handled here: observers registered through `subscribe`
    receive every snapshot that is successfully written.
    """

    def __init__(self):
        self._subscribers: dict[UUID, list[Subscriber]] = {}

    @abc.abstractmethod
    async def read(self, request_id: UUID) -> tuple[GroupRequestData, int]:
        raise NotImplementedError

    @abc.abstractmethod
    async def write_if_version(
        self, request_id: UUID, expected_version: int, state: GroupRequestData
    ) -> GroupRequestData:
        raise NotImplementedError

    @abc.abstractmethod
    async def create(self, state: GroupRequestData) -> GroupRequestData:
        raise NotImplementedError

    @abc.abstractmethod
    async def list_by_status(
        self, statuses: Iterable[RequestStatus]
    ) -> list[GroupRequestData]:
        raise NotImplementedError

    def subscribe(self, request_id: UUID, callback: Subscriber) -> Callable[[], None]:
        """
        Register `callback` for new snapshots of `request_id`. Returns a
        function that removes the subscription.
        """
        self._subscribers.setdefault(request_id, []).append(callback)

        def unsubscribe():
            callbacks = self._subscribers.get(request_id, [])
            if callback in callbacks:
                callbacks.remove(callback)
            if not callbacks:
                self._subscribers.pop(request_id, None)

        return unsubscribe

    def _publish(self, state: GroupRequestData):
        for callback in list(self._subscribers.get(state.request_id, [])):
            try:
                callback(state)
            except Exception as e:
                # Observers only ever see eventually consistent views; a
                # broken observer must not fail the write that succeeded.
                get_logger().warning(
                    "store.subscriber_failed",
                    request_id=str(state.request_id),
                    error=repr(e),
                )


class MemoryRequestStore(RequestStore):
    """
    An in-process store, used for testing and for single-process deployments.
    """

    def __init__(self):
        super().__init__()
        self._requests: dict[UUID, GroupRequestData] = {}
        self._lock = asyncio.Lock()
        self.conflicts = 0

    async def read(self, request_id: UUID) -> tuple[GroupRequestData, int]:
        # Yield as a real round trip would, so that concurrent callers
        # interleave between read and write.
        await asyncio.sleep(0)

        try:
            state = self._requests[request_id]
        except KeyError:
            raise RequestNotFound(f"Request with ID {request_id} not found")

        return state, state.version

    async def write_if_version(
        self, request_id: UUID, expected_version: int, state: GroupRequestData
    ) -> GroupRequestData:
        await asyncio.sleep(0)

        async with self._lock:
            current = self._requests.get(request_id)

            if current is None:
                raise RequestNotFound(f"Request with ID {request_id} not found")

            if current.version != expected_version:
                self.conflicts += 1
                raise Conflict(
                    f"Request {request_id} is at version {current.version}, "
                    f"not {expected_version}"
                )

            new = state.model_copy(update={"version": expected_version + 1})
            self._requests[request_id] = new

        self._publish(new)

        return new

    async def create(self, state: GroupRequestData) -> GroupRequestData:
        async with self._lock:
            if state.request_id in self._requests:
                raise Conflict(f"Request {state.request_id} already exists")
            self._requests[state.request_id] = state

        return state

    async def list_by_status(
        self, statuses: Iterable[RequestStatus]
    ) -> list[GroupRequestData]:
        statuses = set(statuses)
        return [x for x in self._requests.values() if x.status in statuses]


class SQLRequestStore(RequestStore):
    """
    A store backed by the `grouprequest` table. The compare-and-swap is a
    single `UPDATE ... WHERE version = :expected` statement, so it is atomic
    in any database without holding row locks across the caller's work.
    """

    manager: AsyncSessionManager

    def __init__(self, manager: AsyncSessionManager):
        super().__init__()
        self.manager = manager

    async def read(self, request_id: UUID) -> tuple[GroupRequestData, int]:
        async with self.manager.session() as conn:
            row = await conn.get(GroupRequest, request_id)

            if row is None:
                raise RequestNotFound(f"Request with ID {request_id} not found")

            state = row.to_core()

        return state, state.version

    async def write_if_version(
        self, request_id: UUID, expected_version: int, state: GroupRequestData
    ) -> GroupRequestData:
        new = state.model_copy(update={"version": expected_version + 1})

        values = GroupRequest.column_values(new)
        values.pop("request_id")

        async with self.manager.session() as conn:
            async with conn.begin():
                result = await conn.execute(
                    update(GroupRequest)
                    .where(GroupRequest.request_id == request_id)
                    .where(GroupRequest.version == expected_version)
                    .values(**values)
                )

                if result.rowcount == 0:
                    exists = await conn.get(GroupRequest, request_id)
                    if exists is None:
                        raise RequestNotFound(
                            f"Request with ID {request_id} not found"
                        )
                    raise Conflict(
                        f"Request {request_id} is at version {exists.version}, "
                        f"not {expected_version}"
                    )

        self._publish(new)

        return new

    async def create(self, state: GroupRequestData) -> GroupRequestData:
        async with self.manager.session() as conn:
            async with conn.begin():
                conn.add(GroupRequest.from_core(state))

        return state

    async def list_by_status(
        self, statuses: Iterable[RequestStatus]
    ) -> list[GroupRequestData]:
        values = [RequestStatus(x).value for x in statuses]

        async with self.manager.session() as conn:
            result = await conn.execute(
                select(GroupRequest).where(GroupRequest.status.in_(values))
            )
            rows = result.scalars().all()

            return [row.to_core() for row in rows]
