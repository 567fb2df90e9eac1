"""
Database session management for the request store.
"""

from sqlalchemy import URL, Engine
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import sessionmaker
from sqlmodel import SQLModel, create_engine

from grouplearn.database.meta import ALL_TABLES


class SyncSessionManager:
    """
    Synchronous sessions, used for one-off setup such as creating the schema:

    manager = SyncSessionManager(conn_url)
    manager.create_all()
    """

    connection_url: str | URL
    engine: Engine
    session: sessionmaker

    def __init__(self, connection_url: str | URL, echo: bool = False):
        self.connection_url = connection_url
        self.engine = create_engine(self.connection_url, echo=echo)
        self.session = sessionmaker(self.engine)

    def create_all(self):
        """
        Create the request and membership tables if they do not exist.
        """
        with self.engine.begin() as conn:
            SQLModel.metadata.create_all(
                conn, tables=[table.__table__ for table in ALL_TABLES]
            )

    def drop_all(self):
        """
        Drop every table. WARNING: this deletes all requests; only tests
        should call it.
        """
        with self.engine.begin() as conn:
            SQLModel.metadata.drop_all(
                conn, tables=[table.__table__ for table in ALL_TABLES]
            )


class AsyncSessionManager:
    """
    Asynchronous sessions used by the SQL request store:

    manager = AsyncSessionManager(conn_url)

    async with manager.session() as conn:
        async with conn.begin():
            row = await conn.get(GroupRequest, request_id)

    Sessions do not expire objects on commit so that snapshots can be built
    from rows after the transaction closes.
    """

    connection_url: str | URL
    engine: AsyncEngine
    session: async_sessionmaker[AsyncSession]

    def __init__(self, connection_url: str | URL, echo: bool = False):
        self.connection_url = connection_url
        self.engine = create_async_engine(self.connection_url, echo=echo)
        self.session = async_sessionmaker(self.engine, expire_on_commit=False)

    async def create_all(self):
        async with self.engine.begin() as conn:
            await conn.run_sync(
                SQLModel.metadata.create_all,
                tables=[table.__table__ for table in ALL_TABLES],
            )

    async def drop_all(self):
        async with self.engine.begin() as conn:
            await conn.run_sync(
                SQLModel.metadata.drop_all,
                tables=[table.__table__ for table in ALL_TABLES],
            )

    async def dispose(self):
        await self.engine.dispose()
