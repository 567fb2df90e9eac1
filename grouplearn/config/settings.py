"""
Main settings object.
"""

from datetime import timedelta
from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict
from sqlalchemy import URL

from grouplearn.core.engine import EngineConfig
from grouplearn.core.uuid import UUID

from .managers import AsyncSessionManager, SyncSessionManager


class Settings(BaseSettings):
    database_type: Literal["sqlite", "postgres"] = "sqlite"
    database_user: str | None = None
    database_password: str | None = None
    database_port: int | None = None
    database_host: str | None = None
    database_db: str = "grouplearn.db"

    database_echo: bool = False

    # Optimistic concurrency: how often a lost write is retried against a
    # fresh snapshot, and the base of the exponential backoff between tries.
    write_retry_attempts: int = 5
    write_retry_backoff: timedelta = timedelta(milliseconds=20)

    # Lifecycle policy
    payment_deadline_options: list[int] = [12, 24, 48, 72]
    session_lead_time: timedelta = timedelta(hours=1)
    conference_link_window: timedelta = timedelta(minutes=10)
    conference_base_url: str = "https://meet.jit.si"

    # Scheduler
    run_scheduler: bool = True
    scheduler_interval: timedelta = timedelta(seconds=30)
    system_actor_id: UUID = UUID("00000000-0000-0000-0000-000000000000")

    model_config = SettingsConfigDict(env_prefix="GROUPLEARN_", env_file=".env")

    def engine_config(self) -> EngineConfig:
        return EngineConfig(
            payment_deadline_options=frozenset(self.payment_deadline_options),
            session_lead_time=self.session_lead_time,
            conference_link_window=self.conference_link_window,
            conference_base_url=self.conference_base_url,
            system_actor_id=self.system_actor_id,
        )

    @property
    def sync_driver(self) -> str:
        match self.database_type:
            case "sqlite":
                return "sqlite"
            case "postgres":
                return "postgresql+psycopg"
            case _:
                raise ValueError

    @property
    def async_driver(self) -> str:
        match self.database_type:
            case "sqlite":
                return "sqlite+aiosqlite"
            case "postgres":
                return "postgresql+asyncpg"
            case _:
                raise ValueError

    def _uri(self, drivername: str) -> URL:
        return URL.create(
            drivername=drivername,
            username=self.database_user,
            password=self.database_password,
            host=self.database_host,
            port=self.database_port,
            database=self.database_db,
        )

    @property
    def sync_uri(self) -> URL:
        return self._uri(self.sync_driver)

    def sync_manager(self) -> SyncSessionManager:
        return SyncSessionManager(connection_url=self.sync_uri, echo=self.database_echo)

    @property
    def async_uri(self) -> URL:
        return self._uri(self.async_driver)

    def async_manager(self) -> AsyncSessionManager:
        return AsyncSessionManager(
            connection_url=self.async_uri, echo=self.database_echo
        )
