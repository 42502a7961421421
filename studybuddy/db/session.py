"""Async engine lifecycle and request-scoped sessions.

The engine is created lazily by the first caller. Concurrent first callers
await one shared initialization task, so exactly one engine exists per
manager. After a failure or an observed disconnect the next caller starts a
fresh initialization.
"""
import asyncio
import enum
import logging
from collections.abc import AsyncIterator, Awaitable
from contextlib import asynccontextmanager
from typing import Annotated, TypeVar

from fastapi import Depends
from sqlalchemy import text
from sqlalchemy.exc import IntegrityError, InterfaceError, OperationalError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase

from studybuddy.core.config import Settings, get_settings
from studybuddy.core.errors import Internal, Unavailable
from studybuddy.core.resilience import bounded

logger = logging.getLogger(__name__)

T = TypeVar("T")


class Base(DeclarativeBase):
    pass


class ConnectionState(str, enum.Enum):
    UNINITIALIZED = "uninitialized"
    CONNECTING = "connecting"
    READY = "ready"
    FAILED = "failed"


class DatabaseManager:
    """Connect-once holder for the async engine and its sessionmaker."""

    def __init__(
        self,
        url: str,
        *,
        connect_timeout: float = 10.0,
        query_timeout: float = 5.0,
        retry_backoff: float = 0.2,
        create_schema: bool = True,
        echo: bool = False,
    ) -> None:
        self.url = url
        self.connect_timeout = connect_timeout
        self.query_timeout = query_timeout
        self.retry_backoff = retry_backoff
        self._create_schema = create_schema
        self._echo = echo
        self._state = ConnectionState.UNINITIALIZED
        self._engine: AsyncEngine | None = None
        self._sessionmaker: async_sessionmaker[AsyncSession] | None = None
        self._init_task: asyncio.Task | None = None
        self.connect_attempts = 0

    @classmethod
    def from_settings(cls, settings: Settings) -> "DatabaseManager":
        return cls(
            settings.database_url,
            connect_timeout=settings.db_connect_timeout_seconds,
            query_timeout=settings.db_timeout_seconds,
            retry_backoff=settings.retry_backoff_seconds,
            echo=settings.debug,
        )

    @property
    def state(self) -> ConnectionState:
        return self._state

    async def connect(self) -> AsyncEngine:
        """Return the ready engine, starting or joining initialization."""
        if self._state is ConnectionState.READY and self._engine is not None:
            return self._engine
        if self._init_task is None or self._init_task.done():
            # no await between the check and the assignment: one task per round
            self._init_task = asyncio.ensure_future(self._initialize())
        return await asyncio.shield(self._init_task)

    async def _initialize(self) -> AsyncEngine:
        self._state = ConnectionState.CONNECTING
        self.connect_attempts += 1
        if self._engine is not None:
            stale, self._engine = self._engine, None
            await stale.dispose()
        engine = create_async_engine(self.url, echo=self._echo, pool_pre_ping=True)
        try:
            await asyncio.wait_for(self._bootstrap(engine), self.connect_timeout)
        except (asyncio.TimeoutError, SQLAlchemyError, OSError) as e:
            self._state = ConnectionState.FAILED
            await engine.dispose()
            logger.warning("Database connection failed: %s", e)
            raise Unavailable("database connection failed") from e

        self._engine = engine
        self._sessionmaker = async_sessionmaker(
            bind=engine,
            class_=AsyncSession,
            expire_on_commit=False,
            autoflush=False,
        )
        self._state = ConnectionState.READY
        logger.info("Database connected (%s)", engine.url.render_as_string(hide_password=True))
        return engine

    async def _bootstrap(self, engine: AsyncEngine) -> None:
        async with engine.begin() as conn:
            await conn.execute(text("SELECT 1"))
            if self._create_schema:
                # register models on the metadata before create_all
                import studybuddy.models  # noqa: F401

                await conn.run_sync(Base.metadata.create_all)

    async def guard(self, awaitable: Awaitable[T], operation: str) -> T:
        """Await a store call under the query timeout and translate failures.

        IntegrityError passes through untouched so callers can map it to a
        domain conflict.
        """
        try:
            return await bounded(awaitable, self.query_timeout, operation)
        except IntegrityError:
            raise
        except (OperationalError, InterfaceError) as e:
            self.mark_disconnected()
            logger.warning("%s failed: %s", operation, e)
            raise Unavailable(f"{operation} failed") from e
        except SQLAlchemyError as e:
            logger.exception("%s raised a database error", operation)
            raise Internal(f"{operation} failed") from e

    def mark_disconnected(self) -> None:
        """Allow re-initialization after a connectivity error was observed."""
        if self._state is ConnectionState.READY:
            logger.warning("Database marked disconnected; next request reconnects")
            self._state = ConnectionState.UNINITIALIZED
            self._init_task = None

    async def close(self) -> None:
        if self._engine is not None:
            await self._engine.dispose()
        self._engine = None
        self._sessionmaker = None
        self._init_task = None
        self._state = ConnectionState.UNINITIALIZED

    @asynccontextmanager
    async def session(self) -> AsyncIterator[AsyncSession]:
        """Session that rolls back on error; callers commit explicitly."""
        await self.connect()
        assert self._sessionmaker is not None
        async with self._sessionmaker() as session:
            try:
                yield session
            except Exception:
                await session.rollback()
                raise


_manager: DatabaseManager | None = None


def get_database_manager() -> DatabaseManager:
    global _manager
    if _manager is None:
        _manager = DatabaseManager.from_settings(get_settings())
    return _manager


async def get_db(
    manager: Annotated[DatabaseManager, Depends(get_database_manager)],
) -> AsyncIterator[AsyncSession]:
    """FastAPI dependency: one session per request."""
    async with manager.session() as session:
        yield session
