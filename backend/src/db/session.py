"""Async SQLAlchemy engine and session factory."""
from collections.abc import AsyncGenerator, Awaitable, Callable

from fastapi import Request
from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from core.config import Settings

_AFTER_COMMIT = "after_commit_callbacks"


class NotifyingSession(AsyncSession):
    """
    AsyncSession that runs queued callbacks once its transaction has committed.

    Callbacks run in the order they were queued, only after COMMIT succeeds,
    so anything they trigger (cache eviction) happens when other sessions can
    already see the new rows. A rollback discards them.
    """

    def run_after_commit(self, callback: Callable[[], Awaitable[None]]) -> None:
        """Queue an async callback for the next successful commit."""
        self.info.setdefault(_AFTER_COMMIT, []).append(callback)

    async def commit(self) -> None:
        """Commit, then run the callbacks queued during this transaction."""
        await super().commit()
        callbacks = self.info.pop(_AFTER_COMMIT, [])
        for callback in callbacks:
            await callback()

    async def rollback(self) -> None:
        """Roll back and drop pending callbacks."""
        self.info.pop(_AFTER_COMMIT, None)
        await super().rollback()

    async def close(self) -> None:
        """Close the session; callbacks of an uncommitted transaction never run."""
        self.info.pop(_AFTER_COMMIT, None)
        await super().close()


def run_after_commit(session: AsyncSession, callback: Callable[[], Awaitable[None]]) -> None:
    """
    Queue callback to run after session's transaction commits.

    Raises:
        TypeError: If session was not created by create_session_factory.
    """
    if not isinstance(session, NotifyingSession):
        raise TypeError(
            f"{type(session).__name__} cannot run after-commit callbacks; "
            "use a session from create_session_factory",
        )
    session.run_after_commit(callback)


def create_engine(settings: Settings) -> AsyncEngine:
    """Create the async engine for the configured database."""
    options: dict = {"echo": False, "pool_pre_ping": True}
    # SQLite has no server-side pool to size
    if make_url(settings.database_url).get_backend_name() != "sqlite":
        options["pool_size"] = settings.db_pool_size
        options["max_overflow"] = settings.db_max_overflow
    return create_async_engine(settings.database_url, **options)


def create_session_factory(engine: AsyncEngine) -> async_sessionmaker[NotifyingSession]:
    """Create the session factory shared by request sessions and user stores."""
    return async_sessionmaker(
        engine,
        class_=NotifyingSession,
        expire_on_commit=False,
    )


async def get_async_session(request: Request) -> AsyncGenerator[AsyncSession]:
    """
    Yield an async database session.

    Uses unit-of-work pattern: services use flush() for refreshing objects,
    commit happens once here at request end. This ensures atomic transactions
    per request - if anything fails, all changes are rolled back.
    """
    session_factory: async_sessionmaker[AsyncSession] = request.app.state.session_factory
    async with session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
