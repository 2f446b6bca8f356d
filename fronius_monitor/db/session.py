"""
Async database engine and session factory.

Uses SQLAlchemy 2.x async engine with the asyncpg driver for PostgreSQL.
Provides module-level engine and session factory singletons, plus an
async generator for FastAPI dependency injection.

CHANGELOG:
- 2026-10-18: Take the database URL from AppSettings instead of os.environ
- 2026-10-18: Initial creation
"""

from collections.abc import AsyncGenerator

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

# Module-level singletons, initialized via init_engine().
async_engine: AsyncEngine | None = None
async_session_factory: async_sessionmaker[AsyncSession] | None = None


def create_engine(database_url: str) -> AsyncEngine:
    """Create an async SQLAlchemy engine.

    Args:
        database_url: SQLAlchemy async URL.

    Returns:
        AsyncEngine: Configured async engine for PostgreSQL via asyncpg.
    """
    return create_async_engine(database_url, echo=False, pool_pre_ping=True)


def create_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Create an async session factory bound to an engine.

    Args:
        engine: Async engine to bind sessions to.

    Returns:
        async_sessionmaker: Factory for creating AsyncSession instances.
    """
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


def init_engine(database_url: str) -> None:
    """Initialize the module-level async engine and session factory.

    Call this at application startup (e.g., in a FastAPI lifespan event).
    Safe to call multiple times; subsequent calls are no-ops.

    Args:
        database_url: SQLAlchemy async URL.
    """
    global async_engine, async_session_factory  # noqa: PLW0603
    if async_engine is None:
        async_engine = create_engine(database_url)
        async_session_factory = create_session_factory(async_engine)


async def dispose_engine() -> None:
    """Dispose the module-level engine and reset the singletons."""
    global async_engine, async_session_factory  # noqa: PLW0603
    if async_engine is not None:
        await async_engine.dispose()
    async_engine = None
    async_session_factory = None


async def get_async_session() -> AsyncGenerator[AsyncSession, None]:
    """Yield an async database session for FastAPI dependency injection.

    The session is automatically closed after the request completes.

    Yields:
        AsyncSession: An async SQLAlchemy session.

    Raises:
        RuntimeError: If init_engine() has not been called.
    """
    if async_session_factory is None:
        raise RuntimeError("Database engine not initialized; call init_engine()")
    async with async_session_factory() as session:
        yield session
