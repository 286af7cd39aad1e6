from typing import AsyncGenerator, Optional

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import AsyncAdaptedQueuePool

from salesops.core.config import settings


def build_engine(database_url: Optional[str] = None) -> AsyncEngine:
    """Async engine with a pool sized from settings.

    A bulk inclusion-flag batch holds up to ``INCLUSION_BATCH_CONCURRENCY``
    sessions at once, so the pool must be at least that large.
    """
    return create_async_engine(
        database_url or settings.DATABASE_URL,
        echo=settings.DEBUG,
        poolclass=AsyncAdaptedQueuePool,
        pool_size=max(settings.DB_POOL_SIZE, settings.INCLUSION_BATCH_CONCURRENCY),
        max_overflow=settings.DB_MAX_OVERFLOW,
        pool_pre_ping=True,
    )


def build_session_factory(bind: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(bind, class_=AsyncSession, expire_on_commit=False)


engine = build_engine()

AsyncSessionLocal = build_session_factory(engine)


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """Request-scoped session; uncommitted work is rolled back on error."""
    async with AsyncSessionLocal() as session:
        try:
            yield session
        except Exception:
            await session.rollback()
            raise
