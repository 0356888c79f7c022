"""Database engine and per-request sessions."""
from collections.abc import AsyncGenerator

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from core.config import Settings, get_settings

APPLICATION_NAME = "linkshelf"


def create_engine_from_settings(settings: Settings) -> AsyncEngine:
    """
    Build the async engine with the configured pool limits.

    Connections report APPLICATION_NAME to PostgreSQL so they can be told
    apart in pg_stat_activity. pool_timeout bounds how long a request waits
    for a connection before the 503 handler answers it.
    """
    return create_async_engine(
        settings.database_url,
        pool_pre_ping=True,
        pool_size=settings.db_pool_size,
        max_overflow=settings.db_max_overflow,
        pool_timeout=settings.db_pool_timeout,
        connect_args={"server_settings": {"application_name": APPLICATION_NAME}},
    )


engine = create_engine_from_settings(get_settings())

async_session_factory = async_sessionmaker(engine, expire_on_commit=False)


async def get_async_session() -> AsyncGenerator[AsyncSession]:
    """
    Yield one session per request, committed after the handler returns.

    Services only flush, so a request's writes (a bookmark and its tags, a
    favorite and its counter) land together or not at all.
    """
    async with async_session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
