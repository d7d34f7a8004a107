"""Async database engine and session management.

Configures SQLAlchemy async engine with connection pooling and provides
dependency injection for database sessions.
"""

from collections.abc import AsyncGenerator

from sqlalchemy.ext.asyncio import (
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from access_gate.core.config import settings

# Bound every statement so a stalled database cannot hold a request forever
_connect_args = (
    {
        "timeout": settings.database_timeout_seconds,
        "command_timeout": settings.database_timeout_seconds,
    }
    if settings.database_url.startswith("postgresql+asyncpg")
    else {}
)

engine = create_async_engine(
    settings.database_url,
    echo=settings.environment == "development",
    pool_pre_ping=True,
    connect_args=_connect_args,
)

async_session_factory = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """Dependency that provides a database session."""
    async with async_session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
