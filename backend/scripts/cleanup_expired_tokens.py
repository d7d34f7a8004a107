"""Expire access tokens past their 24-hour lifetime.

Standalone maintenance script for cron. Safe to run repeatedly and
concurrently with live traffic.

Usage:
    cd backend && python -m scripts.cleanup_expired_tokens
"""

import logging

from sqlalchemy.ext.asyncio import AsyncSession

from access_gate.repositories.access_token_repository import AccessTokenRepository

logger = logging.getLogger(__name__)


async def run_cleanup(session: AsyncSession) -> int:
    """Expire stale tokens and commit.

    Args:
        session: Active async database session.

    Returns:
        Number of tokens moved to expired.
    """
    expired = await AccessTokenRepository.cleanup_expired(session)
    await session.commit()
    logger.info("Expired %d access tokens", expired)
    return expired


async def main() -> None:
    """CLI entry point: run cleanup against the configured database."""
    from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine

    from access_gate.core.config import settings

    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    engine = create_async_engine(settings.database_url, echo=False)
    factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    async with factory() as session:
        await run_cleanup(session)

    await engine.dispose()


if __name__ == "__main__":
    import asyncio

    asyncio.run(main())
