"""Delete spent one-time codes and expired sessions.

Standalone maintenance script, safe to run on a schedule (cron, k8s
CronJob). Lookups already ignore these rows, so deleting them only
reclaims space.

Usage:
    cd backend && python -m scripts.purge_expired_auth
"""

import logging

from sqlalchemy.ext.asyncio import AsyncSession

logger = logging.getLogger(__name__)


async def main() -> None:
    """CLI entry point: purge against the configured database."""
    from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine

    from tasktrack.core.config import settings
    from tasktrack.services.retention_cleanup import purge_expired_auth_records

    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    engine = create_async_engine(settings.database_url, echo=False)
    factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    async with factory() as session:
        result = await purge_expired_auth_records(session)
        await session.commit()

    await engine.dispose()

    logger.info("Final stats: %s", result)


if __name__ == "__main__":
    import asyncio

    asyncio.run(main())
