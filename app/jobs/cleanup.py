"""Daily sweep of expired recommendations."""

import logging

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.domain.models import utcnow
from app.services.recommendation import delete_expired

logger = logging.getLogger(__name__)

JOB_ID = "recommendation_cleanup"


async def run_cleanup(session_factory: async_sessionmaker[AsyncSession]) -> int | None:
    """Delete expired recommendations. Never raises; returns None on failure."""
    logger.info("Running recommendation cleanup job...")
    try:
        async with session_factory() as session:
            deleted = await delete_expired(session, utcnow())
            await session.commit()
    except Exception:
        logger.exception("Error in recommendation cleanup job")
        return None
    return deleted


def create_cleanup_scheduler(
    session_factory: async_sessionmaker[AsyncSession],
    hour: int = 2,
    minute: int = 0,
) -> AsyncIOScheduler:
    """Scheduler with the cleanup job registered; the caller starts and stops it."""
    scheduler = AsyncIOScheduler(timezone="UTC")
    scheduler.add_job(
        run_cleanup,
        trigger=CronTrigger(hour=hour, minute=minute, timezone="UTC"),
        id=JOB_ID,
        args=[session_factory],
        replace_existing=True,
        max_instances=1,
        coalesce=True,
    )
    logger.info("Recommendation cleanup job scheduled daily at %02d:%02d UTC", hour, minute)
    return scheduler
