"""Background task scheduler using APScheduler.

Runs one maintenance job: purging finished estimations from the in-memory
registry once they are older than `ESTIMATION_RETENTION_MINUTES`.
"""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from apscheduler.schedulers.asyncio import (  # type: ignore[import-untyped]
    AsyncIOScheduler,
)
from apscheduler.triggers.interval import (  # type: ignore[import-untyped]
    IntervalTrigger,
)

from core.config import get_settings
from dependencies.estimation import get_estimation_service


logger = logging.getLogger(__name__)

scheduler: AsyncIOScheduler | None = None


async def run_estimation_cleanup() -> None:
    """Scheduled job: drop terminal estimations past the retention window."""
    settings = get_settings()
    try:
        purged = get_estimation_service().purge_expired(
            settings.estimation_retention_seconds
        )
    except Exception as e:
        logger.error(f"Estimation cleanup failed: {e}", exc_info=True)
        return
    if purged > 0:
        logger.info(f"Estimation cleanup: {purged} records purged")


def setup_scheduler() -> AsyncIOScheduler | None:
    """Initialize APScheduler with the estimation cleanup job.

    Returns None when `ESTIMATION_CLEANUP_INTERVAL_MINUTES` is 0.
    """
    global scheduler
    interval = get_settings().ESTIMATION_CLEANUP_INTERVAL_MINUTES
    if interval <= 0:
        logger.info("Estimation cleanup disabled")
        scheduler = None
        return None

    scheduler = AsyncIOScheduler(timezone="UTC")
    scheduler.add_job(
        run_estimation_cleanup,
        trigger=IntervalTrigger(minutes=interval),
        id="cleanup_estimations",
        name="Expired estimation cleanup",
        replace_existing=True,
    )
    logger.info(f"Scheduler configured: estimation cleanup ({interval} min)")
    return scheduler


@asynccontextmanager
async def scheduler_lifespan() -> AsyncGenerator[None, None]:
    """Context manager for scheduler lifecycle.

    Usage in FastAPI:
        @asynccontextmanager
        async def lifespan(app: FastAPI):
            async with scheduler_lifespan():
                yield
    """
    setup_scheduler()
    if scheduler:
        scheduler.start()
        logger.info("Background scheduler started")
    try:
        yield
    finally:
        if scheduler and scheduler.running:
            scheduler.shutdown(wait=True)
            logger.info("Background scheduler shut down")
