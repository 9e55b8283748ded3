"""APScheduler integration for FastAPI.

Runs the all-agents wallet sync on a fixed interval.
"""

import logging

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from arena.config import settings
from arena.utils.constants import INTERVAL_HOURS

logger = logging.getLogger(__name__)

scheduler = AsyncIOScheduler()

SYNC_JOB_ID = "sync_all_agents"


def _get_trigger(interval: str) -> IntervalTrigger:
    # Support arbitrary "<N>m" schedule intervals
    if interval.endswith("m") and interval[:-1].isdigit():
        return IntervalTrigger(minutes=int(interval[:-1]))
    hours = INTERVAL_HOURS.get(interval, 0.25)
    if hours < 1:
        return IntervalTrigger(minutes=int(hours * 60))
    return IntervalTrigger(hours=hours)


async def run_sync_job():
    """Scheduled entry point: sync every agent and log the summary."""
    from arena.engine.wallet_sync import get_sync_service

    try:
        result = await get_sync_service().sync_all()
    except Exception as e:
        logger.error(f"Scheduled sync crashed: {e}", exc_info=True)
        return
    for outcome in result.results:
        if not outcome.success:
            logger.warning(f"Scheduled sync: {outcome.name} ({outcome.wallet}) failed: {outcome.error}")


def add_sync_job(interval: str | None = None):
    """Add or replace the periodic sync job."""
    interval = interval or settings.sync_interval
    # replace_existing does not dedupe jobs still pending before start()
    if scheduler.get_job(SYNC_JOB_ID):
        scheduler.remove_job(SYNC_JOB_ID)
    scheduler.add_job(
        run_sync_job,
        trigger=_get_trigger(interval),
        id=SYNC_JOB_ID,
        name="Sync all agent wallets",
        replace_existing=True,
        max_instances=1,
        coalesce=True,
        misfire_grace_time=60,
    )
    logger.info(f"Scheduled wallet sync every {interval}")


def start_scheduler():
    """Start the scheduler with the sync job."""
    add_sync_job()
    scheduler.start()
    logger.info(f"Scheduler started with {len(scheduler.get_jobs())} jobs")


def stop_scheduler():
    """Shut down the scheduler."""
    if scheduler.running:
        scheduler.shutdown(wait=False)
    logger.info("Scheduler stopped")


def get_scheduler_status() -> dict:
    """Return current scheduler state for the API."""
    jobs = scheduler.get_jobs()
    return {
        "running": scheduler.running,
        "job_count": len(jobs),
        "jobs": [
            {
                "id": j.id,
                "name": j.name,
                "next_run": str(j.next_run_time) if getattr(j, "next_run_time", None) else None,
                "trigger": str(j.trigger),
            }
            for j in jobs
        ],
    }
