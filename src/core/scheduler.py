"""Scheduler for the recurring task generation job."""

import logging
from datetime import datetime
from typing import Any
from zoneinfo import ZoneInfo

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger

from src.core.config import constants, settings
from src.core.db_client import AppwriteClient
from src.core.scheduler_tracker import run_tracked_job
from src.services.task_generation_service import run_once
from src.services.task_store import AppwriteTaskStore


logger = logging.getLogger(__name__)

# Global scheduler instance
scheduler = AsyncIOScheduler(timezone=settings.scheduler_timezone)


async def generate_recurring_tasks() -> dict[str, Any]:
    """Generate task instances for every due recurring template.

    Runs daily (01:00 by default). Opens an Appwrite client for the duration of
    the run only, and returns the report counts for the job tracker.

    Raises:
        StoreReadError: If templates cannot be listed
    """
    logger.info("Running recurring task generation job")

    now = datetime.now(ZoneInfo(settings.scheduler_timezone))
    async with AppwriteClient.from_settings() as client:
        report = await run_once(store=AppwriteTaskStore(client=client), now=now)

    if report.failed:
        logger.warning(
            "Recurring task generation finished with failures",
            extra={"failures": [failure.model_dump(mode="json") for failure in report.failures]},
        )

    return report.model_dump(mode="json", include={"run_at", "evaluated", "generated", "skipped", "failed"})


async def run_generation_job() -> None:
    """Scheduled entry point: generation wrapped with job tracking."""
    await run_tracked_job(generate_recurring_tasks, constants.GENERATION_JOB_ID)


def start_scheduler() -> None:
    """Start the scheduler and register the generation job.

    This should be called during FastAPI app startup.
    """
    logger.info("Starting scheduler")

    # max_instances=1 keeps runs from overlapping; missed fires collapse into one
    job_options: dict[str, Any] = {
        "trigger": CronTrigger(
            hour=settings.generation_hour,
            minute=settings.generation_minute,
            timezone=settings.scheduler_timezone,
        ),
        "id": constants.GENERATION_JOB_ID,
        "name": "Generate Recurring Tasks",
        "replace_existing": True,
        "max_instances": 1,
        "coalesce": True,
    }
    if settings.generation_run_on_startup:
        job_options["next_run_time"] = datetime.now(ZoneInfo(settings.scheduler_timezone))

    scheduler.add_job(run_generation_job, **job_options)
    logger.info(
        f"Scheduled recurring task generation: daily at {settings.generation_hour:02d}:"
        f"{settings.generation_minute:02d} ({settings.scheduler_timezone})"
    )

    scheduler.start()
    logger.info("Scheduler started successfully")


def stop_scheduler() -> None:
    """Stop the scheduler.

    This should be called during FastAPI app shutdown.
    """
    logger.info("Stopping scheduler")
    scheduler.shutdown(wait=True)
    logger.info("Scheduler stopped")
