"""must-dos - recurring task generator for the household task tracker."""

import logging
import sys
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

import httpx
from fastapi import FastAPI
from fastapi.responses import JSONResponse

from src.core import scheduler_tracker
from src.core.config import constants, settings
from src.core.logging import configure_observability, instrument_fastapi
from src.core.redis_client import redis_client
from src.core.scheduler import scheduler, start_scheduler, stop_scheduler


logger = logging.getLogger(__name__)


async def check_appwrite_connectivity() -> None:
    """Verify the Appwrite endpoint answers.

    Raises:
        ConnectionError: If unable to reach Appwrite
    """
    try:
        async with httpx.AsyncClient(timeout=constants.API_TIMEOUT_SECONDS) as client:
            response = await client.get(
                f"{settings.appwrite_endpoint.rstrip('/')}/health/version",
                headers={"X-Appwrite-Project": settings.appwrite_project_id},
            )
            if response.is_success:
                logger.info("startup_validation", extra={"service": "appwrite", "status": "ok"})
            else:
                raise ConnectionError(f"Appwrite returned status {response.status_code}")
    except Exception as e:
        logger.error("startup_validation", extra={"service": "appwrite", "status": "failed", "error": str(e)})
        raise ConnectionError(f"Appwrite connectivity check failed: {e}") from e


async def check_redis_connectivity() -> None:
    """Verify Redis connectivity (optional service).

    Only checks if Redis is configured. Logs a warning if unavailable but doesn't fail;
    job history then stays in memory.
    """
    if not redis_client.is_available:
        logger.info("startup_validation", extra={"service": "redis", "status": "disabled"})
        return

    if await redis_client.ping():
        logger.info("startup_validation", extra={"service": "redis", "status": "ok"})
    else:
        logger.warning("startup_validation", extra={"service": "redis", "status": "unavailable"})


async def validate_startup_configuration() -> None:
    """Validate required credentials and external service connectivity.

    Raises:
        SystemExit: If the Appwrite API key is missing or Appwrite is unreachable
    """
    logger.info("startup_validation_begin")

    try:
        settings.require_credential("appwrite_api_key", "Appwrite API key")
        logger.info("startup_validation", extra={"stage": "credentials", "status": "ok"})

        await check_appwrite_connectivity()
        await check_redis_connectivity()

        logger.info("startup_validation_complete", extra={"status": "ok"})
    except (ValueError, ConnectionError) as e:
        logger.error("startup_validation_failed", extra={"error": str(e)})
        print(f"\nStartup validation failed: {e}\n", file=sys.stderr)  # noqa: T201
        sys.exit(1)


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncIterator[None]:
    """Application lifespan context manager."""
    configure_observability()

    await validate_startup_configuration()

    start_scheduler()
    yield
    stop_scheduler()
    await redis_client.close()


app = FastAPI(
    title="must-dos",
    description="Recurring task generator for the household task tracker",
    version="0.1.0",
    lifespan=lifespan,
)

instrument_fastapi(app)


@app.get("/health")
async def health_check() -> JSONResponse:
    """Health check endpoint."""
    return JSONResponse(content={"status": "healthy"}, status_code=200)


def _scheduler_status(job_status: dict, dead_letters: list[dict[str, str]]) -> str:
    if dead_letters:
        return "critical"
    if job_status["consecutive_failures"] > 0:
        return "degraded"
    return "healthy"


@app.get("/health/scheduler")
async def scheduler_health_check() -> JSONResponse:
    """Report the generation job's last outcome, next run and dead letters.

    Returns 503 when the last run failed or the job is in the dead letter queue.
    """
    tracker = scheduler_tracker.job_tracker
    job_status = await tracker.get_job_status(constants.GENERATION_JOB_ID)
    dead_letters = tracker.get_dead_letter_queue()

    scheduled_job = scheduler.get_job(constants.GENERATION_JOB_ID)
    next_run = scheduled_job.next_run_time.isoformat() if scheduled_job and scheduled_job.next_run_time else None

    status = _scheduler_status(job_status, dead_letters)
    return JSONResponse(
        content={
            "status": status,
            "jobs": {constants.GENERATION_JOB_ID: {**job_status, "next_run_time": next_run}},
            "dead_letter_queue_size": len(dead_letters),
            "dead_letter_queue": dead_letters,
        },
        status_code=constants.HTTP_OK if status == "healthy" else constants.HTTP_SERVICE_UNAVAILABLE,
    )
