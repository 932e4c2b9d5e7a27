"""Run history and dead letter queue for the scheduled generation job."""

import logging
from collections import deque
from collections.abc import Awaitable, Callable
from datetime import UTC, datetime
from typing import Any

from pydantic import BaseModel, Field

from src.core.config import Constants
from src.core.redis_client import redis_client


logger = logging.getLogger(__name__)

MAX_ERROR_LENGTH = 500


def _now() -> str:
    return datetime.now(UTC).isoformat()


class JobRecord(BaseModel):
    """Execution history of one scheduled job."""

    job_name: str
    last_success: str | None = None
    last_failure: str | None = None
    last_error: str | None = None
    last_result: dict[str, Any] | None = Field(default=None, description="Summary returned by the last successful run")
    consecutive_failures: int = 0
    success_count: int = 0
    failure_count: int = 0
    current_run_started: str | None = None

    def as_status(self) -> dict[str, Any]:
        return {**self.model_dump(), "currently_running": self.current_run_started is not None}


class JobTracker:
    """Keeps a JobRecord per job in Redis when configured, in process memory otherwise.

    Runs of a job never overlap (the scheduler allows one instance), so each
    update is a plain read-modify-write of the record.
    """

    def __init__(self) -> None:
        self._records: dict[str, JobRecord] = {}
        self._dead_letter_queue: deque[tuple[str, str, str]] = deque(
            maxlen=Constants.TRACKER_DEAD_LETTER_QUEUE_MAXLEN
        )

    @staticmethod
    def _redis_key(job_name: str) -> str:
        return f"scheduler:job:{job_name}"

    async def _load(self, job_name: str) -> JobRecord:
        if not redis_client.is_available:
            return self._records.get(job_name) or JobRecord(job_name=job_name)

        raw = await redis_client.get(self._redis_key(job_name))
        if raw is None:
            return JobRecord(job_name=job_name)
        return JobRecord.model_validate_json(raw)

    async def _save(self, record: JobRecord) -> None:
        if redis_client.is_available:
            await redis_client.set(
                self._redis_key(record.job_name),
                record.model_dump_json(),
                ttl_seconds=Constants.TRACKER_TTL_SECONDS,
            )
        else:
            self._records[record.job_name] = record

    async def record_job_start(self, job_name: str) -> None:
        record = await self._load(job_name)
        record.current_run_started = _now()
        await self._save(record)

    async def record_job_success(self, job_name: str, result: dict[str, Any] | None = None) -> None:
        """Record a finished run and the summary it returned."""
        record = await self._load(job_name)
        record.last_success = _now()
        record.consecutive_failures = 0
        record.success_count += 1
        if result is not None:
            record.last_result = result
        record.current_run_started = None
        await self._save(record)

    async def record_job_failure(self, job_name: str, error: str) -> int:
        """Record a failed run.

        Returns:
            Number of consecutive failures including this one
        """
        record = await self._load(job_name)
        record.last_failure = _now()
        record.last_error = error[:MAX_ERROR_LENGTH]
        record.consecutive_failures += 1
        record.failure_count += 1
        record.current_run_started = None
        await self._save(record)
        return record.consecutive_failures

    async def get_job_status(self, job_name: str) -> dict[str, Any]:
        """Return the job's history plus a currently_running flag."""
        record = await self._load(job_name)
        return record.as_status()

    async def add_to_dead_letter_queue(self, job_name: str, error: str, context: str) -> None:
        """Park a job that keeps failing; kept in memory and mirrored to Redis when available."""
        self._dead_letter_queue.append((job_name, error, context))
        timestamp = _now()

        logger.error(
            "Job added to dead letter queue",
            extra={"job_name": job_name, "error": error, "context": context, "timestamp": timestamp},
        )

        if redis_client.is_available:
            await redis_client.set(
                f"scheduler:dlq:{job_name}:{timestamp}",
                f"{error} | {context}",
                ttl_seconds=Constants.TRACKER_DEAD_LETTER_TTL_SECONDS,
            )

    def get_dead_letter_queue(self) -> list[dict[str, str]]:
        return [
            {"job_name": job_name, "error": error, "context": context}
            for job_name, error, context in self._dead_letter_queue
        ]


job_tracker = JobTracker()


async def run_tracked_job(
    job_func: Callable[[], Awaitable[dict[str, Any] | None]],
    job_name: str,
) -> None:
    """Execute a job once and record the outcome.

    There is no retry within a run: the next scheduled invocation is the retry.
    A job that keeps failing is moved to the dead letter queue.

    Args:
        job_func: Async function to execute; may return a summary of its result
        job_name: Name of the job for tracking
    """
    await job_tracker.record_job_start(job_name)

    try:
        logger.info("Executing %s", job_name)
        result = await job_func()
    except Exception as e:
        error_msg = f"{type(e).__name__}: {e}"
        consecutive_failures = await job_tracker.record_job_failure(job_name, error_msg)
        logger.error(
            f"{job_name} failed",
            extra={"error": error_msg, "consecutive_failures": consecutive_failures},
        )

        if consecutive_failures >= Constants.TRACKER_CONSECUTIVE_FAILURE_THRESHOLD:
            await job_tracker.add_to_dead_letter_queue(
                job_name=job_name,
                error=error_msg,
                context=f"Failed {consecutive_failures} consecutive times",
            )
        return

    await job_tracker.record_job_success(job_name, result)
    logger.info("%s completed successfully", job_name)
