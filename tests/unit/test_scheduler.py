"""Tests for the recurring task generation job and its registration."""

from datetime import UTC, datetime
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from apscheduler.triggers.cron import CronTrigger

from src.core import scheduler as scheduler_module
from src.core.errors import ErrorCategory, StoreReadError
from src.models.service_models import GenerationReport, TemplateFailure


def _report(**overrides) -> GenerationReport:
    values = {"run_at": datetime(2024, 6, 3, 1, 0, tzinfo=UTC), "evaluated": 2, "generated": 1, "skipped": 1}
    values.update(overrides)
    return GenerationReport(**values)


@pytest.fixture
def mock_appwrite_client():
    """Patch the Appwrite client factory used by the job."""
    client = MagicMock()
    client.__aenter__ = AsyncMock(return_value=client)
    client.__aexit__ = AsyncMock(return_value=None)
    with patch("src.core.scheduler.AppwriteClient") as mock_cls:
        mock_cls.from_settings.return_value = client
        yield client


@pytest.mark.unit
class TestGenerateRecurringTasks:
    """Tests for the scheduled generation job body."""

    async def test_returns_report_counts(self, mock_appwrite_client):
        with patch("src.core.scheduler.run_once", AsyncMock(return_value=_report())) as mock_run:
            result = await scheduler_module.generate_recurring_tasks()

        assert result == {
            "run_at": "2024-06-03T01:00:00Z",
            "evaluated": 2,
            "generated": 1,
            "skipped": 1,
            "failed": 0,
        }
        store = mock_run.call_args.kwargs["store"]
        assert store._client is mock_appwrite_client
        assert mock_run.call_args.kwargs["now"].tzinfo is not None
        mock_appwrite_client.__aexit__.assert_awaited_once()

    async def test_per_template_failures_do_not_fail_the_job(self, mock_appwrite_client):
        report = _report(
            generated=0,
            failed=1,
            failures=[TemplateFailure(template_id="t1", category=ErrorCategory.INVALID_CADENCE, reason="bad")],
        )
        with patch("src.core.scheduler.run_once", AsyncMock(return_value=report)):
            result = await scheduler_module.generate_recurring_tasks()

        assert result["failed"] == 1

    async def test_listing_failure_propagates_and_closes_client(self, mock_appwrite_client):
        with (
            patch("src.core.scheduler.run_once", AsyncMock(side_effect=StoreReadError("Appwrite down"))),
            pytest.raises(StoreReadError),
        ):
            await scheduler_module.generate_recurring_tasks()

        mock_appwrite_client.__aexit__.assert_awaited_once()

    async def test_run_generation_job_is_tracked(self):
        with patch("src.core.scheduler.run_tracked_job", AsyncMock()) as mock_tracked:
            await scheduler_module.run_generation_job()

        mock_tracked.assert_awaited_once_with(
            scheduler_module.generate_recurring_tasks, "recurring_task_generation"
        )


@pytest.mark.unit
class TestStartScheduler:
    """Tests for job registration."""

    def test_registers_single_daily_job(self):
        with patch("src.core.scheduler.scheduler") as mock_scheduler:
            scheduler_module.start_scheduler()

        mock_scheduler.add_job.assert_called_once()
        func = mock_scheduler.add_job.call_args.args[0]
        options = mock_scheduler.add_job.call_args.kwargs
        assert func is scheduler_module.run_generation_job
        assert options["id"] == "recurring_task_generation"
        assert options["max_instances"] == 1
        assert options["coalesce"] is True
        assert isinstance(options["trigger"], CronTrigger)
        assert "hour='1'" in str(options["trigger"])
        mock_scheduler.start.assert_called_once()

    def test_catch_up_run_on_startup(self):
        with patch("src.core.scheduler.scheduler") as mock_scheduler:
            scheduler_module.start_scheduler()

        assert "next_run_time" in mock_scheduler.add_job.call_args.kwargs

    def test_catch_up_run_can_be_disabled(self):
        with (
            patch("src.core.scheduler.scheduler") as mock_scheduler,
            patch.object(scheduler_module.settings, "generation_run_on_startup", False),
        ):
            scheduler_module.start_scheduler()

        assert "next_run_time" not in mock_scheduler.add_job.call_args.kwargs

    def test_stop_scheduler_waits_for_running_job(self):
        with patch("src.core.scheduler.scheduler") as mock_scheduler:
            scheduler_module.stop_scheduler()

        mock_scheduler.shutdown.assert_called_once_with(wait=True)
