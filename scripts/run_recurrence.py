#!/usr/bin/env python3
"""Run one recurring task generation pass outside the scheduler.

Usage:
    uv run python scripts/run_recurrence.py
    uv run python scripts/run_recurrence.py --now 2024-06-03T01:00:00+00:00
    uv run python scripts/run_recurrence.py --list-templates
"""

import asyncio
import logging
import sys
from datetime import datetime

from src.core.db_client import AppwriteClient
from src.core.errors import StoreReadError
from src.domain.recurring_task import RecurringTaskTemplate
from src.services.task_generation_service import run_once
from src.services.task_store import AppwriteTaskStore


logging.basicConfig(level=logging.INFO, format="%(message)s")
logger = logging.getLogger(__name__)


def print_usage() -> None:
    """Print usage information."""
    logger.info(__doc__)


async def list_templates() -> None:
    """List active templates with their watermark."""
    async with AppwriteClient.from_settings() as client:
        documents = await AppwriteTaskStore(client=client).list_active_templates()

    for document in documents:
        try:
            template = RecurringTaskTemplate.from_document(document)
        except ValueError as e:
            logger.info(f"{document.get('$id')} - INVALID ({e})")
            continue
        logger.info(
            f"{template.id} - {template.title} ({template.recurrence_type} {template.recurrence_details or ''}) "
            f"last generated: {template.last_generated_at or 'never'}"
        )


async def generate(now: datetime | None) -> None:
    """Run the generator and log the report."""
    async with AppwriteClient.from_settings() as client:
        try:
            report = await run_once(store=AppwriteTaskStore(client=client), now=now)
        except StoreReadError as e:
            logger.error(f"Generation aborted: {e}")
            sys.exit(1)

    logger.info(
        f"evaluated={report.evaluated} generated={report.generated} skipped={report.skipped} failed={report.failed}"
    )
    for failure in report.failures:
        logger.info(f"  {failure.template_id}: [{failure.category}] {failure.reason}")


async def main() -> None:
    """Main entry point."""
    args = sys.argv[1:]

    if "--help" in args or "-h" in args:
        print_usage()
        return

    if "--list-templates" in args:
        await list_templates()
        return

    now = None
    if "--now" in args:
        now_index = args.index("--now")
        if now_index + 1 >= len(args):
            print_usage()
            sys.exit(1)
        now = datetime.fromisoformat(args[now_index + 1])

    await generate(now)


if __name__ == "__main__":
    asyncio.run(main())
