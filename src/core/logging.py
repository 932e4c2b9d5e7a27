"""Observability setup using Pydantic Logfire.

Modules log through the standard library (logging.getLogger(__name__)) and
pass structured fields through `extra`; Logfire collects and ships them when
a token is configured.

Template-scoped log lines carry a template_id field:
    log_with_template_context(logger, "info", "Task created", template_id="t1", task_id="abc")
"""

import logging

import logfire
from fastapi import FastAPI

from src.core.config import settings


logger = logging.getLogger(__name__)


def configure_observability() -> None:
    """Configure Logfire and trace outgoing Appwrite requests.

    Without a token, spans and logs stay local.
    """
    logfire.configure(
        token=settings.logfire_token,
        service_name="must-dos",
        service_version="0.1.0",
        send_to_logfire="if-token-present",
    )
    logfire.instrument_httpx()
    logger.info("Logfire configured", extra={"shipping": settings.logfire_token is not None})


def instrument_fastapi(app: FastAPI) -> None:
    """Add Logfire request spans to the health endpoints."""
    logfire.instrument_fastapi(app)


def span(name: str, **attributes: object) -> logfire.LogfireSpan:
    """Open a Logfire span around a unit of generation work.

    Usage:
        with span("task_generation_service.run_once", run_at=now.isoformat()):
            ...
    """
    return logfire.span(name, **attributes)


def log_with_template_context(
    log: logging.Logger,
    level: str,
    message: str,
    template_id: str | None = None,
    **extra: object,
) -> None:
    """Log a message tagged with the recurring task template it concerns.

    Args:
        log: Logger instance to use
        level: Log level name ("debug", "info", "warning", "error")
        message: Log message
        template_id: Template the message is about, omitted when unknown
        **extra: Further structured fields (task_id, due_date, reason, ...)
    """
    fields = {"template_id": template_id, **extra} if template_id else extra
    getattr(log, level.lower())(message, extra=fields)


def log_report(log: logging.Logger, *, evaluated: int, generated: int, skipped: int, failed: int) -> None:
    """Log the totals of a finished generation run, at warning level when anything failed."""
    level = logging.WARNING if failed else logging.INFO
    log.log(
        level,
        "Completed recurring task generation: %d generated, %d skipped, %d failed of %d templates",
        generated,
        skipped,
        failed,
        evaluated,
        extra={"evaluated": evaluated, "generated": generated, "skipped": skipped, "failed": failed},
    )
