"""Recurring task generation: evaluate active templates and materialize due tasks."""

import hashlib
import logging
from datetime import date, datetime
from typing import Any
from zoneinfo import ZoneInfo

from pydantic import ValidationError

from src.core.cadence import CadenceDecision, cadence_to_human, days_since, evaluate, format_timestamp, parse_cadence
from src.core.config import Constants, Settings, settings
from src.core.errors import (
    ConfigurationError,
    DuplicateInstanceError,
    ErrorCategory,
    StoreReadError,
    StoreWriteError,
    classify_error,
    describe_error,
)
from src.core.logging import log_report, log_with_template_context, span
from src.domain.recurring_task import RecurringTaskTemplate
from src.domain.task import TaskInstanceCreate, TaskStatus
from src.models.service_models import GenerationReport, TemplateFailure, TemplateOutcome, TemplateResult
from src.services.task_store import TaskStore


logger = logging.getLogger(__name__)


def instance_document_id(template_id: str, period_start: date) -> str:
    """Derive a stable task ID for one template and due period.

    Creating the same (template, period) twice yields the same ID, so the
    store rejects the second create instead of storing a duplicate.
    """
    digest = hashlib.sha256(f"{template_id}:{period_start.isoformat()}".encode()).hexdigest()
    return digest[: Constants.APPWRITE_MAX_ID_LENGTH]


def build_instance_payload(
    template: RecurringTaskTemplate,
    decision: CadenceDecision,
    *,
    link_template: bool = True,
) -> TaskInstanceCreate:
    """Build the task document for a due template."""
    if decision.due_date is None:
        msg = f"Template {template.id} has no due date to generate for"
        raise ValueError(msg)

    return TaskInstanceCreate(
        title=template.title,
        description=template.description,
        assigned_to_user_id=template.assigned_to_user_id,
        created_by_user_id=template.created_by_user_id,
        family_id=template.family_id,
        status=TaskStatus.PENDING,
        priority=template.priority,
        points=template.points,
        due_date=format_timestamp(decision.due_date),
        recurring_task_template_id=template.id if link_template else None,
    )


def _failed(template_id: str, error: Exception) -> TemplateResult:
    failure = TemplateFailure(template_id=template_id, category=classify_error(error), reason=describe_error(error))
    log_with_template_context(
        logger,
        "error",
        "Recurring template failed",
        template_id=template_id,
        category=str(failure.category),
        reason=failure.reason,
    )
    return TemplateResult(template_id=template_id, outcome=TemplateOutcome.FAILED, failure=failure)


def _parse_template(document: dict[str, Any]) -> RecurringTaskTemplate:
    try:
        return RecurringTaskTemplate.from_document(document)
    except ValidationError as e:
        fields = ", ".join(".".join(str(p) for p in err["loc"]) for err in e.errors())
        msg = f"Invalid template document ({fields})"
        raise ConfigurationError(
            msg, template_id=document.get("$id"), category=ErrorCategory.INVALID_TEMPLATE
        ) from e


async def _advance_after_duplicate(
    *, store: TaskStore, template: RecurringTaskTemplate, error: DuplicateInstanceError, now: datetime
) -> TemplateResult:
    log_with_template_context(
        logger,
        "warning",
        "Task already generated for this period, advancing watermark",
        template_id=template.id,
        task_id=error.document_id,
    )
    try:
        await store.update_template_watermark(template.id, now)
    except StoreWriteError as e:
        return _failed(template.id, e)
    return TemplateResult(template_id=template.id, outcome=TemplateOutcome.SKIPPED)


async def generate_for_template(
    document: dict[str, Any],
    *,
    store: TaskStore,
    now: datetime,
    config: Settings | None = None,
) -> TemplateResult:
    """Evaluate one template document and, when due, create its task then advance its watermark.

    The watermark update is only issued after the create succeeded.
    """
    config = config or settings
    template_id = str(document.get("$id") or "<unknown>")

    try:
        template = _parse_template(document)
        decision = evaluate(template, now)
    except ConfigurationError as e:
        return _failed(template_id, e)

    if not decision.due or decision.period_start is None:
        logger.debug("Template not due", extra={"template_id": template_id})
        return TemplateResult(template_id=template_id, outcome=TemplateOutcome.SKIPPED)

    payload = build_instance_payload(template, decision, link_template=config.link_template_reference)
    document_id = instance_document_id(template.id, decision.period_start) if config.idempotent_task_ids else None

    if template.last_generated_at is not None:
        log_with_template_context(
            logger,
            "info",
            "Generating task for template",
            template_id=template.id,
            title=template.title,
            cadence=cadence_to_human(parse_cadence(template)),
            due_date=payload.due_date,
            days_since_last_generation=days_since(template.last_generated_at, now),
        )
    else:
        log_with_template_context(
            logger,
            "info",
            "Generating first task for template",
            template_id=template.id,
            title=template.title,
            due_date=payload.due_date,
        )

    # Step 1: create the instance
    try:
        task = await store.create_task_instance(payload, template_id=template.id, document_id=document_id)
    except DuplicateInstanceError as e:
        return await _advance_after_duplicate(store=store, template=template, error=e, now=now)
    except StoreWriteError as e:
        return _failed(template.id, e)

    # Step 2: advance the watermark, only reached once the instance exists
    try:
        await store.update_template_watermark(template.id, now)
    except StoreWriteError as e:
        result = _failed(template.id, e)
        result.task_id = task.id
        return result

    log_with_template_context(
        logger, "info", "Task created", template_id=template.id, task_id=task.id, due_date=payload.due_date
    )
    return TemplateResult(template_id=template.id, outcome=TemplateOutcome.GENERATED, task_id=task.id)


async def run_once(
    *,
    store: TaskStore,
    now: datetime | None = None,
    config: Settings | None = None,
) -> GenerationReport:
    """Run one generation pass over every active template.

    Templates are processed one at a time; a failure is recorded against its
    template and the pass moves on to the next one.

    Args:
        store: Store adapter scoped to this run
        now: Instant to evaluate against (defaults to the current time in the scheduler timezone)
        config: Settings override

    Returns:
        Report with evaluated/generated/skipped/failed counts and failure causes

    Raises:
        StoreReadError: If active templates cannot be listed; nothing is generated
    """
    config = config or settings
    now = now or datetime.now(ZoneInfo(config.scheduler_timezone))

    with span("task_generation_service.run_once", run_at=now.isoformat()):
        logger.info("Running recurring task generation", extra={"run_at": now.isoformat()})

        try:
            documents = await store.list_active_templates()
        except StoreReadError:
            logger.error("Aborting generation run: could not list active templates")
            raise
        except Exception as e:
            logger.error("Aborting generation run: could not list active templates", extra={"error": str(e)})
            msg = f"Failed to list active templates: {e}"
            raise StoreReadError(msg) from e

        report = GenerationReport(run_at=now)
        for document in documents:
            try:
                result = await generate_for_template(document, store=store, now=now, config=config)
            except Exception as e:
                result = _failed(str(document.get("$id") or "<unknown>"), e)
            report.add(result)

        log_report(
            logger,
            evaluated=report.evaluated,
            generated=report.generated,
            skipped=report.skipped,
            failed=report.failed,
        )
        return report
