"""Pydantic models for service layer return types."""

from datetime import datetime
from enum import StrEnum

from pydantic import BaseModel, Field

from src.core.errors import ErrorCategory


class TemplateOutcome(StrEnum):
    """What happened to one template during a run."""

    GENERATED = "generated"
    SKIPPED = "skipped"
    FAILED = "failed"


class TemplateFailure(BaseModel):
    """A template that could not be processed."""

    template_id: str = Field(..., description="ID of the failed template")
    category: ErrorCategory = Field(..., description="Failure category")
    reason: str = Field(..., description="Human-readable cause")


class TemplateResult(BaseModel):
    """Per-template result folded into the run report."""

    template_id: str
    outcome: TemplateOutcome
    task_id: str | None = None
    failure: TemplateFailure | None = None


class GenerationReport(BaseModel):
    """Summary of one generation run across all active templates."""

    run_at: datetime = Field(..., description="Instant the run evaluated templates against")
    evaluated: int = Field(default=0, description="Templates processed")
    generated: int = Field(default=0, description="Templates that produced a new task instance")
    skipped: int = Field(default=0, description="Templates that were not due")
    failed: int = Field(default=0, description="Templates that failed validation or a store write")
    created_task_ids: list[str] = Field(default_factory=list, description="IDs of created task instances")
    failures: list[TemplateFailure] = Field(default_factory=list, description="Failed templates and causes")

    def add(self, result: TemplateResult) -> None:
        """Fold one template result into the totals."""
        self.evaluated += 1
        if result.task_id:
            # Also set when the create succeeded but the watermark update failed
            self.created_task_ids.append(result.task_id)
        if result.outcome == TemplateOutcome.GENERATED:
            self.generated += 1
        elif result.outcome == TemplateOutcome.SKIPPED:
            self.skipped += 1
        else:
            self.failed += 1
            if result.failure:
                self.failures.append(result.failure)
