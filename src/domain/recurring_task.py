"""Recurring task template domain models and enums."""

from datetime import UTC, date, datetime
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator


class Priority(StrEnum):
    """Task priority shared by templates and instances."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class CadenceKind(StrEnum):
    """Supported recurrence kinds."""

    DAILY = "daily"
    WEEKLY = "weekly"


def parse_calendar_date(value: Any) -> Any:  # noqa: ANN401
    """Reduce an ISO date or datetime string to its calendar date.

    Appwrite stores dates as full datetimes ("2024-05-01T00:00:00.000+00:00");
    only the written calendar day is meaningful, so no timezone conversion happens.
    """
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, str) and value:
        return datetime.fromisoformat(value).date()
    return value


class RecurringTaskTemplate(BaseModel):
    """Recurring task template as stored in the recurring_tasks collection."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    id: str = Field(..., alias="$id", description="Unique template ID from Appwrite")
    title: str = Field(..., description="Title copied to every generated task")
    description: str = Field(default="", description="Description copied to every generated task")
    assigned_to_user_id: str = Field(..., description="Assignee user ID")
    created_by_user_id: str = Field(..., description="Creator user ID")
    family_id: str = Field(..., description="Owning family/group ID")
    priority: Priority = Field(default=Priority.MEDIUM, description="Priority of generated tasks")
    points: int = Field(default=0, description="Points awarded for generated tasks")
    recurrence_type: str = Field(..., description="Cadence kind ('daily' or 'weekly')")
    recurrence_details: str | None = Field(
        default=None,
        description="Weekly target weekday index 0-6 (0=Sunday); absent for daily",
    )
    start_date: date = Field(..., description="First calendar day the template is active")
    end_date: date | None = Field(default=None, description="Last calendar day the template is active")
    is_active: bool = Field(default=True, description="Whether the template participates in generation")
    last_generated_at: datetime | None = Field(
        default=None, description="Watermark: when an instance was last generated"
    )

    @field_validator("description", mode="before")
    @classmethod
    def default_empty_description(cls, v: str | None) -> str:
        """Treat a null description as empty."""
        return v or ""

    @field_validator("recurrence_details", mode="before")
    @classmethod
    def normalize_recurrence_details(cls, v: Any) -> str | None:  # noqa: ANN401
        """Store the cadence parameter as a trimmed string, treating blanks as absent."""
        if v is None:
            return None
        text = str(v).strip()
        return text or None

    @field_validator("start_date", "end_date", mode="before")
    @classmethod
    def validate_calendar_date(cls, v: Any) -> Any:  # noqa: ANN401
        """Accept ISO dates and datetimes, keeping only the calendar day."""
        if v == "":
            return None
        return parse_calendar_date(v)

    @field_validator("last_generated_at", mode="before")
    @classmethod
    def validate_watermark(cls, v: Any) -> Any:  # noqa: ANN401
        """Treat blank watermarks as never generated."""
        return v or None

    @field_validator("last_generated_at")
    @classmethod
    def assume_utc_watermark(cls, v: datetime | None) -> datetime | None:
        """Naive watermarks are UTC."""
        if v is not None and v.tzinfo is None:
            return v.replace(tzinfo=UTC)
        return v

    @classmethod
    def from_document(cls, document: dict[str, Any]) -> "RecurringTaskTemplate":
        """Build a template from a raw Appwrite document."""
        return cls.model_validate(document)
