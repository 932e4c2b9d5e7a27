"""Task instance domain models and enums."""

from enum import StrEnum

from pydantic import BaseModel, ConfigDict, Field

from src.domain.recurring_task import Priority


class TaskStatus(StrEnum):
    """Task lifecycle status. Only PENDING is set by the generator."""

    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"


class TaskInstanceCreate(BaseModel):
    """Payload written to the tasks collection for one generated instance."""

    title: str = Field(..., description="Task title copied from the template")
    description: str = Field(default="", description="Task description copied from the template")
    assigned_to_user_id: str = Field(..., description="Assignee user ID")
    created_by_user_id: str = Field(..., description="Creator user ID")
    family_id: str = Field(..., description="Owning family/group ID")
    status: TaskStatus = Field(default=TaskStatus.PENDING, description="Initial task status")
    priority: Priority = Field(..., description="Task priority")
    points: int = Field(..., description="Points awarded on completion")
    due_date: str = Field(..., description="End of the due day as an absolute ISO timestamp")
    recurring_task_template_id: str | None = Field(
        default=None, description="Template that generated this task"
    )


class TaskInstance(TaskInstanceCreate):
    """Task instance as stored in the tasks collection."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    id: str = Field(..., alias="$id", description="Unique task ID from Appwrite")
