"""Domain models and DTOs."""

from src.domain.recurring_task import CadenceKind, Priority, RecurringTaskTemplate
from src.domain.task import TaskInstance, TaskInstanceCreate, TaskStatus


__all__ = [
    "CadenceKind",
    "Priority",
    "RecurringTaskTemplate",
    "TaskInstance",
    "TaskInstanceCreate",
    "TaskStatus",
]
