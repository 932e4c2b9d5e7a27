"""Error taxonomy and classification for the recurrence engine."""

from enum import StrEnum


class ErrorCategory(StrEnum):
    """Categories recorded against a template in a generation report."""

    INVALID_TEMPLATE = "invalid_template"
    INVALID_CADENCE = "invalid_cadence"
    STORE_READ_FAILED = "store_read_failed"
    STORE_WRITE_FAILED = "store_write_failed"
    UNKNOWN = "unknown"


class WriteOperation(StrEnum):
    """Store writes issued for a due template, in the order they are issued."""

    CREATE_INSTANCE = "create_instance"
    UPDATE_WATERMARK = "update_watermark"


class RecurrenceError(Exception):
    """Base class for recurrence engine errors."""

    category: ErrorCategory = ErrorCategory.UNKNOWN

    def __init__(self, message: str, *, template_id: str | None = None) -> None:
        super().__init__(message)
        self.template_id = template_id


class ConfigurationError(RecurrenceError):
    """A template cannot be evaluated: bad document or invalid cadence.

    The template is skipped and reported; it is never retried within a run.
    """

    category = ErrorCategory.INVALID_CADENCE

    def __init__(
        self,
        message: str,
        *,
        template_id: str | None = None,
        category: ErrorCategory = ErrorCategory.INVALID_CADENCE,
    ) -> None:
        super().__init__(message, template_id=template_id)
        self.category = category


class StoreReadError(RecurrenceError):
    """Fetching templates failed. The whole run aborts without writing anything."""

    category = ErrorCategory.STORE_READ_FAILED


class StoreWriteError(RecurrenceError):
    """A create or watermark update failed for a single template."""

    category = ErrorCategory.STORE_WRITE_FAILED

    def __init__(self, message: str, *, template_id: str | None = None, operation: WriteOperation) -> None:
        super().__init__(message, template_id=template_id)
        self.operation = operation


class DuplicateInstanceError(StoreWriteError):
    """The store already holds an instance for this template and period."""

    def __init__(self, message: str, *, template_id: str | None = None, document_id: str) -> None:
        super().__init__(message, template_id=template_id, operation=WriteOperation.CREATE_INSTANCE)
        self.document_id = document_id


def classify_error(exception: Exception) -> ErrorCategory:
    """Map any exception raised while processing a template to a report category."""
    if isinstance(exception, RecurrenceError):
        return exception.category
    return ErrorCategory.UNKNOWN


def describe_error(exception: Exception) -> str:
    """Build the human-readable failure reason stored in a report."""
    if isinstance(exception, StoreWriteError):
        return f"{exception.operation} failed: {exception}"
    if isinstance(exception, RecurrenceError):
        return str(exception)
    return f"{type(exception).__name__}: {exception}"
