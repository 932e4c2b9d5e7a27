"""Configuration management for must-dos."""

from datetime import time

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Appwrite Configuration
    appwrite_endpoint: str = Field(default="http://localhost/v1", description="Appwrite API endpoint")
    appwrite_project_id: str = Field(default="must_dos_completer", description="Appwrite project ID")
    appwrite_api_key: str | None = Field(default=None, description="Appwrite server API key")
    appwrite_database_id: str = Field(default="must_dos_db", description="Appwrite database ID")
    appwrite_tasks_collection_id: str = Field(default="tasks", description="Collection holding task instances")
    appwrite_recurring_tasks_collection_id: str = Field(
        default="recurring_tasks", description="Collection holding recurring task templates"
    )

    # Pydantic Logfire Configuration (optional)
    logfire_token: str | None = Field(default=None, description="Pydantic Logfire token for observability")

    # Redis Configuration (optional)
    redis_url: str | None = Field(default=None, description="Redis connection URL (e.g., redis://localhost:6379)")

    # Scheduler Configuration
    scheduler_timezone: str = Field(default="UTC", description="Timezone used for the trigger and calendar days")
    generation_hour: int = Field(default=1, ge=0, le=23, description="Hour of the daily generation run")
    generation_minute: int = Field(default=0, ge=0, le=59, description="Minute of the daily generation run")
    generation_run_on_startup: bool = Field(
        default=True, description="Run one catch-up generation pass when the scheduler starts"
    )

    # Task Instance Configuration
    idempotent_task_ids: bool = Field(
        default=True, description="Derive task document IDs from (template, period) so duplicates are rejected"
    )
    link_template_reference: bool = Field(
        default=True, description="Store recurring_task_template_id on generated tasks"
    )

    def require_credential(self, field_name: str, service_name: str) -> str:
        """Validate that a required credential is set, raising a clear error if missing.

        Args:
            field_name: Name of the field to check
            service_name: Human-readable service name for error message

        Returns:
            The credential value

        Raises:
            ValueError: If the credential is None or empty
        """
        value = getattr(self, field_name)
        if not value:
            raise ValueError(
                f"{service_name} credential not configured. "
                f"Set {field_name.upper()} environment variable or add to .env file."
            )
        return value


# Application Constants
class Constants:
    """Application-wide constants."""

    # API Configuration
    API_TIMEOUT_SECONDS: int = 30

    # HTTP Status Codes
    HTTP_OK: int = 200
    HTTP_NOT_FOUND: int = 404
    HTTP_CONFLICT: int = 409
    HTTP_SERVICE_UNAVAILABLE: int = 503

    # Pagination Defaults
    DEFAULT_PER_PAGE_LIMIT: int = 100  # Appwrite page size when listing templates

    # Task Instances
    END_OF_DAY: time = time(23, 59, 59, 999000)
    APPWRITE_MAX_ID_LENGTH: int = 36

    # Scheduler
    GENERATION_JOB_ID: str = "recurring_task_generation"

    # Redis Configuration
    REDIS_MAX_CONNECTIONS: int = 10

    # Job Tracker Configuration
    TRACKER_TTL_SECONDS: int = 86400 * 7  # Keep job history for 7 days
    TRACKER_DEAD_LETTER_TTL_SECONDS: int = 86400 * 30
    TRACKER_DEAD_LETTER_QUEUE_MAXLEN: int = 100
    TRACKER_CONSECUTIVE_FAILURE_THRESHOLD: int = 3


def get_settings() -> Settings:
    """Get application settings (singleton pattern)."""
    return Settings()


# Global settings instance
settings = get_settings()
constants = Constants()
