"""Store adapter for recurring task templates and generated task instances."""

import logging
from datetime import datetime
from typing import Any, Protocol

from src.core import db_client
from src.core.cadence import format_timestamp
from src.core.config import Settings, settings
from src.core.db_client import AppwriteClient, DatabaseError, DuplicateRecordError
from src.core.errors import DuplicateInstanceError, StoreReadError, StoreWriteError, WriteOperation
from src.domain.task import TaskInstance, TaskInstanceCreate


logger = logging.getLogger(__name__)


class TaskStore(Protocol):
    """Document store operations the recurrence engine depends on."""

    async def list_active_templates(self) -> list[dict[str, Any]]:
        """Return every template document with is_active = true.

        Raises:
            StoreReadError: If the listing cannot be completed
        """
        ...

    async def create_task_instance(
        self, payload: TaskInstanceCreate, *, template_id: str, document_id: str | None = None
    ) -> TaskInstance:
        """Create a task instance, letting the store assign its ID unless one is given.

        Raises:
            DuplicateInstanceError: If document_id already exists
            StoreWriteError: For any other failure
        """
        ...

    async def update_template_watermark(self, template_id: str, timestamp: datetime) -> None:
        """Set last_generated_at on a template.

        Raises:
            StoreWriteError: If the update fails
        """
        ...


class AppwriteTaskStore:
    """TaskStore backed by the Appwrite databases API."""

    def __init__(self, *, client: AppwriteClient, config: Settings | None = None) -> None:
        config = config or settings
        self._client = client
        self._tasks_collection = config.appwrite_tasks_collection_id
        self._templates_collection = config.appwrite_recurring_tasks_collection_id

    async def list_active_templates(self) -> list[dict[str, Any]]:
        try:
            return await self._client.list_all_documents(
                collection=self._templates_collection,
                queries=[db_client.query_equal("is_active", True)],
            )
        except DatabaseError as e:
            logger.error("list_active_templates_failed", extra={"error": str(e)})
            msg = f"Failed to list active templates: {e}"
            raise StoreReadError(msg) from e

    async def create_task_instance(
        self, payload: TaskInstanceCreate, *, template_id: str, document_id: str | None = None
    ) -> TaskInstance:
        data = payload.model_dump(mode="json", exclude_none=True)
        try:
            document = await self._client.create_document(
                collection=self._tasks_collection,
                data=data,
                document_id=document_id or db_client.UNIQUE_ID,
            )
        except DuplicateRecordError as e:
            if document_id is None:
                # Store-assigned id: nothing was stored
                raise StoreWriteError(str(e), template_id=template_id, operation=WriteOperation.CREATE_INSTANCE) from e
            msg = f"Task {document_id} already exists"
            raise DuplicateInstanceError(msg, template_id=template_id, document_id=document_id) from e
        except DatabaseError as e:
            raise StoreWriteError(str(e), template_id=template_id, operation=WriteOperation.CREATE_INSTANCE) from e

        return TaskInstance.model_validate({**data, **document})

    async def update_template_watermark(self, template_id: str, timestamp: datetime) -> None:
        try:
            await self._client.update_document(
                collection=self._templates_collection,
                document_id=template_id,
                data={"last_generated_at": format_timestamp(timestamp)},
            )
        except DatabaseError as e:
            raise StoreWriteError(str(e), template_id=template_id, operation=WriteOperation.UPDATE_WATERMARK) from e
