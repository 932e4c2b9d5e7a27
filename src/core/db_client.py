"""Appwrite document database client with list/create/update operations."""

import json
import logging
from types import TracebackType
from typing import Any, Self

import httpx

from src.core.config import Constants, Settings, settings


logger = logging.getLogger(__name__)


UNIQUE_ID = "unique()"


class DatabaseError(Exception):
    """Raised when a document database operation fails."""


class RecordNotFoundError(DatabaseError):
    """Raised when the requested document does not exist."""


class DuplicateRecordError(DatabaseError):
    """Raised when a document with the requested ID already exists."""


def query_equal(attribute: str, value: str | int | float | bool) -> str:
    """Build an Appwrite equality query."""
    return json.dumps({"method": "equal", "attribute": attribute, "values": [value]})


def query_limit(limit: int) -> str:
    """Build an Appwrite page size query."""
    return json.dumps({"method": "limit", "values": [limit]})


def query_cursor_after(document_id: str) -> str:
    """Build an Appwrite cursor query continuing after the given document."""
    return json.dumps({"method": "cursorAfter", "values": [document_id]})


def _error_message(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return response.text
    if isinstance(body, dict):
        return str(body.get("message") or body)
    return str(body)


class AppwriteClient:
    """Async client for the Appwrite databases REST API.

    One instance is opened per generation run and closed when the run ends:

        async with AppwriteClient.from_settings() as client:
            documents = await client.list_documents(collection="recurring_tasks")
    """

    def __init__(
        self,
        *,
        endpoint: str,
        project_id: str,
        api_key: str,
        database_id: str,
        timeout: float = Constants.API_TIMEOUT_SECONDS,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.database_id = database_id
        self._http = httpx.AsyncClient(
            base_url=endpoint.rstrip("/"),
            headers={
                "Content-Type": "application/json",
                "X-Appwrite-Project": project_id,
                "X-Appwrite-Key": api_key,
            },
            timeout=timeout,
            transport=transport,
        )

    @classmethod
    def from_settings(
        cls, config: Settings | None = None, *, transport: httpx.AsyncBaseTransport | None = None
    ) -> "AppwriteClient":
        """Create a client from application settings.

        Raises:
            ValueError: If the Appwrite API key is not configured
        """
        config = config or settings
        return cls(
            endpoint=config.appwrite_endpoint,
            project_id=config.appwrite_project_id,
            api_key=config.require_credential("appwrite_api_key", "Appwrite API key"),
            database_id=config.appwrite_database_id,
            transport=transport,
        )

    async def __aenter__(self) -> Self:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.close()

    async def close(self) -> None:
        """Close the underlying HTTP connection pool."""
        await self._http.aclose()

    def _documents_path(self, collection: str) -> str:
        return f"/databases/{self.database_id}/collections/{collection}/documents"

    async def _request(self, method: str, path: str, **kwargs: Any) -> dict[str, Any]:  # noqa: ANN401
        try:
            response = await self._http.request(method, path, **kwargs)
        except httpx.HTTPError as e:
            logger.error("appwrite_request_failed", extra={"method": method, "path": path, "error": str(e)})
            msg = f"Appwrite request {method} {path} failed: {e}"
            raise DatabaseError(msg) from e

        if response.status_code == Constants.HTTP_NOT_FOUND:
            msg = f"Document not found: {_error_message(response)}"
            raise RecordNotFoundError(msg)
        if response.status_code == Constants.HTTP_CONFLICT:
            msg = f"Document already exists: {_error_message(response)}"
            raise DuplicateRecordError(msg)
        if not response.is_success:
            logger.error(
                "appwrite_request_rejected",
                extra={"method": method, "path": path, "status_code": response.status_code},
            )
            msg = f"Appwrite returned {response.status_code} for {method} {path}: {_error_message(response)}"
            raise DatabaseError(msg)

        return response.json()

    async def list_documents(
        self,
        *,
        collection: str,
        queries: list[str] | None = None,
    ) -> list[dict[str, Any]]:
        """List one page of documents matching the given queries."""
        params = [("queries[]", q) for q in queries or []]
        body = await self._request("GET", self._documents_path(collection), params=params)
        documents = body.get("documents", [])

        logger.info("Listed documents", extra={"collection": collection, "count": len(documents)})
        return documents

    async def list_all_documents(
        self,
        *,
        collection: str,
        queries: list[str] | None = None,
        per_page: int = Constants.DEFAULT_PER_PAGE_LIMIT,
    ) -> list[dict[str, Any]]:
        """List every document matching the queries, following cursors until a short page."""
        documents: list[dict[str, Any]] = []
        cursor: str | None = None

        while True:
            page_queries = [*(queries or []), query_limit(per_page)]
            if cursor:
                page_queries.append(query_cursor_after(cursor))

            page = await self.list_documents(collection=collection, queries=page_queries)
            documents.extend(page)

            if len(page) < per_page:
                return documents
            cursor = page[-1]["$id"]

    async def create_document(
        self,
        *,
        collection: str,
        data: dict[str, Any],
        document_id: str = UNIQUE_ID,
    ) -> dict[str, Any]:
        """Create a document and return it with its assigned $id.

        Raises:
            DuplicateRecordError: If document_id is already taken
            DatabaseError: For any other failure
        """
        document = await self._request(
            "POST",
            self._documents_path(collection),
            json={"documentId": document_id, "data": data},
        )

        logger.info("Created document", extra={"collection": collection, "document_id": document.get("$id")})
        return document

    async def update_document(
        self,
        *,
        collection: str,
        document_id: str,
        data: dict[str, Any],
    ) -> dict[str, Any]:
        """Patch the given fields of a document and return the updated document.

        Raises:
            RecordNotFoundError: If the document does not exist
            DatabaseError: For any other failure
        """
        if not data:
            msg = "Empty update payload"
            raise ValueError(msg)

        document = await self._request(
            "PATCH",
            f"{self._documents_path(collection)}/{document_id}",
            json={"data": data},
        )

        logger.info("Updated document", extra={"collection": collection, "document_id": document_id})
        return document
