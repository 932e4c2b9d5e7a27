"""Unit tests for the Appwrite document database client."""

import json

import httpx
import pytest

from src.core.config import Settings
from src.core.db_client import (
    AppwriteClient,
    DatabaseError,
    DuplicateRecordError,
    RecordNotFoundError,
    query_cursor_after,
    query_equal,
    query_limit,
)


def _client(handler) -> AppwriteClient:
    return AppwriteClient(
        endpoint="https://appwrite.test/v1/",
        project_id="must_dos_completer",
        api_key="secret-key",
        database_id="must_dos_db",
        transport=httpx.MockTransport(handler),
    )


@pytest.mark.unit
class TestQueries:
    """Tests for Appwrite query builders."""

    def test_query_equal(self):
        assert json.loads(query_equal("is_active", True)) == {
            "method": "equal",
            "attribute": "is_active",
            "values": [True],
        }

    def test_query_limit(self):
        assert json.loads(query_limit(25)) == {"method": "limit", "values": [25]}

    def test_query_cursor_after(self):
        assert json.loads(query_cursor_after("doc_9")) == {"method": "cursorAfter", "values": ["doc_9"]}


@pytest.mark.unit
class TestAppwriteClient:
    """Tests for Appwrite REST calls and status mapping."""

    async def test_requests_carry_project_and_key_headers(self):
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json={"total": 0, "documents": []})

        async with _client(handler) as client:
            await client.list_documents(collection="tasks")

        request = seen[0]
        assert request.url.path == "/v1/databases/must_dos_db/collections/tasks/documents"
        assert request.headers["X-Appwrite-Project"] == "must_dos_completer"
        assert request.headers["X-Appwrite-Key"] == "secret-key"

    async def test_list_documents_sends_queries(self):
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json={"total": 1, "documents": [{"$id": "a"}]})

        async with _client(handler) as client:
            documents = await client.list_documents(collection="tasks", queries=[query_equal("status", "pending")])

        assert documents == [{"$id": "a"}]
        assert seen[0].url.params.get_list("queries[]") == [query_equal("status", "pending")]

    async def test_list_all_documents_follows_cursor_until_short_page(self):
        pages = [
            [{"$id": "a"}, {"$id": "b"}],
            [{"$id": "c"}, {"$id": "d"}],
            [{"$id": "e"}],
        ]
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json={"total": 5, "documents": pages[len(seen) - 1]})

        async with _client(handler) as client:
            documents = await client.list_all_documents(collection="recurring_tasks", per_page=2)

        assert [d["$id"] for d in documents] == ["a", "b", "c", "d", "e"]
        assert len(seen) == 3
        assert query_cursor_after("b") in seen[1].url.params.get_list("queries[]")
        assert query_cursor_after("d") in seen[2].url.params.get_list("queries[]")
        assert query_limit(2) in seen[0].url.params.get_list("queries[]")

    async def test_create_document_posts_id_and_data(self):
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            body = json.loads(request.content)
            return httpx.Response(201, json={"$id": "new_task", **body["data"]})

        async with _client(handler) as client:
            document = await client.create_document(collection="tasks", data={"title": "Dishes"})

        assert document == {"$id": "new_task", "title": "Dishes"}
        assert seen[0].method == "POST"
        assert json.loads(seen[0].content) == {"documentId": "unique()", "data": {"title": "Dishes"}}

    async def test_create_conflict_raises_duplicate(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(409, json={"message": "Document with the requested ID already exists."})

        async with _client(handler) as client:
            with pytest.raises(DuplicateRecordError, match="already exists"):
                await client.create_document(collection="tasks", data={"title": "x"}, document_id="fixed")

    async def test_update_document_patches_data(self):
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json={"$id": "t1", "last_generated_at": "2024-06-03T01:00:00.000Z"})

        async with _client(handler) as client:
            await client.update_document(
                collection="recurring_tasks", document_id="t1", data={"last_generated_at": "2024-06-03T01:00:00.000Z"}
            )

        assert seen[0].method == "PATCH"
        assert seen[0].url.path.endswith("/collections/recurring_tasks/documents/t1")
        assert json.loads(seen[0].content) == {"data": {"last_generated_at": "2024-06-03T01:00:00.000Z"}}

    async def test_update_missing_document_raises_not_found(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(404, json={"message": "Document with the requested ID could not be found."})

        async with _client(handler) as client:
            with pytest.raises(RecordNotFoundError):
                await client.update_document(collection="recurring_tasks", document_id="gone", data={"a": 1})

    async def test_update_with_empty_payload_raises(self):
        async with _client(lambda request: httpx.Response(200, json={})) as client:
            with pytest.raises(ValueError, match="Empty update payload"):
                await client.update_document(collection="recurring_tasks", document_id="t1", data={})

    async def test_server_error_raises_database_error(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(503, text="upstream unavailable")

        async with _client(handler) as client:
            with pytest.raises(DatabaseError, match="503"):
                await client.list_documents(collection="tasks")

    async def test_transport_error_raises_database_error(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        async with _client(handler) as client:
            with pytest.raises(DatabaseError, match="connection refused"):
                await client.list_documents(collection="tasks")


@pytest.mark.unit
def test_from_settings_requires_api_key():
    config = Settings(_env_file=None, appwrite_api_key=None)

    with pytest.raises(ValueError, match="APPWRITE_API_KEY"):
        AppwriteClient.from_settings(config)
