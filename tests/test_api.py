"""Tests for API endpoints.

Services are replaced with AsyncMock instances through FastAPI dependency
overrides; these tests cover routing, parameter mapping, the response
envelope and error translation.
"""

import asyncio
from datetime import datetime, timezone
from unittest.mock import AsyncMock

from fastapi.testclient import TestClient

from scholar_archive.api.v1.endpoints.archives import get_archival_service
from scholar_archive.api.v1.endpoints.compiled_documents import (
    get_child_resolver,
    get_volume_service,
)
from scholar_archive.api.v1.endpoints.documents import get_category_counter, get_listing_service
from scholar_archive.core.exceptions import (
    AlreadyArchivedError,
    ConsistencyViolationError,
    NotFoundError,
    StoreError,
    ValidationError,
)
from scholar_archive.main import app
from scholar_archive.schemas.documents import (
    ArchivalResult,
    CategoryCounts,
    DocumentPage,
    ListItem,
    VolumeDetail,
    WorkDetail,
)

NOW = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)


def _volume_detail(volume_id: int = 1) -> VolumeDetail:
    return VolumeDetail(
        id=volume_id,
        title="CONFLUENCE Vol. 5 (2020-2021)",
        category="CONFLUENCE",
        volume_number=5,
        start_year=2020,
        end_year=2021,
        secondary_field="issue_number",
        issue_number=2,
        child_count=2,
    )


class TestDocumentEndpoints:
    """Listing and counting."""

    def test_list_documents_maps_query_parameters(self, test_client: TestClient) -> None:
        mock_service = AsyncMock()
        mock_service.list_documents.return_value = DocumentPage(
            items=[ListItem(id=3, title="Alpha", category="THESIS", is_compiled=False)],
            total_count=1,
            total_pages=1,
            page=2,
            page_size=5,
        )
        app.dependency_overrides[get_listing_service] = lambda: mock_service

        response = test_client.get(
            "/api/v1/documents/",
            params={
                "page": 2,
                "size": 5,
                "category": "THESIS",
                "search": "alpha",
                "sort": "title",
                "order": "DESC",
                "docTypes": "single",
            },
        )

        assert response.status_code == 200
        body = response.json()
        assert body["status"] is True
        assert body["data"]["total_count"] == 1
        assert body["data"]["items"][0]["title"] == "Alpha"
        assert "request_id" in body["meta"]

        filters = mock_service.list_documents.call_args.args[0]
        assert filters.page == 2
        assert filters.page_size == 5
        assert filters.category == "THESIS"
        assert filters.sort_field == "title"
        assert filters.sort_order == "DESC"
        assert filters.doc_types == "single"

    def test_invalid_filter_is_a_bad_request(self, test_client: TestClient) -> None:
        mock_service = AsyncMock()
        mock_service.list_documents.side_effect = ValidationError(
            "page_size must be between 1 and 50, got 500", field="page_size"
        )
        app.dependency_overrides[get_listing_service] = lambda: mock_service

        response = test_client.get("/api/v1/documents/", params={"size": 500})

        assert response.status_code == 400
        body = response.json()
        assert body["status"] == 400
        assert "page_size" in body["detail"]
        assert body["instance"] == "/api/v1/documents/"

    def test_degraded_listing_reports_error(self, test_client: TestClient) -> None:
        mock_service = AsyncMock()
        mock_service.list_documents.return_value = DocumentPage(error="Documents could not be loaded")
        app.dependency_overrides[get_listing_service] = lambda: mock_service

        response = test_client.get("/api/v1/documents/")

        assert response.status_code == 200
        body = response.json()
        assert body["status"] is False
        assert body["message"] == "Documents could not be loaded"
        assert body["data"]["items"] == []

    def test_listing_timeout(self, test_client: TestClient) -> None:
        mock_service = AsyncMock()
        mock_service.list_documents.side_effect = asyncio.TimeoutError()
        app.dependency_overrides[get_listing_service] = lambda: mock_service

        response = test_client.get("/api/v1/documents/")

        assert response.status_code == 504

    def test_count_by_category(self, test_client: TestClient) -> None:
        mock_counter = AsyncMock()
        mock_counter.count_by_category.return_value = CategoryCounts(
            categories={"THESIS": 2, "DISSERTATION": 0, "CONFLUENCE": 1, "SYNERGY": 3},
            total=6,
        )
        app.dependency_overrides[get_category_counter] = lambda: mock_counter

        response = test_client.get("/api/v1/documents/count-by-category")

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["categories"]["SYNERGY"] == 3
        assert data["total"] == 6


class TestCompiledDocumentEndpoints:
    def test_create(self, test_client: TestClient) -> None:
        mock_service = AsyncMock()
        mock_service.create_volume.return_value = _volume_detail(7)
        app.dependency_overrides[get_volume_service] = lambda: mock_service

        response = test_client.post(
            "/api/v1/compiled-documents/",
            json={"category": "CONFLUENCE", "volume_number": 5, "document_ids": [1, 2]},
        )

        assert response.status_code == 201
        assert response.json()["data"]["id"] == 7
        payload = mock_service.create_volume.call_args.args[0]
        assert payload.document_ids == [1, 2]

    def test_get_missing_volume(self, test_client: TestClient) -> None:
        mock_service = AsyncMock()
        mock_service.get_volume.side_effect = NotFoundError("Compiled document", 9)
        app.dependency_overrides[get_volume_service] = lambda: mock_service

        response = test_client.get("/api/v1/compiled-documents/9")

        assert response.status_code == 404
        assert response.json()["detail"] == "Compiled document with ID 9 not found"

    def test_add_documents_requires_ids(self, test_client: TestClient) -> None:
        app.dependency_overrides[get_volume_service] = lambda: AsyncMock()

        response = test_client.post("/api/v1/compiled-documents/1/documents", json={"document_ids": []})

        assert response.status_code == 422

    def test_remove_document(self, test_client: TestClient) -> None:
        mock_service = AsyncMock()
        mock_service.remove_work.return_value = _volume_detail(1)
        app.dependency_overrides[get_volume_service] = lambda: mock_service

        response = test_client.delete("/api/v1/compiled-documents/1/documents/4")

        assert response.status_code == 200
        mock_service.remove_work.assert_awaited_once_with(1, 4)

    def test_children(self, test_client: TestClient) -> None:
        mock_resolver = AsyncMock()
        mock_resolver.list_children.return_value = [
            WorkDetail(id=4, title="Work A", category="SYNERGY", compiled_parent_id=1, position=0)
        ]
        app.dependency_overrides[get_child_resolver] = lambda: mock_resolver

        response = test_client.get("/api/v1/compiled-documents/1/children")

        assert response.status_code == 200
        items = response.json()["data"]["items"]
        assert [item["id"] for item in items] == [4]

    def test_children_with_inconsistent_links(self, test_client: TestClient) -> None:
        mock_resolver = AsyncMock()
        mock_resolver.list_children.side_effect = ConsistencyViolationError(1, [5])
        app.dependency_overrides[get_child_resolver] = lambda: mock_resolver

        response = test_client.get("/api/v1/compiled-documents/1/children")

        assert response.status_code == 409


class TestArchiveEndpoints:
    def test_archive_volume(self, test_client: TestClient) -> None:
        mock_service = AsyncMock()
        mock_service.archive.return_value = ArchivalResult(
            action="archive", target="compiled", target_id=1, affected_work_ids=[4, 5], timestamp=NOW
        )
        app.dependency_overrides[get_archival_service] = lambda: mock_service

        response = test_client.post("/api/v1/archives/", json={"id": 1, "kind": "compiled"})

        assert response.status_code == 200
        assert response.json()["data"]["affected_work_ids"] == [4, 5]
        mock_service.archive.assert_awaited_once_with(1)
        mock_service.archive_work.assert_not_called()

    def test_archive_single_document(self, test_client: TestClient) -> None:
        mock_service = AsyncMock()
        mock_service.archive_work.return_value = ArchivalResult(
            action="archive", target="document", target_id=4, affected_work_ids=[4], timestamp=NOW
        )
        app.dependency_overrides[get_archival_service] = lambda: mock_service

        response = test_client.post("/api/v1/archives/", json={"id": 4, "kind": "document"})

        assert response.status_code == 200
        mock_service.archive_work.assert_awaited_once_with(4)

    def test_archive_twice_is_a_conflict(self, test_client: TestClient) -> None:
        mock_service = AsyncMock()
        mock_service.archive.side_effect = AlreadyArchivedError("Compiled document", 1)
        app.dependency_overrides[get_archival_service] = lambda: mock_service

        response = test_client.post("/api/v1/archives/", json={"id": 1})

        assert response.status_code == 409
        assert response.json()["title"] == "Conflict"

    def test_store_failure(self, test_client: TestClient) -> None:
        mock_service = AsyncMock()
        mock_service.archive.side_effect = StoreError("The storage operation failed")
        app.dependency_overrides[get_archival_service] = lambda: mock_service

        response = test_client.post("/api/v1/archives/", json={"id": 1})

        assert response.status_code == 500
        assert response.json()["detail"] == "The storage operation failed"

    def test_restore_document(self, test_client: TestClient) -> None:
        mock_service = AsyncMock()
        mock_service.restore_work.return_value = ArchivalResult(
            action="restore", target="document", target_id=4, affected_work_ids=[4], timestamp=NOW
        )
        app.dependency_overrides[get_archival_service] = lambda: mock_service

        response = test_client.delete("/api/v1/archives/4", params={"kind": "document"})

        assert response.status_code == 200
        mock_service.restore_work.assert_awaited_once_with(4)

    def test_hard_delete_volume(self, test_client: TestClient) -> None:
        mock_service = AsyncMock()
        mock_service.hard_delete_volume.return_value = ArchivalResult(
            action="hard_delete", target="compiled", target_id=2, timestamp=NOW
        )
        app.dependency_overrides[get_archival_service] = lambda: mock_service

        response = test_client.delete("/api/v1/archives/2/hard-delete")

        assert response.status_code == 200
        assert response.json()["data"]["action"] == "hard_delete"

    def test_list_archived(self, test_client: TestClient) -> None:
        mock_service = AsyncMock()
        mock_service.list_archived.return_value = DocumentPage(page=1, page_size=10)
        app.dependency_overrides[get_archival_service] = lambda: mock_service

        response = test_client.get("/api/v1/archives/")

        assert response.status_code == 200
        mock_service.list_archived.assert_awaited_once_with(page=1, page_size=10)


def test_root(test_client: TestClient) -> None:
    response = test_client.get("/")

    assert response.status_code == 200
    assert response.json()["health"] == "/health"


def test_health(test_client: TestClient) -> None:
    response = test_client.get("/health/")

    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "healthy"
    assert body["database"] == "healthy"
