"""
Test the artifact API: upload/view URLs and the local upload fallback.
"""

from __future__ import annotations

import asyncio
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

from printdesk.config import Settings
from printdesk.db import MemoryDocumentStore
from printdesk.dependencies import Services
from printdesk.services.artifacts import ArtifactGateway

from tests.helpers import FIXED_MS


@pytest.fixture
def local_client(
    settings: Settings,
    documents: MemoryDocumentStore,
    unconfigured_artifacts: ArtifactGateway,
) -> TestClient:
    """App whose object store is not configured."""
    from printdesk.main import create_app

    services = Services.build(settings, documents=documents, artifacts=unconfigured_artifacts)
    return TestClient(create_app(services=services), raise_server_exceptions=False)


class TestUploadUrl:
    def test_defaults(self, client: TestClient, vendor_headers: dict) -> None:
        response = client.get("/api/upload-url", headers=vendor_headers)

        assert response.status_code == 200
        body = response.json()
        assert body["key"] == f"orders/{FIXED_MS}-upload.pdf"
        assert "op=put_object" in body["url"]

    def test_file_name_is_sanitized(self, client: TestClient, vendor_headers: dict) -> None:
        response = client.get(
            "/api/upload-url",
            params={"fileName": "My Book  Final.pdf", "contentType": "application/pdf"},
            headers=vendor_headers,
        )
        assert response.json()["key"] == f"orders/{FIXED_MS}-My-Book-Final.pdf"

    def test_requires_authentication(self, client: TestClient) -> None:
        assert client.get("/api/upload-url").status_code == 401

    def test_unconfigured_is_503(self, local_client: TestClient, vendor_headers: dict) -> None:
        response = local_client.get("/api/upload-url", headers=vendor_headers)

        assert response.status_code == 503
        assert response.json()["error"] == "configuration_error"


class TestViewUrl:
    def test_redirects_to_signed_url(self, client: TestClient, vendor_headers: dict) -> None:
        response = client.get(
            "/api/view-url",
            params={"key": "orders/1-book.pdf"},
            headers=vendor_headers,
            follow_redirects=False,
        )

        assert response.status_code == 302
        assert "orders/1-book.pdf" in response.headers["location"]
        assert "op=get_object" in response.headers["location"]

    def test_missing_key_is_400(self, client: TestClient, vendor_headers: dict) -> None:
        response = client.get("/api/view-url", headers=vendor_headers, follow_redirects=False)

        assert response.status_code == 400
        assert response.json()["message"] == "Missing key"

    def test_requires_authentication(self, client: TestClient) -> None:
        response = client.get(
            "/api/view-url", params={"key": "orders/1-book.pdf"}, follow_redirects=False
        )
        assert response.status_code == 401

    def test_unconfigured_is_503(self, local_client: TestClient, vendor_headers: dict) -> None:
        response = local_client.get(
            "/api/view-url",
            params={"key": "orders/1-book.pdf"},
            headers=vendor_headers,
            follow_redirects=False,
        )
        assert response.status_code == 503


class TestLocalUpload:
    def test_stores_body(
        self, local_client: TestClient, vendor_headers: dict, upload_dir: Path
    ) -> None:
        response = local_client.put(
            "/api/local-upload",
            params={"filename": "proof.pdf"},
            content=b"%PDF-1.7 test",
            headers=vendor_headers,
        )

        assert response.status_code == 200
        assert response.json() == {"success": True, "path": "/uploads/proof.pdf"}
        assert (upload_dir / "proof.pdf").read_bytes() == b"%PDF-1.7 test"

    def test_disk_write_runs_off_event_loop(
        self,
        local_client: TestClient,
        unconfigured_artifacts: ArtifactGateway,
        vendor_headers: dict,
        monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        loop_seen: list[bool] = []
        original = unconfigured_artifacts.local_upload

        def recording_upload(filename: str, data: bytes) -> str:
            try:
                asyncio.get_running_loop()
                loop_seen.append(True)
            except RuntimeError:
                loop_seen.append(False)
            return original(filename, data)

        monkeypatch.setattr(unconfigured_artifacts, "local_upload", recording_upload)

        response = local_client.put(
            "/api/local-upload",
            params={"filename": "proof.pdf"},
            content=b"x",
            headers=vendor_headers,
        )

        assert response.status_code == 200
        assert loop_seen == [False]

    def test_missing_filename_is_400(self, local_client: TestClient, vendor_headers: dict) -> None:
        response = local_client.put("/api/local-upload", content=b"x", headers=vendor_headers)
        assert response.status_code == 400

    def test_path_traversal_is_400(
        self, local_client: TestClient, vendor_headers: dict, upload_dir: Path
    ) -> None:
        response = local_client.put(
            "/api/local-upload",
            params={"filename": "../escape.pdf"},
            content=b"x",
            headers=vendor_headers,
        )
        assert response.status_code == 400
        assert not (upload_dir.parent / "escape.pdf").exists()

    def test_disabled_when_object_store_configured(
        self, client: TestClient, vendor_headers: dict, upload_dir: Path
    ) -> None:
        response = client.put(
            "/api/local-upload",
            params={"filename": "proof.pdf"},
            content=b"x",
            headers=vendor_headers,
        )

        assert response.status_code == 400
        assert not upload_dir.exists()
