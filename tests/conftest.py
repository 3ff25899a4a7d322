"""
tests/conftest.py

Shared fixtures for the PrintDesk test suite.

Every test runs against in-process capabilities: a MemoryDocumentStore, a
MagicMock standing in for the boto3 S3 client, and tokens minted with PyJWT
against a fixed secret. Nothing here reaches the network.
"""

from __future__ import annotations

from pathlib import Path
from unittest.mock import MagicMock

import pytest
from fastapi.testclient import TestClient

from printdesk.config import Settings, reset_settings
from printdesk.db import MemoryDocumentStore
from printdesk.dependencies import Services
from printdesk.services.artifacts import ArtifactGateway
from tests.helpers import FIXED_MS, JWT_SECRET, FakeClock, bearer, make_token, presigned_url


# =============================================================================
# FIXTURES
# =============================================================================


@pytest.fixture(autouse=True)
def _clear_settings_cache():
    reset_settings()
    yield
    reset_settings()


@pytest.fixture
def settings() -> Settings:
    return Settings(
        ENVIRONMENT="dev",
        SUPABASE_URL="",
        SUPABASE_SERVICE_ROLE_KEY="",
        SUPABASE_JWT_SECRET=JWT_SECRET,
        AUTH_DEV_BYPASS=False,
        S3_BUCKET="",
        S3_REGION="",
        S3_ACCESS_KEY_ID="",
        S3_SECRET_ACCESS_KEY="",
        WOOCOMMERCE_SITE_URL="",
        WOOCOMMERCE_CONSUMER_KEY="",
        WOOCOMMERCE_CONSUMER_SECRET="",
    )


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def documents() -> MemoryDocumentStore:
    """Store seeded with one admin and two vendor profiles."""
    return MemoryDocumentStore(
        seed={
            "users": {
                "admin-1": {"role": "admin", "email": "admin@example.com", "name": "Ada Admin"},
                "vendor-1": {
                    "role": "vendor",
                    "email": "v1@example.com",
                    "name": "Bindery One",
                    "vendorCode": "VND-1",
                    "legacyIds": ["legacy-v1"],
                },
                "vendor-2": {"role": "vendor", "email": "v2@example.com", "name": "Acme Press"},
            }
        }
    )


@pytest.fixture
def s3_client() -> MagicMock:
    client = MagicMock(name="s3")
    client.generate_presigned_url.side_effect = presigned_url
    return client


@pytest.fixture
def upload_dir(tmp_path: Path) -> Path:
    return tmp_path / "uploads"


@pytest.fixture
def artifacts(s3_client: MagicMock, upload_dir: Path) -> ArtifactGateway:
    return ArtifactGateway(
        s3_client,
        "printdesk-artifacts",
        "us-east-1",
        "AKIATEST",
        "secret",
        local_upload_dir=upload_dir,
        clock=lambda: FIXED_MS,
    )


@pytest.fixture
def unconfigured_artifacts(upload_dir: Path) -> ArtifactGateway:
    return ArtifactGateway(None, local_upload_dir=upload_dir, clock=lambda: FIXED_MS)


@pytest.fixture
def services(
    settings: Settings,
    documents: MemoryDocumentStore,
    artifacts: ArtifactGateway,
) -> Services:
    return Services.build(settings, documents=documents, artifacts=artifacts)


@pytest.fixture
def client(services: Services) -> TestClient:
    from printdesk.main import create_app

    app = create_app(services=services)
    return TestClient(app, raise_server_exceptions=False)


@pytest.fixture
def admin_headers() -> dict[str, str]:
    return bearer(make_token("admin-1", email="admin@example.com"))


@pytest.fixture
def vendor_headers() -> dict[str, str]:
    return bearer(make_token("vendor-1", email="v1@example.com"))


@pytest.fixture
def other_vendor_headers() -> dict[str, str]:
    return bearer(make_token("vendor-2", email="v2@example.com"))
