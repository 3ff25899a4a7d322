"""
PrintDesk - Artifact Gateway

Time-bounded access to order artifacts (PDFs) in the object store.
Callers transfer bytes directly against the store using presigned URLs;
the gateway never proxies file contents, except for the local-disk
fallback used when no object store is configured.

Usage:
    gateway = ArtifactGateway.from_settings(settings)
    upload = gateway.presign_upload("proof v2.pdf")   # -> url, key
    url = gateway.presign_view(upload.key)             # -> 60s GET URL
"""

from __future__ import annotations

import json
import re
import time
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, Any, Callable, Optional

from botocore.exceptions import BotoCoreError, ClientError
from loguru import logger

from ..core.errors import ConfigurationError, UpstreamError, ValidationError

if TYPE_CHECKING:
    from ..config import Settings

# =============================================================================
# Constants
# =============================================================================

UPLOAD_KEY_PREFIX = "orders"
DEFAULT_UPLOAD_FILENAME = "upload.pdf"
DEFAULT_CONTENT_TYPE = "application/pdf"
DEFAULT_UPLOAD_TTL_SECONDS = 60
DEFAULT_VIEW_TTL_SECONDS = 60
LOCAL_PUBLIC_PREFIX = "/uploads"

_WHITESPACE = re.compile(r"\s+")


@dataclass(frozen=True)
class PresignedUpload:
    url: str
    key: str


def sanitize_file_name(name: str) -> str:
    """Replace whitespace runs with '-'."""
    return _WHITESPACE.sub("-", name.strip())


def build_upload_key(file_name: str, now_ms: int) -> str:
    """orders/<millis>-<sanitized-name>"""
    return f"{UPLOAD_KEY_PREFIX}/{now_ms}-{sanitize_file_name(file_name)}"


def _now_ms() -> int:
    return int(time.time() * 1000)


class ArtifactGateway:
    """
    Presigned access to the order artifact bucket.

    The S3 client is injected; `is_configured` is fixed at construction from
    the presence of bucket, region, access key and secret key.
    """

    def __init__(
        self,
        s3_client: Any | None,
        bucket: str = "",
        region: str = "",
        access_key_id: str = "",
        secret_access_key: str = "",
        *,
        local_upload_dir: str | Path = "public/uploads",
        upload_ttl_seconds: int = DEFAULT_UPLOAD_TTL_SECONDS,
        view_ttl_seconds: int = DEFAULT_VIEW_TTL_SECONDS,
        clock: Callable[[], int] = _now_ms,
    ):
        self._s3 = s3_client
        self._bucket = bucket
        self._local_upload_dir = Path(local_upload_dir)
        self._upload_ttl = upload_ttl_seconds
        self._view_ttl = view_ttl_seconds
        self._clock = clock
        self._configured = s3_client is not None and all(
            value.strip() for value in (bucket, region, access_key_id, secret_access_key)
        )

    @classmethod
    def from_settings(cls, settings: "Settings") -> "ArtifactGateway":
        s3_client = None
        if settings.object_store_configured:
            import boto3

            s3_client = boto3.client(
                "s3",
                region_name=settings.S3_REGION,
                aws_access_key_id=settings.S3_ACCESS_KEY_ID,
                aws_secret_access_key=settings.S3_SECRET_ACCESS_KEY,
            )
        else:
            logger.warning(
                "Object store not configured (S3_BUCKET, S3_REGION, S3_ACCESS_KEY_ID, "
                "S3_SECRET_ACCESS_KEY) - upload/view URLs disabled, local upload enabled"
            )
        return cls(
            s3_client,
            settings.S3_BUCKET,
            settings.S3_REGION,
            settings.S3_ACCESS_KEY_ID,
            settings.S3_SECRET_ACCESS_KEY,
            local_upload_dir=settings.LOCAL_UPLOAD_DIR,
            upload_ttl_seconds=settings.ARTIFACT_UPLOAD_URL_TTL_SECONDS,
            view_ttl_seconds=settings.ARTIFACT_VIEW_URL_TTL_SECONDS,
        )

    @property
    def is_configured(self) -> bool:
        return self._configured

    def _require_configured(self) -> None:
        if not self._configured:
            raise ConfigurationError(
                "Object storage is not configured. Set S3_BUCKET, S3_REGION, "
                "S3_ACCESS_KEY_ID and S3_SECRET_ACCESS_KEY."
            )

    # -------------------------------------------------------------------------
    # Presigned URLs
    # -------------------------------------------------------------------------

    def presign_upload(
        self,
        file_name: str | None = None,
        content_type: str | None = None,
    ) -> PresignedUpload:
        """Presigned PUT URL for a new order artifact."""
        self._require_configured()

        key = build_upload_key(file_name or DEFAULT_UPLOAD_FILENAME, self._clock())
        try:
            url = self._s3.generate_presigned_url(
                "put_object",
                Params={
                    "Bucket": self._bucket,
                    "Key": key,
                    "ContentType": content_type or DEFAULT_CONTENT_TYPE,
                },
                ExpiresIn=self._upload_ttl,
            )
        except (ClientError, BotoCoreError) as e:
            logger.error(f"Failed to presign upload for {key}: {e}")
            raise UpstreamError(f"Failed to create upload URL: {e}") from e

        logger.info(f"Presigned upload URL issued for {key} (ttl={self._upload_ttl}s)")
        return PresignedUpload(url=url, key=key)

    def presign_view(self, key: str) -> str:
        """Presigned GET URL that renders the PDF inline."""
        if not key:
            raise ValidationError("Missing key")
        self._require_configured()

        try:
            url = self._s3.generate_presigned_url(
                "get_object",
                Params={
                    "Bucket": self._bucket,
                    "Key": key,
                    "ResponseContentType": DEFAULT_CONTENT_TYPE,
                    "ResponseContentDisposition": "inline",
                },
                ExpiresIn=self._view_ttl,
            )
        except (ClientError, BotoCoreError) as e:
            logger.error(f"Failed to presign view for {key}: {e}")
            raise UpstreamError(f"Failed to generate view URL: {e}") from e

        return url

    # -------------------------------------------------------------------------
    # JSON documents and listing
    # -------------------------------------------------------------------------

    def put_json(self, key: str, data: Any) -> None:
        self._require_configured()
        try:
            self._s3.put_object(
                Bucket=self._bucket,
                Key=key,
                ContentType="application/json",
                Body=json.dumps(data, default=str).encode("utf-8"),
            )
        except (ClientError, BotoCoreError) as e:
            logger.error(f"Failed to write {key}: {e}")
            raise UpstreamError(f"Failed to write {key}: {e}") from e

    def get_json(self, key: str) -> Optional[Any]:
        """Parsed JSON document, None when the key does not exist or is empty."""
        self._require_configured()
        try:
            response = self._s3.get_object(Bucket=self._bucket, Key=key)
        except ClientError as e:
            code = e.response.get("Error", {}).get("Code", "")
            if code in ("NoSuchKey", "404", "NotFound"):
                return None
            logger.error(f"Failed to read {key}: {e}")
            raise UpstreamError(f"Failed to read {key}: {e}") from e
        except BotoCoreError as e:
            logger.error(f"Failed to read {key}: {e}")
            raise UpstreamError(f"Failed to read {key}: {e}") from e

        body = response["Body"].read()
        if not body:
            return None
        return json.loads(body)

    def list_keys(self, prefix: str = "") -> list[str]:
        """
        Keys under `prefix`.

        Best effort: an unconfigured gateway or an unreachable object store
        returns [] instead of failing the caller. Both cases are logged.
        """
        if not self._configured:
            logger.warning(f"list_keys({prefix!r}) skipped: object store not configured")
            return []

        keys: list[str] = []
        try:
            paginator = self._s3.get_paginator("list_objects_v2")
            for page in paginator.paginate(Bucket=self._bucket, Prefix=prefix):
                keys.extend(obj["Key"] for obj in page.get("Contents", []) if obj.get("Key"))
        except (ClientError, BotoCoreError) as e:
            logger.warning(f"list_keys({prefix!r}) degraded to empty result: {e}")
            return []
        return keys

    # -------------------------------------------------------------------------
    # Local fallback
    # -------------------------------------------------------------------------

    def local_upload(self, filename: str, data: bytes) -> str:
        """
        Write bytes under the local upload directory.

        Only meant for environments without object-store credentials; the
        route decides whether this path is reachable.
        """
        if not filename:
            raise ValidationError("Filename is required")
        if "/" in filename or "\\" in filename or filename in (".", ".."):
            raise ValidationError("Filename must not contain path components")

        self._local_upload_dir.mkdir(parents=True, exist_ok=True)
        (self._local_upload_dir / filename).write_bytes(data)

        logger.info(f"Stored local upload {filename} ({len(data)} bytes)")
        return f"{LOCAL_PUBLIC_PREFIX}/{filename}"
