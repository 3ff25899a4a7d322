"""
PrintDesk - Artifact Router

Presigned upload/view URLs for order PDFs, plus the local-disk upload used
when no object store is configured.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query, Request
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import RedirectResponse
from pydantic import BaseModel

from ..core.errors import ValidationError
from ..core.security import current_user
from ..dependencies import get_artifacts
from ..models import Identity
from ..services.artifacts import DEFAULT_CONTENT_TYPE, DEFAULT_UPLOAD_FILENAME, ArtifactGateway

logger = logging.getLogger(__name__)

router = APIRouter(tags=["artifacts"])


class UploadUrlResponse(BaseModel):
    url: str
    key: str


class LocalUploadResponse(BaseModel):
    success: bool
    path: str


@router.get("/upload-url", response_model=UploadUrlResponse)
def get_upload_url(
    file_name: str = Query(default=DEFAULT_UPLOAD_FILENAME, alias="fileName"),
    content_type: str = Query(default=DEFAULT_CONTENT_TYPE, alias="contentType"),
    user: Identity = Depends(current_user),
    artifacts: ArtifactGateway = Depends(get_artifacts),
) -> UploadUrlResponse:
    upload = artifacts.presign_upload(file_name, content_type)
    logger.info(f"Upload URL issued to {user.uid} for {upload.key}")
    return UploadUrlResponse(url=upload.url, key=upload.key)


@router.get("/view-url", status_code=302, response_class=RedirectResponse)
def get_view_url(
    key: Optional[str] = Query(default=None),
    _: Identity = Depends(current_user),
    artifacts: ArtifactGateway = Depends(get_artifacts),
) -> RedirectResponse:
    """Redirect to a short-lived signed URL that renders the PDF inline."""
    if not key:
        raise ValidationError("Missing key")
    return RedirectResponse(url=artifacts.presign_view(key), status_code=302)


@router.put("/local-upload", response_model=LocalUploadResponse)
async def local_upload(
    request: Request,
    filename: Optional[str] = Query(default=None),
    _: Identity = Depends(current_user),
    artifacts: ArtifactGateway = Depends(get_artifacts),
) -> LocalUploadResponse:
    """Store the raw request body on local disk. Disabled once S3 is configured."""
    if not filename:
        raise ValidationError("Filename is required")
    if artifacts.is_configured:
        raise ValidationError("Local upload is disabled when object storage is configured")

    data = await request.body()
    path = await run_in_threadpool(artifacts.local_upload, filename, data)
    return LocalUploadResponse(success=True, path=path)
