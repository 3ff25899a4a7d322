"""
PrintDesk - Health Check Router

Liveness probe for load balancers. No authentication, no store access.
"""

import logging
from datetime import datetime, timezone

from fastapi import APIRouter, Depends
from pydantic import BaseModel, ConfigDict, Field

from ..dependencies import Services, get_services

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/health", tags=["health"])


class HealthResponse(BaseModel):
    """Basic health check response."""

    model_config = ConfigDict(populate_by_name=True)

    status: str
    environment: str
    timestamp: str
    object_store: str = Field(serialization_alias="objectStore")


@router.get("", response_model=HealthResponse, response_model_by_alias=True)
async def health_check(services: Services = Depends(get_services)) -> HealthResponse:
    """Returns 200 whenever the process is up."""
    return HealthResponse(
        status="ok",
        environment=services.settings.ENVIRONMENT,
        timestamp=datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
        object_store="configured" if services.artifacts.is_configured else "not_configured",
    )
