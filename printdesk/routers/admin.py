"""
PrintDesk - Admin Router

Operational views for administrators: stats, vendors, stored artifacts.
"""

import logging
import time

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel

from ..core.security import admin_user
from ..dependencies import Services, get_services
from ..models import AdminStats, Identity, Vendor

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin", tags=["admin"])

SNAPSHOT_PREFIX = "reports"


class StatsSnapshotResponse(BaseModel):
    key: str
    stats: AdminStats


class ArtifactListResponse(BaseModel):
    keys: list[str]


@router.get("/stats", response_model=AdminStats)
def get_stats(
    _: Identity = Depends(admin_user),
    services: Services = Depends(get_services),
) -> AdminStats:
    return services.stats.compute()


@router.post("/stats/snapshot", response_model=StatsSnapshotResponse)
def snapshot_stats(
    user: Identity = Depends(admin_user),
    services: Services = Depends(get_services),
) -> StatsSnapshotResponse:
    """Compute stats and persist them as JSON in the object store."""
    stats = services.stats.compute()
    key = f"{SNAPSHOT_PREFIX}/stats-{int(time.time() * 1000)}.json"
    services.artifacts.put_json(key, stats.model_dump(by_alias=True))
    logger.info(f"Stats snapshot written to {key} by {user.uid}")
    return StatsSnapshotResponse(key=key, stats=stats)


@router.get("/vendors", response_model=list[Vendor])
def list_vendors(
    _: Identity = Depends(admin_user),
    services: Services = Depends(get_services),
) -> list[Vendor]:
    return services.vendors.list_vendors()


@router.get("/artifacts", response_model=ArtifactListResponse)
def list_artifacts(
    prefix: str = Query(default="orders/"),
    _: Identity = Depends(admin_user),
    services: Services = Depends(get_services),
) -> ArtifactListResponse:
    """Best effort: an unreachable object store yields an empty list."""
    return ArtifactListResponse(keys=services.artifacts.list_keys(prefix))
