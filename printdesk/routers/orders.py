"""
PrintDesk - Orders Router

HTTP surface over OrderStore.

Admins see and edit everything. Vendors see only orders whose vendorId is
one of their identifiers, and may only move those orders forward.

Handlers are plain `def`: the document store client is blocking, so
FastAPI runs them in its threadpool.
"""

import logging

from fastapi import APIRouter, Depends, Response, status
from pydantic import BaseModel

from ..core.errors import AuthorizationError
from ..core.security import admin_user, current_user
from ..dependencies import Services, get_services
from ..models import Identity, Order, OrderCreate, OrderPatch, StageChange, VendorAssignment

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/orders", tags=["orders"])


class SyncResponse(BaseModel):
    message: str
    count: int


def _load_visible(services: Services, order_id: str, user: Identity) -> Order:
    """Fetch an order, enforcing vendor assignment for non-admins."""
    order = services.orders.get(order_id)
    if user.is_admin:
        return order
    if order.vendor_id and order.vendor_id in services.vendors.resolve_identifiers(user):
        return order
    logger.warning(f"Vendor {user.uid} denied access to order {order_id}")
    raise AuthorizationError("Forbidden")


# ---------------------------------------------------------------------------
# Collection
# ---------------------------------------------------------------------------


@router.get("", response_model=list[Order])
def list_orders(
    user: Identity = Depends(current_user),
    services: Services = Depends(get_services),
) -> list[Order]:
    if user.is_admin:
        return services.orders.list_recent()
    identifiers = services.vendors.resolve_identifiers(user)
    return services.orders.list_for_vendor(identifiers)


@router.post("", response_model=Order, status_code=status.HTTP_201_CREATED)
def create_order(
    body: OrderCreate,
    _: Identity = Depends(admin_user),
    services: Services = Depends(get_services),
) -> Order:
    return services.orders.create(body)


@router.post("/sync", response_model=SyncResponse)
def sync_orders(
    _: Identity = Depends(admin_user),
    services: Services = Depends(get_services),
) -> SyncResponse:
    """Pull recent orders from the upstream shop."""
    count = services.order_sync().sync()
    return SyncResponse(message="Orders synced successfully", count=count)


# ---------------------------------------------------------------------------
# Single order
# ---------------------------------------------------------------------------


@router.get("/{order_id}", response_model=Order)
def get_order(
    order_id: str,
    user: Identity = Depends(current_user),
    services: Services = Depends(get_services),
) -> Order:
    return _load_visible(services, order_id, user)


@router.put("/{order_id}", response_model=Order)
def update_order(
    order_id: str,
    body: OrderPatch,
    _: Identity = Depends(admin_user),
    services: Services = Depends(get_services),
) -> Order:
    return services.orders.update(order_id, body)


@router.patch("/{order_id}/stage", response_model=Order)
def change_stage(
    order_id: str,
    body: StageChange,
    user: Identity = Depends(current_user),
    services: Services = Depends(get_services),
) -> Order:
    """Move an order forward. Vendors may only move orders assigned to them."""
    _load_visible(services, order_id, user)
    return services.orders.change_stage(order_id, body.stage)


@router.post("/{order_id}/assign", response_model=Order)
def assign_vendor(
    order_id: str,
    body: VendorAssignment,
    _: Identity = Depends(admin_user),
    services: Services = Depends(get_services),
) -> Order:
    return services.orders.assign_vendor(order_id, body.vendor_id)


@router.delete("/{order_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_order(
    order_id: str,
    _: Identity = Depends(admin_user),
    services: Services = Depends(get_services),
) -> Response:
    services.orders.delete(order_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
