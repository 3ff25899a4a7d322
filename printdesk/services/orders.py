"""
PrintDesk - Order Store

CRUD over order documents. Stage writes are validated against the stage
graph: an order may stay where it is or move to any later stage, never back.

Usage:
    from printdesk.services.orders import OrderStore

    store = OrderStore(document_store)
    order = store.create(OrderCreate(book_title="Atlas", deadline=date(2026, 1, 5)))
    store.change_stage(order.id, "Printing")
"""

from __future__ import annotations

import logging
import time
from typing import Callable, Iterable, Optional

from ..core.errors import NotFoundError, ValidationError
from ..core.logging import LogContext
from ..db import DocumentStore
from ..models import Order, OrderCreate, OrderPatch
from .stages import (
    FIRST_STAGE,
    UnknownStagePolicy,
    allowed_targets,
    is_forward_or_same,
    is_known_stage,
)

logger = logging.getLogger(__name__)

ORDERS_COLLECTION = "orders"


def _now_ms() -> int:
    return int(time.time() * 1000)


class OrderStore:
    """Order persistence with stage-transition validation."""

    def __init__(
        self,
        documents: DocumentStore,
        *,
        unknown_stage_policy: UnknownStagePolicy | str = UnknownStagePolicy.PERMISSIVE,
        clock: Callable[[], int] = _now_ms,
        collection: str = ORDERS_COLLECTION,
    ):
        self._documents = documents
        self._policy = UnknownStagePolicy(unknown_stage_policy)
        self._clock = clock
        self._collection = collection

    @property
    def unknown_stage_policy(self) -> UnknownStagePolicy:
        return self._policy

    # -------------------------------------------------------------------------
    # Reads
    # -------------------------------------------------------------------------

    def get(self, order_id: str) -> Order:
        data = self._documents.get(self._collection, order_id)
        if data is None:
            raise NotFoundError(f"Order {order_id} not found")
        return Order.from_document(order_id, data)

    def list_all(self) -> list[Order]:
        """Every order. No business ordering is implied."""
        return [
            Order.from_document(doc_id, data)
            for doc_id, data in self._documents.query(self._collection)
        ]

    def list_recent(self) -> list[Order]:
        """Every order, most recently updated first."""
        rows = self._documents.query(self._collection, order_by="updatedAt", descending=True)
        return [Order.from_document(doc_id, data) for doc_id, data in rows]

    def list_for_vendor(self, identifiers: Iterable[str]) -> list[Order]:
        """Orders assigned to any of the vendor's identifiers, newest first."""
        merged: dict[str, Order] = {}
        for identifier in identifiers:
            for doc_id, data in self._documents.query(
                self._collection, where={"vendorId": identifier}
            ):
                merged[doc_id] = Order.from_document(doc_id, data)

        return sorted(merged.values(), key=lambda order: order.updated_at, reverse=True)

    def find_by_external_id(self, wc_id: int) -> Optional[Order]:
        rows = self._documents.query(self._collection, where={"wcId": wc_id}, limit=1)
        if not rows:
            return None
        doc_id, data = rows[0]
        return Order.from_document(doc_id, data)

    # -------------------------------------------------------------------------
    # Writes
    # -------------------------------------------------------------------------

    def create(self, payload: OrderCreate) -> Order:
        """
        Create an order.

        Stage defaults to the first stage; createdAt == updatedAt == now.
        """
        data = payload.to_document()

        stage = data.get("stage") or FIRST_STAGE
        if not is_known_stage(stage):
            raise ValidationError(f"Unknown stage: {stage!r}")

        now = self._clock()
        data.update(stage=stage, createdAt=now, updatedAt=now)

        order_id = self._documents.insert(self._collection, data)
        with LogContext(order_id=order_id):
            logger.info(f"Order created at stage {stage!r}", extra={"order_id": order_id})
        return Order.from_document(order_id, data)

    def update(self, order_id: str, patch: OrderPatch) -> Order:
        """
        Apply a patch.

        A stage in the patch must be the current stage or a later one
        (see is_forward_or_same). updatedAt is always refreshed.
        """
        current = self.get(order_id)
        fields = patch.to_document()

        if "stage" in fields:
            target = fields["stage"]
            if target is None:
                raise ValidationError("stage cannot be null")
            if not is_forward_or_same(current.stage, target, self._policy):
                raise ValidationError(
                    f"Illegal stage transition: {current.stage!r} -> {target!r}"
                )

        fields["updatedAt"] = max(self._clock(), current.created_at)

        if not self._documents.update(self._collection, order_id, fields):
            # Deleted between read and write
            raise NotFoundError(f"Order {order_id} not found")

        with LogContext(order_id=order_id):
            if "stage" in fields and fields["stage"] != current.stage:
                logger.info(
                    f"Order stage changed {current.stage!r} -> {fields['stage']!r}",
                    extra={"order_id": order_id, "stage": fields["stage"]},
                )
            else:
                logger.debug(f"Order updated: {sorted(fields)}", extra={"order_id": order_id})

        return self.get(order_id)

    def change_stage(self, order_id: str, stage: str) -> Order:
        return self.update(order_id, OrderPatch(stage=stage))

    def assign_vendor(self, order_id: str, vendor_id: str) -> Order:
        """
        Set the vendor and advance to "Assigned to Vendor" when the order has
        not reached that stage yet.
        """
        current = self.get(order_id)
        assigned_stage = "Assigned to Vendor"

        patch = OrderPatch(vendor_id=vendor_id)
        if assigned_stage in allowed_targets(current.stage, self._policy):
            patch = OrderPatch(vendor_id=vendor_id, stage=assigned_stage)
        return self.update(order_id, patch)

    def apply_upstream(self, order_id: str, fields: dict) -> Order:
        """
        Overwrite upstream-owned fields (customer, totals, status).

        Never touches stage, binding, title or createdAt.
        """
        protected = {"id", "stage", "createdAt", "updatedAt", "bookTitle", "binding"}
        clean = {key: value for key, value in fields.items() if key not in protected}
        current = self.get(order_id)
        clean["updatedAt"] = max(self._clock(), current.created_at)
        if not self._documents.update(self._collection, order_id, clean):
            raise NotFoundError(f"Order {order_id} not found")
        return self.get(order_id)

    def delete(self, order_id: str) -> None:
        if not self._documents.delete(self._collection, order_id):
            raise NotFoundError(f"Order {order_id} not found")
        logger.info(f"Order {order_id} deleted", extra={"order_id": order_id})
