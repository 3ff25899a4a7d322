"""
PrintDesk - Records

Schema-validated record types used at the store boundary and on the wire.
Python attributes are snake_case; documents and JSON bodies use camelCase.

Order.from_document() is the single place where defaults for missing or
malformed stored fields are applied.
"""

from __future__ import annotations

import logging
from datetime import date, datetime, timezone
from typing import Any, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from .services.stages import FIRST_STAGE

logger = logging.getLogger(__name__)

Binding = Literal["Soft", "Hard"]
Role = Literal["admin", "vendor"]


class _CamelModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
    )


# =============================================================================
# Helpers
# =============================================================================


def to_millis(value: Any) -> int | None:
    """Coerce a stored timestamp (millis, ISO string, datetime) to millis."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return int(value)
    if isinstance(value, datetime):
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return int(value.timestamp() * 1000)
    if isinstance(value, str) and value.strip():
        text = value.strip()
        if text.isdigit():
            return int(text)
        try:
            parsed = datetime.fromisoformat(text.replace("Z", "+00:00"))
        except ValueError:
            return None
        return to_millis(parsed)
    return None


def parse_deadline(value: Any) -> date | None:
    """Calendar date from a stored deadline, None when absent or unparseable."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        try:
            return date.fromisoformat(value.strip()[:10])
        except ValueError:
            return None
    return None


# =============================================================================
# Orders
# =============================================================================


class LineItem(_CamelModel):
    id: int
    name: str
    quantity: int = 1
    total: str = "0"


class Order(_CamelModel):
    """A print order as stored and returned by the API."""

    id: str
    order_id: str = ""
    book_title: str = "Untitled"
    binding: Binding = "Soft"
    deadline: Optional[date] = None
    notes: str = ""
    cover_image: Optional[str] = None
    s3_key: Optional[str] = None
    stage: str = FIRST_STAGE
    vendor_id: Optional[str] = None
    created_at: int = 0
    updated_at: int = 0

    # Upstream order source fields
    wc_id: Optional[int] = None
    customer_name: Optional[str] = None
    customer_email: Optional[str] = None
    total_amount: Optional[str] = None
    currency: Optional[str] = None
    wc_status: Optional[str] = None
    line_items: Optional[list[LineItem]] = None

    @property
    def has_artifact(self) -> bool:
        return bool(self.s3_key)

    @classmethod
    def from_document(cls, doc_id: str, data: dict[str, Any]) -> "Order":
        """
        Build an Order from a raw stored document, applying defaults.

        - missing/blank stage -> first stage (unrecognized values are kept)
        - unparseable deadline -> None
        - missing createdAt -> 0, missing updatedAt -> createdAt
        - updatedAt is never earlier than createdAt
        """
        raw_deadline = data.get("deadline")
        deadline = parse_deadline(raw_deadline)
        if deadline is None and raw_deadline not in (None, ""):
            logger.warning(
                f"Order {doc_id} has unparseable deadline {raw_deadline!r}; treating as absent",
                extra={"order_id": doc_id},
            )

        stage = data.get("stage")
        if not isinstance(stage, str) or not stage.strip():
            stage = FIRST_STAGE

        created_at = to_millis(data.get("createdAt"))
        updated_at = to_millis(data.get("updatedAt"))
        if created_at is None:
            created_at = 0
        if updated_at is None or updated_at < created_at:
            updated_at = created_at

        binding = data.get("binding")
        if binding not in ("Soft", "Hard"):
            binding = "Soft"

        return cls(
            id=str(doc_id),
            order_id=str(data.get("orderId") or ""),
            book_title=data.get("bookTitle") or "Untitled",
            binding=binding,
            deadline=deadline,
            notes=data.get("notes") or "",
            cover_image=data.get("coverImage") or None,
            s3_key=data.get("s3Key") or None,
            stage=stage,
            vendor_id=data.get("vendorId") or None,
            created_at=created_at,
            updated_at=updated_at,
            wc_id=data.get("wcId"),
            customer_name=data.get("customerName"),
            customer_email=data.get("customerEmail"),
            total_amount=data.get("totalAmount"),
            currency=data.get("currency"),
            wc_status=data.get("wcStatus"),
            line_items=data.get("lineItems"),
        )


class _OrderFields(_CamelModel):
    """Client-editable order fields. Everything optional."""

    order_id: Optional[str] = None
    book_title: Optional[str] = None
    binding: Optional[Binding] = None
    deadline: Optional[date] = None
    notes: Optional[str] = None
    cover_image: Optional[str] = None
    s3_key: Optional[str] = None
    stage: Optional[str] = None
    vendor_id: Optional[str] = None

    def to_document(self) -> dict[str, Any]:
        """Only the fields the caller actually set, camelCase, JSON-safe."""
        return self.model_dump(mode="json", by_alias=True, exclude_unset=True)


class OrderCreate(_OrderFields):
    """Payload for creating an order."""

    model_config = ConfigDict(extra="ignore")

    wc_id: Optional[int] = None
    customer_name: Optional[str] = None
    customer_email: Optional[str] = None
    total_amount: Optional[str] = None
    currency: Optional[str] = None
    wc_status: Optional[str] = None
    line_items: Optional[list[LineItem]] = None


class OrderPatch(_OrderFields):
    """Payload for updating an order. id/createdAt/updatedAt are rejected."""

    model_config = ConfigDict(extra="forbid")


class StageChange(BaseModel):
    stage: str = Field(..., min_length=1)


class VendorAssignment(_CamelModel):
    vendor_id: str = Field(..., min_length=1)


# =============================================================================
# Vendors & identities
# =============================================================================


class Vendor(_CamelModel):
    vendor_id: str
    name: str
    contact_email: str = ""
    active: bool = True


class Identity(BaseModel):
    """Verified caller identity."""

    uid: str
    role: Role
    email: Optional[str] = None

    @property
    def is_admin(self) -> bool:
        return self.role == "admin"


# =============================================================================
# Stats
# =============================================================================


class AdminStats(_CamelModel):
    new_today: int
    due_soon: int
    missing_pdfs: int
    by_stage: dict[str, int]
    total: int

    @field_validator("by_stage")
    @classmethod
    def _non_negative(cls, value: dict[str, int]) -> dict[str, int]:
        if any(count < 0 for count in value.values()):
            raise ValueError("stage counts cannot be negative")
        return value
