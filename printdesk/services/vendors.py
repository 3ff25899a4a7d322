"""
PrintDesk - Vendor Directory

Vendors are user profiles with role == "vendor"; they are provisioned
outside this service and only read here.
"""

from __future__ import annotations

import logging
from typing import Any, Optional

from ..db import DocumentStore
from ..models import Identity, Vendor

logger = logging.getLogger(__name__)

USERS_COLLECTION = "users"

# Profile fields that may hold an identifier an order's vendorId points at
_IDENTIFIER_FIELDS = ("vendorId", "vendorCode", "email", "contactEmail", "username")


def vendor_from_profile(profile_id: str, data: dict[str, Any]) -> Vendor:
    active = data.get("active")
    return Vendor(
        vendor_id=profile_id,
        name=data.get("name") or data.get("email") or profile_id,
        contact_email=data.get("email") or "",
        active=True if active is None else bool(active),
    )


class VendorDirectory:
    """Read-only access to vendor profiles."""

    def __init__(self, documents: DocumentStore, collection: str = USERS_COLLECTION):
        self._documents = documents
        self._collection = collection

    def list_vendors(self) -> list[Vendor]:
        rows = self._documents.query(self._collection, where={"role": "vendor"})
        vendors = [vendor_from_profile(doc_id, data) for doc_id, data in rows]
        vendors.sort(key=lambda v: (v.name.lower(), v.vendor_id))
        return vendors

    def _find_profile(self, uid: str, email: Optional[str]) -> Optional[tuple[str, dict]]:
        data = self._documents.get(self._collection, uid)
        if data is not None:
            return uid, data
        if email:
            rows = self._documents.query(self._collection, where={"email": email}, limit=1)
            if rows:
                return rows[0]
        return None

    def resolve_identifiers(self, identity: Identity) -> list[str]:
        """
        Every identifier an order may use to reference this vendor.

        Order is stable: uid, email, profile id, profile fields, legacyIds.
        """
        identifiers: list[str] = []

        def add(value: Any) -> None:
            if isinstance(value, str) and value.strip() and value.strip() not in identifiers:
                identifiers.append(value.strip())

        add(identity.uid)
        add(identity.email)

        found = self._find_profile(identity.uid, identity.email)
        if found is not None:
            profile_id, data = found
            add(profile_id)
            for field in _IDENTIFIER_FIELDS:
                add(data.get(field))
            legacy_ids = data.get("legacyIds")
            if isinstance(legacy_ids, list):
                for legacy in legacy_ids:
                    add(legacy)

        logger.debug(f"Vendor {identity.uid} resolves to {len(identifiers)} identifiers")
        return identifiers
