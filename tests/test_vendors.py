"""
Tests for the vendor directory.
"""

from __future__ import annotations

from printdesk.db import MemoryDocumentStore
from printdesk.models import Identity
from printdesk.services.vendors import VendorDirectory, vendor_from_profile


class TestListVendors:
    def test_only_vendors_sorted_by_name(self, documents: MemoryDocumentStore) -> None:
        vendors = VendorDirectory(documents).list_vendors()

        assert [v.vendor_id for v in vendors] == ["vendor-2", "vendor-1"]
        assert [v.name for v in vendors] == ["Acme Press", "Bindery One"]
        assert all(v.active for v in vendors)

    def test_projection_defaults(self) -> None:
        vendor = vendor_from_profile("v9", {"role": "vendor"})

        assert vendor.name == "v9"
        assert vendor.contact_email == ""
        assert vendor.active is True

    def test_name_falls_back_to_email(self) -> None:
        vendor = vendor_from_profile("v9", {"email": "shop@example.com", "active": False})
        assert vendor.name == "shop@example.com"
        assert vendor.active is False

    def test_wire_shape(self) -> None:
        data = vendor_from_profile("v9", {"name": "Nine"}).model_dump(by_alias=True)
        assert data == {"vendorId": "v9", "name": "Nine", "contactEmail": "", "active": True}


class TestResolveIdentifiers:
    def test_collects_profile_identifiers(self, documents: MemoryDocumentStore) -> None:
        identity = Identity(uid="vendor-1", role="vendor", email="v1@example.com")

        assert VendorDirectory(documents).resolve_identifiers(identity) == [
            "vendor-1",
            "v1@example.com",
            "VND-1",
            "legacy-v1",
        ]

    def test_profile_found_by_email(self) -> None:
        documents = MemoryDocumentStore(
            seed={"users": {"old-id": {"email": "v@example.com", "vendorId": " V-7 "}}}
        )
        identity = Identity(uid="new-uid", role="vendor", email="v@example.com")

        assert VendorDirectory(documents).resolve_identifiers(identity) == [
            "new-uid",
            "v@example.com",
            "old-id",
            "V-7",
        ]

    def test_no_profile(self) -> None:
        identity = Identity(uid="ghost", role="vendor")
        assert VendorDirectory(MemoryDocumentStore()).resolve_identifiers(identity) == ["ghost"]
