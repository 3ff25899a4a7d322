"""
Tests for record normalization at the store boundary.
"""

from __future__ import annotations

from datetime import date, datetime, timezone

import pytest
from pydantic import ValidationError as PydanticValidationError

from printdesk.models import AdminStats, Order, OrderCreate, OrderPatch, parse_deadline, to_millis


class TestOrderFromDocument:
    def test_full_document(self) -> None:
        order = Order.from_document(
            "o1",
            {
                "orderId": "WC-1001",
                "bookTitle": "Atlas",
                "binding": "Hard",
                "deadline": "2026-01-10",
                "notes": "rush",
                "s3Key": "orders/1-atlas.pdf",
                "stage": "Printing",
                "vendorId": "vendor-1",
                "createdAt": 1000,
                "updatedAt": 2000,
            },
        )

        assert order.id == "o1"
        assert order.book_title == "Atlas"
        assert order.binding == "Hard"
        assert order.deadline == date(2026, 1, 10)
        assert order.stage == "Printing"
        assert order.has_artifact
        assert (order.created_at, order.updated_at) == (1000, 2000)

    def test_empty_document_gets_defaults(self) -> None:
        order = Order.from_document("o2", {})

        assert order.book_title == "Untitled"
        assert order.binding == "Soft"
        assert order.stage == "Uploaded"
        assert order.deadline is None
        assert order.created_at == 0
        assert order.updated_at == 0
        assert not order.has_artifact

    def test_unparseable_deadline_is_absent(self) -> None:
        order = Order.from_document("o3", {"deadline": "next tuesday"})
        assert order.deadline is None

    def test_unknown_stage_is_preserved(self) -> None:
        order = Order.from_document("o4", {"stage": "Legacy Hold"})
        assert order.stage == "Legacy Hold"

    def test_updated_at_never_precedes_created_at(self) -> None:
        order = Order.from_document("o5", {"createdAt": 5000, "updatedAt": 10})
        assert order.updated_at == 5000

    def test_iso_timestamps_are_converted(self) -> None:
        order = Order.from_document("o6", {"createdAt": "2026-01-01T00:00:00Z"})
        assert order.created_at == 1_767_225_600_000

    def test_serializes_camel_case(self) -> None:
        order = Order.from_document("o7", {"bookTitle": "Atlas", "vendorId": "v"})
        data = order.model_dump(by_alias=True)
        assert data["bookTitle"] == "Atlas"
        assert data["vendorId"] == "v"
        assert "book_title" not in data


class TestPayloads:
    def test_create_accepts_camel_case(self) -> None:
        payload = OrderCreate.model_validate({"bookTitle": "Atlas", "deadline": "2026-02-01"})
        assert payload.to_document() == {"bookTitle": "Atlas", "deadline": "2026-02-01"}

    def test_patch_only_contains_set_fields(self) -> None:
        assert OrderPatch(notes="x").to_document() == {"notes": "x"}

    @pytest.mark.parametrize("field", ["id", "createdAt", "updatedAt"])
    def test_patch_rejects_server_fields(self, field: str) -> None:
        with pytest.raises(PydanticValidationError):
            OrderPatch.model_validate({field: "x"})

    def test_patch_rejects_unknown_binding(self) -> None:
        with pytest.raises(PydanticValidationError):
            OrderPatch.model_validate({"binding": "Spiral"})


class TestHelpers:
    def test_to_millis(self) -> None:
        assert to_millis(1234) == 1234
        assert to_millis("1234") == 1234
        assert to_millis(datetime(2026, 1, 1, tzinfo=timezone.utc)) == 1_767_225_600_000
        assert to_millis("garbage") is None
        assert to_millis(True) is None

    def test_parse_deadline(self) -> None:
        assert parse_deadline("2026-03-04T10:00:00Z") == date(2026, 3, 4)
        assert parse_deadline(datetime(2026, 3, 4, 23, 0)) == date(2026, 3, 4)
        assert parse_deadline("") is None
        assert parse_deadline(42) is None


class TestAdminStats:
    def test_negative_stage_count_rejected(self) -> None:
        with pytest.raises(PydanticValidationError):
            AdminStats(new_today=0, due_soon=0, missing_pdfs=0, by_stage={"Uploaded": -1}, total=0)
