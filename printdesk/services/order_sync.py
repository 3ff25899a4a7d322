"""
PrintDesk - Upstream Order Sync

Pulls recent orders from the WooCommerce REST API (read-only) and mirrors
them into the order store. New orders start at the first stage; existing
orders only get their upstream-owned fields refreshed, so fulfillment
progress recorded here is never overwritten by the shop.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Optional

import httpx
from pydantic import ValidationError as PydanticValidationError

from ..core.errors import ConfigurationError, UpstreamError
from ..models import OrderCreate
from .orders import OrderStore

if TYPE_CHECKING:
    from ..config import Settings

logger = logging.getLogger(__name__)

API_PATH = "/wp-json/wc/v3"
UNTITLED_API_ORDER = "Untitled API Order"


class WooCommerceClient:
    """Minimal read-only WooCommerce REST client."""

    def __init__(
        self,
        site_url: str,
        consumer_key: str,
        consumer_secret: str,
        *,
        timeout: float = 15.0,
        http_client: Optional[httpx.Client] = None,
    ):
        if not (site_url and consumer_key and consumer_secret):
            raise ConfigurationError(
                "WooCommerce is not configured. Set WOOCOMMERCE_SITE_URL, "
                "WOOCOMMERCE_CONSUMER_KEY and WOOCOMMERCE_CONSUMER_SECRET."
            )
        self._base_url = site_url.rstrip("/") + API_PATH
        self._auth = httpx.BasicAuth(consumer_key, consumer_secret)
        self._http = http_client or httpx.Client(timeout=timeout)

    @classmethod
    def from_settings(cls, settings: "Settings") -> "WooCommerceClient":
        return cls(
            settings.WOOCOMMERCE_SITE_URL,
            settings.WOOCOMMERCE_CONSUMER_KEY,
            settings.WOOCOMMERCE_CONSUMER_SECRET,
            timeout=settings.WOOCOMMERCE_TIMEOUT_SECONDS,
        )

    def list_orders(self, per_page: int = 20, page: int = 1) -> list[dict[str, Any]]:
        url = f"{self._base_url}/orders"
        try:
            response = self._http.get(
                url,
                params={"per_page": per_page, "page": page},
                auth=self._auth,
            )
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            logger.error(f"WooCommerce returned HTTP {e.response.status_code} for {url}")
            raise UpstreamError(
                f"WooCommerce returned HTTP {e.response.status_code}: {e.response.text[:200]}"
            ) from e
        except httpx.HTTPError as e:
            logger.error(f"WooCommerce request failed: {type(e).__name__}: {e}")
            raise UpstreamError(f"WooCommerce request failed: {e}") from e

        data = response.json()
        if not isinstance(data, list):
            raise UpstreamError("Invalid response from WooCommerce")
        return data

    def close(self) -> None:
        self._http.close()


def upstream_fields(wc_order: dict[str, Any]) -> dict[str, Any]:
    """Fields owned by the shop, as order document fields."""
    billing = wc_order.get("billing") or {}
    customer_name = " ".join(
        part for part in (billing.get("first_name"), billing.get("last_name")) if part
    )
    total = wc_order.get("total")
    return {
        "wcId": wc_order.get("id"),
        "orderId": str(wc_order.get("id", "")),
        "customerName": customer_name,
        "customerEmail": billing.get("email") or None,
        "totalAmount": None if total is None else str(total),
        "currency": wc_order.get("currency"),
        "wcStatus": wc_order.get("status"),
        "lineItems": [
            {
                "id": item.get("id") or 0,
                "name": item.get("name") or "",
                "quantity": item.get("quantity") or 1,
                "total": str(item.get("total") or "0"),
            }
            for item in wc_order.get("line_items") or []
            if isinstance(item, dict)
        ],
    }


class OrderSyncService:
    """Mirror recent upstream orders into the order store."""

    def __init__(self, source: WooCommerceClient, orders: OrderStore, page_size: int = 20):
        self._source = source
        self._orders = orders
        self._page_size = page_size

    def sync(self) -> int:
        """Returns the number of upstream orders processed."""
        wc_orders = self._source.list_orders(per_page=self._page_size)

        created = updated = skipped = 0
        for wc_order in wc_orders:
            wc_id = wc_order.get("id") if isinstance(wc_order, dict) else None
            if wc_id is None:
                logger.warning("Skipping upstream order without id")
                skipped += 1
                continue

            fields = upstream_fields(wc_order)
            titles = [item["name"] for item in fields["lineItems"] if item["name"]]
            try:
                candidate = OrderCreate.model_validate(
                    {
                        **fields,
                        "bookTitle": ", ".join(titles) or UNTITLED_API_ORDER,
                        "binding": "Soft",
                    }
                )
            except PydanticValidationError as e:
                logger.warning(
                    f"Skipping malformed upstream order {wc_id}: {e.error_count()} invalid fields"
                )
                skipped += 1
                continue

            existing = self._orders.find_by_external_id(wc_id)
            if existing is None:
                self._orders.create(candidate)
                created += 1
            else:
                self._orders.apply_upstream(existing.id, fields)
                updated += 1

        logger.info(
            f"Upstream sync complete: {created} created, {updated} updated, {skipped} skipped",
            extra={"count": created + updated},
        )
        return created + updated
