"""
PrintDesk - Service Container

Capabilities (document store, S3 client, order source) are constructed once
in create_app() and injected into the components that need them. Routes
reach them through the FastAPI dependencies below, never through imports.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional

from fastapi import Request

from .config import Settings
from .core.errors import ConfigurationError
from .core.security import AccessGuard
from .db import DocumentStore, create_document_store
from .services.artifacts import ArtifactGateway
from .services.order_sync import OrderSyncService, WooCommerceClient
from .services.orders import OrderStore
from .services.stats import StatsAggregator
from .services.vendors import VendorDirectory


@dataclass
class Services:
    settings: Settings
    documents: DocumentStore
    orders: OrderStore
    stats: StatsAggregator
    vendors: VendorDirectory
    artifacts: ArtifactGateway
    access_guard: AccessGuard
    order_source: Optional[WooCommerceClient] = field(default=None)

    @classmethod
    def build(
        cls,
        settings: Settings,
        *,
        documents: Optional[DocumentStore] = None,
        artifacts: Optional[ArtifactGateway] = None,
        order_source: Optional[WooCommerceClient] = None,
    ) -> "Services":
        """Wire every component from settings; explicit arguments win."""
        documents = documents if documents is not None else create_document_store(settings)
        orders = OrderStore(documents, unknown_stage_policy=settings.UNKNOWN_STAGE_POLICY)

        if order_source is None and settings.order_source_configured:
            order_source = WooCommerceClient.from_settings(settings)

        return cls(
            settings=settings,
            documents=documents,
            orders=orders,
            stats=StatsAggregator(orders),
            vendors=VendorDirectory(documents),
            artifacts=artifacts if artifacts is not None else ArtifactGateway.from_settings(settings),
            access_guard=AccessGuard.from_settings(settings, documents),
            order_source=order_source,
        )

    def order_sync(self) -> OrderSyncService:
        if self.order_source is None:
            raise ConfigurationError(
                "WooCommerce is not configured. Set WOOCOMMERCE_SITE_URL, "
                "WOOCOMMERCE_CONSUMER_KEY and WOOCOMMERCE_CONSUMER_SECRET."
            )
        return OrderSyncService(
            self.order_source,
            self.orders,
            page_size=self.settings.WOOCOMMERCE_SYNC_PAGE_SIZE,
        )

    def close(self) -> None:
        if self.order_source is not None:
            self.order_source.close()


def get_services(request: Request) -> Services:
    return request.app.state.services


def get_artifacts(request: Request) -> ArtifactGateway:
    return get_services(request).artifacts
