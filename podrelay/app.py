"""FastAPI application factory.

Startup order: load the persisted snapshot, start serving, then refresh the
catalog in the background so a slow Printful never delays the first webhook.
"""

from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager

import httpx
from fastapi import FastAPI

from podrelay.catalog.builder import CatalogSnapshotBuilder
from podrelay.catalog.store import SnapshotStore
from podrelay.catalog.sync import CatalogSync
from podrelay.config import Settings, get_settings
from podrelay.orders.dedupe import DeliveryDedupeGuard
from podrelay.orders.relay import ArtifactPublisher, OrderRelay
from podrelay.orders.submission import OrderSubmissionController
from podrelay.providers.printful import PrintfulClient
from podrelay.webhooks.handlers import register_routes

logger = logging.getLogger(__name__)


def build_catalog(settings: Settings, client: PrintfulClient) -> CatalogSync:
    builder = CatalogSnapshotBuilder(
        client,
        page_size=settings.catalog_page_size,
        concurrency=settings.catalog_detail_concurrency,
    )
    return CatalogSync(builder, SnapshotStore(settings.sku_map_file))


def create_app(
    publisher: ArtifactPublisher,
    settings: Settings | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
) -> FastAPI:
    """Wire the relay together.

    Args:
        publisher: Artifact collaborator (text -> hosted image URL).
        settings: Defaults to ``get_settings()``.
        transport: Optional httpx transport for the Printful client (tests).
    """
    settings = settings or get_settings()
    client = PrintfulClient.from_settings(settings, transport=transport)
    catalog = build_catalog(settings, client)
    controller = OrderSubmissionController(client, placement=settings.artifact_placement)
    relay = OrderRelay(
        catalog,
        controller,
        publisher,
        guard=DeliveryDedupeGuard(),
        artifact_property=settings.artifact_text_property,
    )

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        catalog.load()
        sync_task = None
        if settings.sync_on_startup:
            sync_task = asyncio.create_task(catalog.refresh_in_background())
        try:
            yield
        finally:
            if sync_task is not None and not sync_task.done():
                sync_task.cancel()
            catalog.cancel_refresh()
            await client.aclose()

    app = FastAPI(title="podrelay", lifespan=lifespan)
    app.state.settings = settings
    app.state.client = client
    app.state.catalog = catalog
    app.state.relay = relay
    register_routes(app)
    return app
