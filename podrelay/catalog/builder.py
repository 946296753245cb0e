"""Build a CatalogSnapshot from the Printful sync catalog.

Two-level fetch: the listing endpoint returns product summaries without
variants, so every product's detail is fetched for its ``sync_variants``.
Paging stops at the first short page; Printful's ``paging.total`` is not
reliable enough to drive the loop.

Variant ids stored in the maps are Printful *sync variant* ids, which is
what ``sync_variant_id`` on an order item expects.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any

from podrelay.catalog.snapshot import CatalogSnapshot, coerce_variant_id
from podrelay.errors import ConfigError, UpstreamUnavailable
from podrelay.providers.printful import PrintfulClient

logger = logging.getLogger(__name__)

# Variant id source fields, in priority order
_ID_FIELDS = ("id", "sync_variant_id")


def variant_sync_id(variant: dict[str, Any]) -> int | None:
    """Numeric sync variant id from the first field that yields one."""
    for name in _ID_FIELDS:
        value = coerce_variant_id(variant.get(name))
        if value is not None:
            return value
    return None


class CatalogSnapshotBuilder:
    """Pages through the Printful catalog and produces a fresh snapshot."""

    def __init__(self, client: PrintfulClient, page_size: int = 100, concurrency: int = 5):
        if page_size < 1:
            raise ValueError("page_size must be >= 1")
        self.client = client
        self.page_size = page_size
        self.concurrency = max(1, concurrency)

    async def _list_products(self) -> list[dict[str, Any]]:
        products: list[dict[str, Any]] = []
        offset = 0
        while True:
            page = await self.client.list_sync_products(offset=offset, limit=self.page_size)
            for entry in page:
                if isinstance(entry, dict):
                    products.append(entry)
                else:
                    logger.warning("Skipping malformed product entry at offset %d: %r", offset, entry)
            if len(page) < self.page_size:
                return products
            offset += self.page_size

    async def _fetch_variants(
        self, product: dict[str, Any], semaphore: asyncio.Semaphore
    ) -> list[dict[str, Any]]:
        product_id = product.get("id")
        async with semaphore:
            try:
                return await self.client.get_sync_variants(product_id)
            except UpstreamUnavailable as e:
                logger.warning("Skipping product detail %s (failed): %s", product_id, e)
                return []

    async def build(self) -> CatalogSnapshot:
        """Fetch the whole catalog and return a new snapshot.

        Raises:
            ConfigError: the Printful token is not set.
            UpstreamUnavailable: the product listing could not be read.
        """
        if not self.client.token:
            raise ConfigError("PRINTFUL_TOKEN")

        logger.info("Fetching Printful sync catalog (page size %d)", self.page_size)
        products = await self._list_products()

        semaphore = asyncio.Semaphore(self.concurrency)
        # gather preserves input order, so the merge below is deterministic
        variant_lists = await asyncio.gather(
            *(self._fetch_variants(p, semaphore) for p in products)
        )

        by_sku: dict[str, int] = {}
        by_external_id: dict[str, int] = {}
        skipped = 0
        for variants in variant_lists:
            for variant in variants:
                if not isinstance(variant, dict):
                    continue
                sync_id = variant_sync_id(variant)
                if sync_id is None:
                    skipped += 1
                    logger.warning(
                        "Skipping variant missing numeric sync id: sku=%r variant_id=%r external_id=%r",
                        variant.get("sku"),
                        variant.get("variant_id"),
                        variant.get("external_id"),
                    )
                    continue

                sku = variant.get("sku")
                if isinstance(sku, str) and sku:
                    by_sku[sku] = sync_id

                external_id = variant.get("external_id")
                if external_id is not None and external_id != "":
                    by_external_id[str(external_id)] = sync_id

        snapshot = CatalogSnapshot(by_sku=by_sku, by_external_id=by_external_id)
        logger.info(
            "Catalog pass complete: %d products, %d sku keys, %d external keys, %d variants skipped",
            len(products),
            snapshot.sku_count,
            snapshot.external_count,
            skipped,
        )
        return snapshot
