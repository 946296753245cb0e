"""Owner of the active catalog snapshot.

Resolution reads ``CatalogSync.snapshot``; a refresh builds a complete new
snapshot off to the side and only then swaps the reference. Refreshes are
single-flight: a caller arriving while a build is running awaits that
build's outcome instead of starting a second one.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass

from podrelay.catalog.builder import CatalogSnapshotBuilder
from podrelay.catalog.snapshot import CatalogSnapshot
from podrelay.catalog.store import SnapshotStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RefreshOutcome:
    """Result of one catalog refresh."""

    snapshot: CatalogSnapshot
    changed: bool
    persisted: bool


class CatalogSync:
    """Holds the active snapshot and coordinates rebuilds."""

    def __init__(self, builder: CatalogSnapshotBuilder, store: SnapshotStore):
        self.builder = builder
        self.store = store
        self._snapshot = CatalogSnapshot.empty()
        self._inflight: asyncio.Task[RefreshOutcome] | None = None
        self.refresh_count = 0

    @property
    def snapshot(self) -> CatalogSnapshot:
        return self._snapshot

    def load(self) -> CatalogSnapshot:
        """Activate the persisted snapshot (startup path)."""
        self._snapshot = self.store.load()
        return self._snapshot

    @property
    def refreshing(self) -> bool:
        return self._inflight is not None and not self._inflight.done()

    def cancel_refresh(self) -> None:
        if self.refreshing:
            self._inflight.cancel()

    async def refresh(self) -> RefreshOutcome:
        """Rebuild from upstream, swap if changed, persist if changed.

        Propagates ConfigError / UpstreamUnavailable from the builder; the
        active snapshot is left untouched in that case.
        """
        if self._inflight is None or self._inflight.done():
            self._inflight = asyncio.ensure_future(self._run_refresh())
        else:
            logger.info("Catalog refresh already in flight, joining it")
        # shield: one caller being cancelled must not cancel the shared build
        return await asyncio.shield(self._inflight)

    def _persist(self, snapshot: CatalogSnapshot) -> bool:
        try:
            return self.store.save(snapshot)
        except OSError:
            logger.exception("Failed to save snapshot to %s", self.store.path)
            return False

    async def _run_refresh(self) -> RefreshOutcome:
        self.refresh_count += 1
        fresh = await self.builder.build()

        if fresh == self._snapshot:
            logger.info("SKU maps unchanged, no swap")
            persisted = self._persist(fresh)
            return RefreshOutcome(snapshot=self._snapshot, changed=False, persisted=persisted)

        self._snapshot = fresh
        persisted = self._persist(fresh)
        sample = fresh.sample()
        if sample:
            logger.info(
                "Sample SKU -> sync_variant_id: %s",
                ", ".join(f"{sku}={sid}" for sku, sid in sample),
            )
        else:
            logger.warning("SKU map empty after sync")
        return RefreshOutcome(snapshot=fresh, changed=True, persisted=persisted)

    async def refresh_in_background(self) -> None:
        """Startup task: refresh and log failures instead of raising."""
        try:
            outcome = await self.refresh()
        except Exception:
            logger.exception("Catalog refresh failed (continuing with loaded map)")
            return
        logger.info(
            "SKU maps ready (sku keys: %d, external keys: %d, changed=%s)",
            outcome.snapshot.sku_count,
            outcome.snapshot.external_count,
            outcome.changed,
        )
