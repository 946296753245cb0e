"""Per-order relay pipeline.

dedupe claim -> artifact text -> publish artifact -> resolve items -> upsert

``mark_processed`` only runs after Printful confirmed the upsert or the
order was explicitly skipped; every other exit releases the claim so a
webhook retry from Shopify can still go through.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Protocol

from podrelay.catalog.resolver import resolve_items
from podrelay.catalog.sync import CatalogSync
from podrelay.errors import PodRelayError
from podrelay.orders.dedupe import DeliveryDedupeGuard
from podrelay.orders.directive import artifact_text
from podrelay.orders.models import Order, Skipped, SubmissionResult
from podrelay.orders.submission import OrderSubmissionController

logger = logging.getLogger(__name__)


class ArtifactPublisher(Protocol):
    """Renders ``text`` to an image, hosts it, and returns its public URL."""

    async def publish(self, text: str, order_id: str) -> str: ...


class ArtifactPublishError(PodRelayError):
    """The artifact could not be generated or hosted."""


class RelayStatus(str, Enum):
    DUPLICATE = "duplicate"
    NO_ARTIFACT_TEXT = "no_artifact_text"
    SKIPPED = "skipped"
    SUBMITTED = "submitted"


@dataclass(frozen=True)
class RelayOutcome:
    status: RelayStatus
    result: SubmissionResult | None = None


class OrderRelay:
    """Runs one order event through the pipeline."""

    def __init__(
        self,
        catalog: CatalogSync,
        controller: OrderSubmissionController,
        publisher: ArtifactPublisher,
        guard: DeliveryDedupeGuard | None = None,
        artifact_property: str = "qr text",
    ):
        self.catalog = catalog
        self.controller = controller
        self.publisher = publisher
        self.guard = guard if guard is not None else DeliveryDedupeGuard()
        self.artifact_property = artifact_property

    async def _publish(self, text: str, order_id: str) -> str:
        try:
            url = await self.publisher.publish(text, order_id)
        except Exception as e:
            raise ArtifactPublishError(f"artifact publish failed: {e}") from e
        if not url:
            raise ArtifactPublishError("artifact publisher returned no URL")
        return url

    async def handle(self, order: Order) -> RelayOutcome:
        if not self.guard.claim(order.id):
            return RelayOutcome(RelayStatus.DUPLICATE)

        marked = False
        try:
            text = artifact_text(order, self.artifact_property)
            if not text:
                logger.info("No artifact text on order %s, not submitting", order.id)
                return RelayOutcome(RelayStatus.NO_ARTIFACT_TEXT)

            artifact_url = await self._publish(text, order.id)
            logger.info("Artifact for order %s hosted at %s", order.id, artifact_url)

            # read the snapshot once so the whole order resolves against one version
            snapshot = self.catalog.snapshot
            items = resolve_items(order, snapshot, artifact_url)
            result = await self.controller.submit(order, items, artifact_url)

            self.guard.mark_processed(order.id)
            marked = True
            if isinstance(result, Skipped):
                return RelayOutcome(RelayStatus.SKIPPED, result)
            return RelayOutcome(RelayStatus.SUBMITTED, result)
        finally:
            if not marked:
                self.guard.release(order.id)
