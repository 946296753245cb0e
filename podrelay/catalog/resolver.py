"""Line item -> Printful sync variant resolution.

Policy, in order:
1. non-empty SKU found in ``by_sku``
2. Shopify variant id (as str) found in ``by_external_id``
3. unresolved (None)

Both tables come from the same catalog pass so they should agree; SKU is
checked first because it is the merchant-assigned key. Exact matches only.
"""

from __future__ import annotations

import logging

from podrelay.catalog.snapshot import CatalogSnapshot
from podrelay.orders.models import LineItem, Order, ResolvedItem

logger = logging.getLogger(__name__)


def resolve(item: LineItem, snapshot: CatalogSnapshot) -> int | None:
    """Return the sync variant id for ``item`` or None."""
    if item.sku:
        mapped = snapshot.by_sku.get(item.sku)
        if mapped is not None:
            return mapped
    if item.external_variant_id is not None:
        return snapshot.by_external_id.get(str(item.external_variant_id))
    return None


def resolve_items(order: Order, snapshot: CatalogSnapshot, artifact_url: str) -> list[ResolvedItem]:
    """Resolve every line item of ``order``; unresolvable items are dropped."""
    resolved: list[ResolvedItem] = []
    for item in order.line_items:
        variant_id = resolve(item, snapshot)
        logger.debug(
            "Variant lookup order=%s sku=%r variant_id=%r -> %s",
            order.id,
            item.sku or "-",
            item.external_variant_id,
            variant_id,
        )
        if variant_id is None:
            logger.warning(
                "No Printful mapping for item (order=%s, sku=%r, variant_id=%r), dropping it",
                order.id,
                item.sku,
                item.external_variant_id,
            )
            continue
        resolved.append(
            ResolvedItem(
                fulfillment_variant_id=variant_id,
                quantity=item.quantity,
                artifact_url=artifact_url,
            )
        )
    return resolved
