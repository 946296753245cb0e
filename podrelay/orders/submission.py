"""Printful order submission.

Orders are written with ``PUT /orders/@{external_id}`` where the external id
is the Shopify order id. Printful treats that as create-or-replace, so a
replayed webhook updates the same fulfillment order instead of creating a
second one.
"""

from __future__ import annotations

import logging
from typing import Any, Sequence

from podrelay.orders.models import (
    Order,
    ResolvedItem,
    Skipped,
    SkipReason,
    Submitted,
    SubmissionResult,
)
from podrelay.providers.printful import PrintfulClient

logger = logging.getLogger(__name__)


def _first(*values: Any) -> str:
    for value in values:
        if value:
            return str(value)
    return ""


def build_recipient(order: Order) -> dict[str, str]:
    """Printful recipient block; missing fields become empty strings."""
    ship = order.shipping_address or {}
    customer = order.customer or {}
    first_name = _first(ship.get("first_name"), customer.get("first_name"))
    last_name = _first(ship.get("last_name"), customer.get("last_name"))
    return {
        "name": f"{first_name} {last_name}".strip(),
        "address1": _first(ship.get("address1")),
        "address2": _first(ship.get("address2")),
        "city": _first(ship.get("city")),
        "state_code": _first(ship.get("province_code")),
        "country_code": _first(ship.get("country_code"), ship.get("country")),
        "zip": _first(ship.get("zip")),
        "email": _first(order.email, customer.get("email")),
    }


class OrderSubmissionController:
    """Builds the Printful order document and upserts it."""

    def __init__(self, client: PrintfulClient, placement: str = "back"):
        self.client = client
        self.placement = placement

    def build_payload(
        self, order: Order, resolved_items: Sequence[ResolvedItem], artifact_url: str
    ) -> dict[str, Any]:
        items = [
            {
                "sync_variant_id": int(item.fulfillment_variant_id),
                "quantity": item.quantity,
                "files": [{"type": self.placement, "url": item.artifact_url or artifact_url}],
            }
            for item in resolved_items
        ]
        return {
            "external_id": str(order.id),
            "recipient": build_recipient(order),
            "items": items,
        }

    async def submit(
        self, order: Order, resolved_items: Sequence[ResolvedItem], artifact_url: str
    ) -> SubmissionResult:
        """Upsert ``order`` at Printful.

        Returns Skipped(no_mapped_items) without any provider call when
        nothing resolved. Raises SubmissionError if Printful rejects the write.
        """
        if not resolved_items:
            logger.warning("No mapped items in order %s, skipping Printful call", order.id)
            return Skipped(reason=SkipReason.NO_MAPPED_ITEMS)

        payload = self.build_payload(order, resolved_items, artifact_url)
        logger.info(
            "Upserting Printful order external_id=%s items=%d",
            payload["external_id"],
            len(payload["items"]),
        )
        result = await self.client.upsert_order(payload["external_id"], payload)
        provider_order_id = result.get("id")
        logger.info(
            "Printful accepted order external_id=%s printful_id=%s status=%s",
            payload["external_id"],
            provider_order_id,
            result.get("status"),
        )
        return Submitted(provider_order_id=provider_order_id, response=result)
