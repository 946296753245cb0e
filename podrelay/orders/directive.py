"""Artifact text lookup on line item properties.

Shopify carries customer input as ``properties: [{"name", "value"}, ...]``
on a line item. The first non-empty value whose name matches the configured
property (case-insensitive) is the text to render onto the product.
"""

from __future__ import annotations

from typing import Any, Iterator

from podrelay.orders.models import Order

DEFAULT_PROPERTY = "qr text"


def _pairs(properties: Any) -> Iterator[tuple[str, Any]]:
    if isinstance(properties, dict):
        yield from properties.items()
        return
    for prop in properties or []:
        if isinstance(prop, dict):
            yield str(prop.get("name") or ""), prop.get("value")


def artifact_text(order: Order, property_name: str = DEFAULT_PROPERTY) -> str | None:
    wanted = property_name.strip().lower()
    for item in order.line_items:
        for name, value in _pairs(item.properties):
            if name.strip().lower() == wanted and value:
                return str(value)
    return None
