"""Order data models.

``Order`` and ``LineItem`` are parsed from the Shopify ``orders/create``
payload and live for one request only. ``ResolvedItem`` and the submission
results are what the Printful side of the relay works with.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Union


def _quantity(raw: Any) -> int:
    try:
        value = int(raw)
    except (TypeError, ValueError):
        return 1
    return value if value > 0 else 1


def _section(raw: Any) -> dict[str, Any]:
    return raw if isinstance(raw, dict) else {}


@dataclass(frozen=True)
class LineItem:
    """One Shopify line item, reduced to the fields the relay reads."""

    sku: str = ""
    external_variant_id: str | int | None = None  # Shopify variant_id
    quantity: int = 1
    title: str = ""
    properties: Any = field(default_factory=list)  # [{name, value}, ...]

    @classmethod
    def from_payload(cls, payload: dict[str, Any]) -> LineItem:
        sku = payload.get("sku")
        return cls(
            sku=str(sku) if sku is not None else "",
            external_variant_id=payload.get("variant_id"),
            quantity=_quantity(payload.get("quantity", 1)),
            title=str(payload.get("title") or ""),
            properties=payload.get("properties") or [],
        )


@dataclass(frozen=True)
class Order:
    """A Shopify order as seen by the relay."""

    id: str
    line_items: tuple[LineItem, ...] = ()
    email: str = ""
    shipping_address: dict[str, Any] = field(default_factory=dict)
    customer: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_payload(cls, payload: dict[str, Any]) -> Order:
        """Parse a webhook body. Raises ValueError when there is no order id."""
        order_id = payload.get("id")
        if order_id is None or order_id == "":
            raise ValueError("order payload has no id")
        raw_items = payload.get("line_items") or []
        return cls(
            id=str(order_id),
            line_items=tuple(
                LineItem.from_payload(li) for li in raw_items if isinstance(li, dict)
            ),
            email=str(payload.get("email") or ""),
            shipping_address=_section(payload.get("shipping_address")),
            customer=_section(payload.get("customer")),
        )


@dataclass(frozen=True)
class ResolvedItem:
    """A line item that maps to a Printful sync variant."""

    fulfillment_variant_id: int
    quantity: int
    artifact_url: str


class SkipReason(str, Enum):
    NO_MAPPED_ITEMS = "no_mapped_items"


@dataclass(frozen=True)
class Submitted:
    """Printful accepted the upsert."""

    provider_order_id: Any
    response: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class Skipped:
    """The order was intentionally not sent to Printful."""

    reason: SkipReason


SubmissionResult = Union[Submitted, Skipped]
