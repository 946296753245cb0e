"""Catalog snapshot value type.

A snapshot is the pair of lookup tables built from one catalog pass:

- ``by_sku``: Printful SKU -> sync_variant_id
- ``by_external_id``: Shopify variant id (as str) -> sync_variant_id

Snapshots are immutable. A rebuild produces a new one and the owner swaps
the reference; nothing ever mutates a snapshot in use.
"""

from __future__ import annotations

import json
from collections.abc import Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any

SKU_MAP_KEY = "skuMap"
EXTERNAL_MAP_KEY = "externalMap"


def _frozen(mapping: Mapping[str, int] | None) -> Mapping[str, int]:
    return MappingProxyType(dict(mapping or {}))


def coerce_variant_id(raw: Any) -> int | None:
    """Return ``raw`` as a positive int, or None if it is not one."""
    if raw is None or isinstance(raw, bool):
        return None
    if isinstance(raw, float):
        if not raw.is_integer():
            return None
        raw = int(raw)
    try:
        value = int(str(raw).strip())
    except (TypeError, ValueError):
        return None
    return value if value > 0 else None


@dataclass(frozen=True)
class CatalogSnapshot:
    """Immutable pair of variant lookup tables."""

    by_sku: Mapping[str, int] = field(default_factory=dict)
    by_external_id: Mapping[str, int] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "by_sku", _frozen(self.by_sku))
        object.__setattr__(self, "by_external_id", _frozen(self.by_external_id))

    @classmethod
    def empty(cls) -> CatalogSnapshot:
        return cls()

    @property
    def sku_count(self) -> int:
        return len(self.by_sku)

    @property
    def external_count(self) -> int:
        return len(self.by_external_id)

    @property
    def is_empty(self) -> bool:
        return not self.by_sku and not self.by_external_id

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, CatalogSnapshot):
            return NotImplemented
        return dict(self.by_sku) == dict(other.by_sku) and dict(
            self.by_external_id
        ) == dict(other.by_external_id)

    def __hash__(self) -> int:
        return hash(self.to_json())

    def to_document(self) -> dict[str, dict[str, int]]:
        """Persisted shape: ``{"skuMap": {...}, "externalMap": {...}}``."""
        return {
            SKU_MAP_KEY: dict(self.by_sku),
            EXTERNAL_MAP_KEY: dict(self.by_external_id),
        }

    def to_json(self) -> str:
        """Canonical serialized form (stable key order)."""
        return json.dumps(self.to_document(), indent=2, sort_keys=True)

    @classmethod
    def from_document(cls, doc: Any) -> CatalogSnapshot:
        """Build a snapshot from a persisted document.

        Accepts the current two-table shape and the legacy flat
        ``{sku: id}`` shape (which becomes ``by_sku`` only). Entries whose
        value is not a positive integer are dropped.
        """
        if not isinstance(doc, dict):
            return cls.empty()

        sku_raw = doc.get(SKU_MAP_KEY)
        external_raw = doc.get(EXTERNAL_MAP_KEY)
        if isinstance(sku_raw, dict) and isinstance(external_raw, dict):
            return cls(by_sku=_clean(sku_raw), by_external_id=_clean(external_raw))

        # Legacy: the whole document is the SKU table
        return cls(by_sku=_clean(doc), by_external_id={})

    def sample(self, limit: int = 8) -> list[tuple[str, int]]:
        """First ``limit`` SKU entries, for logs and the CLI."""
        return list(self.by_sku.items())[:limit]


def _clean(table: dict) -> dict[str, int]:
    cleaned: dict[str, int] = {}
    for key, raw in table.items():
        value = coerce_variant_id(raw)
        if value is not None and key != "":
            cleaned[str(key)] = value
    return cleaned
