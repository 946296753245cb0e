"""In-process dedupe for order webhook deliveries.

Contract:
- Tracks order ids that were successfully submitted (or explicitly skipped)
- Entries expire after a TTL (24h by default); expired ids are pruned as new
  ones are marked, so memory stays bounded by the delivery rate
- Process-local and not persisted; a restart clears it
- Only saves redundant work (artifact publish, Printful call). The upsert
  keyed by external id is what keeps Printful free of duplicates.
- ``claim`` reserves an id while a delivery is in progress so a concurrent
  redelivery of the same order is short-circuited too
"""

from __future__ import annotations

import logging
import time
from typing import Any, Callable

logger = logging.getLogger(__name__)

_DEDUP_TTL_SECONDS = 86400  # 24 hours


class DeliveryDedupeGuard:
    """TTL-backed guard keyed by order id."""

    def __init__(
        self,
        ttl_seconds: float = _DEDUP_TTL_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        # order id -> expiry; insertion order is expiry order
        self._processed: dict[str, float] = {}
        self._in_flight: set[str] = set()

    def _prune(self) -> None:
        now = self._clock()
        while self._processed:
            key, expires_at = next(iter(self._processed.items()))
            if expires_at > now:
                break
            del self._processed[key]

    def _is_processed(self, key: str) -> bool:
        expires_at = self._processed.get(key)
        return expires_at is not None and expires_at > self._clock()

    def should_process(self, order_id: Any) -> bool:
        """True unless ``order_id`` was processed within the TTL."""
        return not self._is_processed(str(order_id))

    def mark_processed(self, order_id: Any) -> None:
        key = str(order_id)
        self._prune()
        self._processed.pop(key, None)
        self._processed[key] = self._clock() + self.ttl_seconds
        self._in_flight.discard(key)

    def claim(self, order_id: Any) -> bool:
        """Reserve ``order_id`` for processing.

        Returns False if it is already processed or another delivery holds
        it. No await happens between the check and the reservation.
        """
        key = str(order_id)
        if self._is_processed(key):
            logger.info("Duplicate webhook ignored for order %s", key)
            return False
        if key in self._in_flight:
            logger.info("Order %s already in flight, ignoring concurrent delivery", key)
            return False
        self._in_flight.add(key)
        return True

    def release(self, order_id: Any) -> None:
        """Drop a claim that did not end in ``mark_processed``."""
        self._in_flight.discard(str(order_id))

    def __len__(self) -> int:
        self._prune()
        return len(self._processed)
