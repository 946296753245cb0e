"""Durable storage for the last known catalog snapshot.

The file is a JSON document with two tables, ``skuMap`` and ``externalMap``.
Older deployments wrote a flat ``{sku: id}`` table; that still loads.

Writes are skipped when the canonical form already matches the file
byte-for-byte, so an unchanged catalog never touches the disk (file
watchers such as a dev reloader would otherwise restart the process).
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
from pathlib import Path

from podrelay.catalog.snapshot import CatalogSnapshot

logger = logging.getLogger(__name__)


class SnapshotStore:
    """Load/save a CatalogSnapshot at a fixed path."""

    def __init__(self, path: str | Path):
        self.path = Path(path)

    def load(self) -> CatalogSnapshot:
        """Return the persisted snapshot, or an empty one.

        Never raises for a missing, unreadable or corrupt file.
        """
        if not self.path.exists():
            logger.info("No snapshot at %s, starting with empty maps", self.path)
            return CatalogSnapshot.empty()

        try:
            raw = self.path.read_text(encoding="utf-8")
            doc = json.loads(raw)
        except (OSError, UnicodeDecodeError, json.JSONDecodeError) as e:
            logger.warning("Could not load snapshot %s: %s", self.path, e)
            return CatalogSnapshot.empty()

        if not isinstance(doc, dict):
            logger.warning("Snapshot %s is not a JSON object, ignoring", self.path)
            return CatalogSnapshot.empty()

        snapshot = CatalogSnapshot.from_document(doc)
        logger.info(
            "Loaded snapshot %s (sku keys: %d, external keys: %d)",
            self.path,
            snapshot.sku_count,
            snapshot.external_count,
        )
        return snapshot

    def _read_current(self) -> str | None:
        try:
            return self.path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        except (OSError, UnicodeDecodeError):
            logger.warning("Existing snapshot %s unreadable, will overwrite", self.path)
            return None

    def save(self, snapshot: CatalogSnapshot) -> bool:
        """Persist ``snapshot`` if it differs from the file. Returns True on write."""
        new_json = snapshot.to_json()
        if self._read_current() == new_json:
            logger.debug("Snapshot unchanged, no write to %s", self.path)
            return False

        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(
            prefix=f".{self.path.name}.", suffix=".tmp", dir=self.path.parent
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                fh.write(new_json)
            os.replace(tmp_name, self.path)
        except OSError:
            Path(tmp_name).unlink(missing_ok=True)
            raise

        logger.info(
            "Saved snapshot %s (sku keys: %d, external keys: %d)",
            self.path,
            snapshot.sku_count,
            snapshot.external_count,
        )
        return True
