"""Legacy Cleanup Sweep.

Deletes entries written under superseded key shapes (earlier namespace
versions and the pre-namespace plugin keys) plus keys that claim the
current namespace but have a malformed shape. Running the sweep twice with
no new legacy writes in between deletes nothing the second time.
"""

from __future__ import annotations

import logging
from collections import Counter

from gallerycache.services.cache_models import SweepResult
from gallerycache.services.tiered_store import DualTierStore
from gallerycache.shared.cache_utils import KeyBuilder, KeyClass

logger = logging.getLogger(__name__)

MALFORMED_SHAPE = "malformed"


class LegacyCleanupSweep:
    """Scan durable keys and delete legacy or malformed ones from both tiers.

    Args:
        store: Dual-Tier Store to sweep
        key_builder: Key Builder that knows the current and legacy shapes
    """

    def __init__(self, store: DualTierStore, key_builder: KeyBuilder) -> None:
        self.store = store
        self.key_builder = key_builder

    def find_stale_keys(self) -> dict[str, str]:
        """Map each legacy or malformed durable key to its shape name."""
        return self._classify_stale(self.store.scan_durable_keys())

    def _classify_stale(self, keys: list[str]) -> dict[str, str]:
        stale: dict[str, str] = {}
        for key in keys:
            key_class = self.key_builder.classify_key(key)
            if key_class is KeyClass.LEGACY:
                stale[key] = self.key_builder.legacy_shape(key) or KeyClass.LEGACY.value
            elif key_class is KeyClass.MALFORMED:
                stale[key] = MALFORMED_SHAPE
        return stale

    def sweep(self) -> SweepResult:
        """Delete every legacy or malformed key.

        Returns:
            SweepResult with the number of scanned and deleted keys
        """
        keys = self.store.scan_durable_keys()
        by_shape: Counter[str] = Counter()
        for key, shape in self._classify_stale(keys).items():
            if self.store.delete(key):
                by_shape[shape] += 1

        result = SweepResult(
            scanned=len(keys),
            deleted=sum(by_shape.values()),
            deleted_by_shape=dict(by_shape),
        )
        if result.deleted:
            logger.info(
                "Legacy sweep deleted %d of %d keys: %s",
                result.deleted,
                result.scanned,
                result.deleted_by_shape,
            )
        return result
