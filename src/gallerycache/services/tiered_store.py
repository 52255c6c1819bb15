"""Dual-Tier Store.

Write-through, read-with-fallback orchestration over a volatile tier and a
durable tier:

- reads try the volatile tier first, then the durable tier, and backfill
  the volatile tier on a durable hit;
- writes go to the durable tier before the volatile tier, both with the
  same absolute expiry;
- a tier raising ``StoreUnavailableError`` is treated as a miss (reads) or
  skipped (writes), so callers never see a tier outage.
"""

from __future__ import annotations

import logging
from datetime import timedelta

from gallerycache.services.cache_models import CacheEntry, Clock, StoredEntryInfo, utc_now
from gallerycache.shared.cache_utils import short_key_hash
from gallerycache.shared.constants import CacheValidationConstants, TierName
from gallerycache.shared.errors import (
    DomainError,
    ErrorCode,
    ErrorContext,
    StoreUnavailableError,
)
from gallerycache.shared.protocols import (
    DurableStoreProtocol,
    VolatileStoreProtocol,
)
from gallerycache.shared.protocols.stores import PrefixScanningStore

logger = logging.getLogger(__name__)


class DualTierStore:
    """Volatile + durable key-value store with write-through semantics.

    Args:
        durable: Source-of-truth tier with explicit row expiry
        volatile: Fast tier that may be flushed at any time; None runs
            durable-only
        clock: Callable returning the current UTC time

    Example:
        >>> store = DualTierStore(SQLiteCacheDB(path), MemoryCache())
        >>> store.set(key, b"[]", ttl_seconds=3600)
        >>> store.get(key)
        b'[]'
    """

    def __init__(
        self,
        durable: DurableStoreProtocol,
        volatile: VolatileStoreProtocol | None = None,
        clock: Clock = utc_now,
    ) -> None:
        self.durable = durable
        self.volatile = volatile
        self._clock = clock
        self.volatile_available = volatile is not None
        self.durable_available = True
        # Set when a volatile write or delete was lost; cleared by a full flush
        self._volatile_stale = False

    def _degraded(self, error: StoreUnavailableError) -> None:
        if error.tier == TierName.VOLATILE.value:
            self.volatile_available = False
        else:
            self.durable_available = False
        logger.debug("Tier degraded to miss: %s", error.message)

    def _volatile_ok(self) -> None:
        self.volatile_available = self.volatile is not None

    def _volatile_missed_write(self, error: StoreUnavailableError) -> None:
        self._degraded(error)
        self._volatile_stale = True

    def _volatile_ready(self) -> bool:
        """Flush the volatile tier once after it missed writes or deletes.

        Returns:
            False if the volatile tier is absent or still unreachable
        """
        if self.volatile is None:
            return False
        if not self._volatile_stale:
            return True
        try:
            self.volatile.flush()
        except StoreUnavailableError as e:
            self._degraded(e)
            return False
        self._volatile_stale = False
        self._volatile_ok()
        logger.info("Volatile tier reachable again; flushed entries written before the outage")
        return True

    def get_entry(self, key: str) -> CacheEntry | None:
        """Return the live entry for ``key`` from the fastest tier holding it."""
        if self._volatile_ready():
            try:
                entry = self.volatile.get(key)  # type: ignore[union-attr]
                self._volatile_ok()
            except StoreUnavailableError as e:
                self._degraded(e)
                entry = None
            if entry is not None:
                return entry

        try:
            entry = self.durable.get_entry(key)
            self.durable_available = True
        except StoreUnavailableError as e:
            self._degraded(e)
            return None
        if entry is None:
            return None

        self._backfill(entry)
        return entry

    def _backfill(self, entry: CacheEntry) -> None:
        """Copy a durable hit into the volatile tier, ignoring failures."""
        if not self._volatile_ready():
            return
        try:
            self.volatile.set(entry.key, entry.value, entry.expires_at)  # type: ignore[union-attr]
        except StoreUnavailableError as e:
            self._degraded(e)
            return
        logger.debug("Backfilled volatile tier for key hash %s...", short_key_hash(entry.key))

    def get(self, key: str) -> bytes | None:
        entry = self.get_entry(key)
        return entry.value if entry is not None else None

    def set(self, key: str, payload: bytes, ttl_seconds: int) -> bool:
        """Write ``payload`` through both tiers with one absolute expiry.

        Args:
            key: Cache key
            payload: Serialized payload
            ttl_seconds: Time-to-live in seconds

        Returns:
            True if at least one tier stored the payload

        Raises:
            DomainError: If ``ttl_seconds`` is out of range
        """
        if not (
            CacheValidationConstants.MIN_TTL <= ttl_seconds <= CacheValidationConstants.MAX_TTL
        ):
            raise DomainError(
                ErrorCode.INVALID_TTL,
                f"TTL must be between {CacheValidationConstants.MIN_TTL} and "
                f"{CacheValidationConstants.MAX_TTL} seconds, got {ttl_seconds}",
                ErrorContext(operation="set", additional_data={"ttl_seconds": ttl_seconds}),
            )

        created_at = self._clock()
        expires_at = created_at + timedelta(seconds=ttl_seconds)
        stored = False

        try:
            self.durable.set(key, payload, expires_at, created_at)
            self.durable_available = True
            stored = True
        except StoreUnavailableError as e:
            self._degraded(e)

        if self.volatile is not None:
            try:
                if self._volatile_ready():
                    self.volatile.set(key, payload, expires_at)
                    self._volatile_ok()
                    stored = True
            except StoreUnavailableError as e:
                self._volatile_missed_write(e)

        return stored

    def delete(self, key: str) -> bool:
        """Delete ``key`` from both tiers.

        Returns:
            True if either tier held the key
        """
        removed = False
        try:
            removed = self.durable.delete(key)
        except StoreUnavailableError as e:
            self._degraded(e)

        if self.volatile is not None:
            try:
                if self._volatile_ready():
                    removed = self.volatile.delete(key) or removed
            except StoreUnavailableError as e:
                self._volatile_missed_write(e)
        return removed

    def flush_by_prefix(self, prefix: str) -> int:
        """Delete every key starting with ``prefix`` from both tiers.

        The durable tier is scanned and deleted key by key. The volatile tier
        is scanned the same way when it supports prefix scans and flushed
        wholesale otherwise.

        Returns:
            Number of durable rows deleted
        """
        deleted = 0
        try:
            for key in self.durable.scan_by_prefix(prefix):
                if self.durable.delete(key):
                    deleted += 1
        except StoreUnavailableError as e:
            self._degraded(e)

        if self.volatile is not None:
            try:
                if isinstance(self.volatile, PrefixScanningStore):
                    for key in self.volatile.scan_by_prefix(prefix):
                        self.volatile.delete(key)
                else:
                    self.volatile.flush()
            except StoreUnavailableError as e:
                self._volatile_missed_write(e)

        return deleted

    def scan_durable_keys(self, prefix: str = "") -> list[str]:
        """Keys held by the durable tier; empty while it is unavailable."""
        try:
            return self.durable.scan_by_prefix(prefix)
        except StoreUnavailableError as e:
            self._degraded(e)
            return []

    def describe_entries(self, prefix: str = "") -> list[StoredEntryInfo]:
        try:
            return self.durable.describe_entries(prefix)
        except StoreUnavailableError as e:
            self._degraded(e)
            return []

    def purge_expired(self) -> int:
        try:
            return self.durable.purge_expired()
        except StoreUnavailableError as e:
            self._degraded(e)
            return 0

    def flush_volatile(self) -> None:
        if self.volatile is None:
            return
        try:
            self.volatile.flush()
        except StoreUnavailableError as e:
            self._volatile_missed_write(e)
            return
        self._volatile_stale = False
        self._volatile_ok()

    def clear(self) -> int:
        """Delete everything from both tiers.

        Returns:
            Number of durable rows deleted
        """
        cleared = 0
        try:
            cleared = self.durable.clear()
        except StoreUnavailableError as e:
            self._degraded(e)
        self.flush_volatile()
        return cleared
