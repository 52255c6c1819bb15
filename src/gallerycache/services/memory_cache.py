"""In-process volatile cache tier.

The volatile tier is a thread-safe dictionary of ``CacheEntry`` objects with
absolute expiry. It holds no data that is not also in the durable tier, so
it may be flushed at any time; entries are dropped lazily on read once
expired and there is no capacity-based eviction.
"""

from __future__ import annotations

import logging
import threading
from datetime import datetime

from gallerycache.services.cache_models import CacheEntry, Clock, utc_now
from gallerycache.shared.constants import TierName
from gallerycache.shared.errors import create_store_unavailable_error

logger = logging.getLogger(__name__)


class MemoryCache:
    """Volatile tier backed by a process-local dictionary.

    The host may disable the tier (``enabled = False``), in which case every
    call raises ``StoreUnavailableError`` and the Dual-Tier Store degrades to
    durable-only operation.

    Args:
        clock: Callable returning the current UTC time
        enabled: Whether the tier starts reachable

    Example:
        >>> cache = MemoryCache()
        >>> cache.set("bbg4:sidebar:...", b"{}", expires_at)
        >>> cache.get("bbg4:sidebar:...").value
        b'{}'
    """

    def __init__(self, clock: Clock = utc_now, *, enabled: bool = True) -> None:
        self._clock = clock
        self._entries: dict[str, CacheEntry] = {}
        self._lock = threading.RLock()
        self.enabled = enabled

    def _ensure_available(self, operation: str, key: str | None = None) -> None:
        if not self.enabled:
            raise create_store_unavailable_error(
                TierName.VOLATILE.value,
                operation,
                key=key,
            )

    def get(self, key: str) -> CacheEntry | None:
        """Return the live entry for ``key``.

        Raises:
            StoreUnavailableError: If the tier is disabled
        """
        self._ensure_available("get", key)
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            if entry.is_expired(self._clock()):
                del self._entries[key]
                return None
            return entry

    def set(self, key: str, payload: bytes, expires_at: datetime) -> None:
        """Store ``payload`` until ``expires_at``.

        An expiry that is already in the past removes any existing entry
        instead of storing a dead one.

        Raises:
            StoreUnavailableError: If the tier is disabled
        """
        self._ensure_available("set", key)
        now = self._clock()
        with self._lock:
            if expires_at <= now:
                self._entries.pop(key, None)
                return
            self._entries[key] = CacheEntry(
                key=key,
                value=payload,
                created_at=now,
                expires_at=expires_at,
                tier_origin=TierName.VOLATILE,
            )

    def delete(self, key: str) -> bool:
        self._ensure_available("delete", key)
        with self._lock:
            return self._entries.pop(key, None) is not None

    def scan_by_prefix(self, prefix: str) -> list[str]:
        """Return every held key starting with ``prefix``."""
        self._ensure_available("scan_by_prefix")
        with self._lock:
            return [key for key in self._entries if key.startswith(prefix)]

    def flush(self) -> None:
        self._ensure_available("flush")
        with self._lock:
            count = len(self._entries)
            self._entries.clear()
        logger.debug("Flushed %d volatile cache entries", count)

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
