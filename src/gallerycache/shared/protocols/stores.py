"""Storage tier protocols.

The Dual-Tier Store talks to its two backends only through these
protocols. Tier implementations raise ``StoreUnavailableError`` when their
backend cannot be reached; they never return partial results.
"""

from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from gallerycache.services.cache_models import CacheEntry, StoredEntryInfo


class VolatileStoreProtocol(Protocol):
    """Fast, reconstructable tier that may be cleared at any time."""

    def get(self, key: str) -> CacheEntry | None:
        """Return the live entry for ``key``, or None on miss or expiry."""

    def set(self, key: str, payload: bytes, expires_at: datetime) -> None:
        """Store ``payload`` until the absolute ``expires_at``."""

    def delete(self, key: str) -> bool:
        """Remove ``key``; missing keys are not an error."""

    def flush(self) -> None:
        """Drop every entry held by the tier."""


@runtime_checkable
class PrefixScanningStore(Protocol):
    """Optional capability of a volatile tier: enumerate keys by prefix."""

    def scan_by_prefix(self, prefix: str) -> list[str]:
        """Return every stored key starting with ``prefix``."""


class DurableStoreProtocol(Protocol):
    """Persistent tier with explicit row-level expiry.

    Example:
        >>> store: DurableStoreProtocol = SQLiteCacheDB(Path("cache.db"))
        >>> store.set("bbg4:sidebar:...", b"{}", expires_at)
        >>> store.get("bbg4:sidebar:...")
        b'{}'
    """

    def get_entry(self, key: str) -> CacheEntry | None:
        """Return the live entry for ``key`` including its expiry."""

    def get(self, key: str) -> bytes | None:
        """Return the live payload for ``key``."""

    def set(
        self,
        key: str,
        payload: bytes,
        expires_at: datetime,
        created_at: datetime | None = None,
    ) -> None:
        """Atomically replace the row for ``key``."""

    def delete(self, key: str) -> bool:
        """Remove ``key``; missing keys are not an error."""

    def scan_by_prefix(self, prefix: str) -> list[str]:
        """Return every stored key (live or expired) starting with ``prefix``."""

    def describe_entries(self, prefix: str = "") -> list[StoredEntryInfo]:
        """Return row metadata for every key starting with ``prefix``."""

    def purge_expired(self) -> int:
        """Physically delete expired rows and return how many were removed."""

    def clear(self) -> int:
        """Delete every row and return how many were removed."""
