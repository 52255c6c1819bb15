"""Cache entry and report dataclasses.

This module defines the dataclasses passed between the storage tiers,
the cache manager and the admin tooling.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum

from gallerycache.shared.constants import CacheKind, TierName

__all__ = [
    "CacheEntry",
    "CacheEvent",
    "CacheStatistics",
    "EventOutcome",
    "FlushReport",
    "KindStatistics",
    "StoredEntryInfo",
    "SweepResult",
    "utc_now",
]

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    """Current timezone-aware UTC time; the default clock of every tier."""
    return datetime.now(timezone.utc)


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


@dataclass(frozen=True)
class CacheEntry:
    """One cached artifact as held by a storage tier.

    Entries are replaced whole, never partially updated.

    Attributes:
        key: Full cache key
        value: Opaque serialized payload
        created_at: When the entry was written
        expires_at: Absolute expiry; the entry is valid only while now < expires_at
        tier_origin: Tier the entry was read from

    Example:
        >>> entry = CacheEntry(
        ...     key="bbg4:sidebar:" + "a" * 64,
        ...     value=b"{}",
        ...     created_at=now,
        ...     expires_at=now + timedelta(hours=12),
        ...     tier_origin=TierName.DURABLE,
        ... )
    """

    key: str
    value: bytes
    created_at: datetime
    expires_at: datetime
    tier_origin: TierName = TierName.DURABLE

    def __post_init__(self) -> None:
        """Validate CacheEntry fields after initialization.

        Raises:
            ValueError: If the key is empty or expiry is not after creation
        """
        if not self.key or not self.key.strip():
            msg = "key must be non-empty"
            raise ValueError(msg)

        object.__setattr__(self, "created_at", _as_utc(self.created_at))
        object.__setattr__(self, "expires_at", _as_utc(self.expires_at))

        if self.expires_at <= self.created_at:
            msg = f"expires_at ({self.expires_at}) must be after created_at ({self.created_at})"
            raise ValueError(msg)

    def is_expired(self, now: datetime | None = None) -> bool:
        """Check whether the entry has expired.

        Args:
            now: Reference time (defaults to current UTC time)

        Returns:
            True once now >= expires_at
        """
        reference = _as_utc(now) if now is not None else datetime.now(timezone.utc)
        return reference >= self.expires_at

    @property
    def size(self) -> int:
        return len(self.value)


@dataclass(frozen=True)
class StoredEntryInfo:
    """Metadata of a durable row, used by the admin listing."""

    key: str
    size: int
    created_at: datetime
    expires_at: datetime
    hit_count: int = 0
    kind: CacheKind | None = None
    key_class: str = "current"

    def is_expired(self, now: datetime) -> bool:
        return _as_utc(now) >= _as_utc(self.expires_at)


@dataclass(frozen=True)
class SweepResult:
    """Outcome of a legacy cleanup sweep."""

    scanned: int = 0
    deleted: int = 0
    deleted_by_shape: dict[str, int] = field(default_factory=dict)


@dataclass(frozen=True)
class FlushReport:
    """Outcome of ``CacheManager.flush_all``."""

    flushed_by_kind: dict[CacheKind, int] = field(default_factory=dict)
    sweep: SweepResult = field(default_factory=SweepResult)

    @property
    def total_flushed(self) -> int:
        return sum(self.flushed_by_kind.values()) + self.sweep.deleted


@dataclass
class KindStatistics:
    """Per-kind durable tier usage."""

    count: int = 0
    size: int = 0
    expired: int = 0


@dataclass
class CacheStatistics:
    """Cache usage summary reported to the admin tooling."""

    total_items: int = 0
    total_size: int = 0
    expired_items: int = 0
    legacy_items: int = 0
    kinds: dict[str, KindStatistics] = field(default_factory=dict)
    hits: int = 0
    misses: int = 0
    volatile_available: bool = True
    durable_available: bool = True

    @property
    def hit_ratio(self) -> float:
        lookups = self.hits + self.misses
        return self.hits / lookups if lookups else 0.0


class EventOutcome(str, Enum):
    """Outcome reported with every cache event."""

    HIT = "hit"
    MISS = "miss"
    SUCCESS = "success"
    ERROR = "error"


@dataclass(frozen=True)
class CacheEvent:
    """Observable record of one cache operation.

    Attributes:
        operation: Operation name (get, set, invalidate, flush_kind, ...)
        kind: Cache kind involved, None for cross-kind operations
        key_hash: Short hash of the key, empty for bulk operations
        outcome: hit, miss, success or error
        detail: Optional free-form detail (strategy name, counts, error code)
    """

    operation: str
    kind: CacheKind | None
    key_hash: str
    outcome: EventOutcome
    detail: str | None = None
