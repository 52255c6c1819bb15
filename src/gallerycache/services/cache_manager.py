"""Cache Manager facade.

``CacheManager`` is the entry point used by page renders and the admin
tooling. It turns a cache kind plus selection parameters into a key,
consults the Dual-Tier Store, populates on a miss through a caller-supplied
producer, and reports every operation as a ``CacheEvent``.

Payloads are serialized with orjson. A stored payload that fails to decode
is deleted and reported as a miss.
"""

from __future__ import annotations

import dataclasses
from collections.abc import Callable, Iterable, Mapping
from typing import Any, TypeVar

import orjson

from gallerycache.core.statistics import StatisticsCollector
from gallerycache.services.cache_events import EventDispatcher
from gallerycache.services.cache_models import (
    CacheEvent,
    CacheStatistics,
    Clock,
    EventOutcome,
    FlushReport,
    KindStatistics,
    StoredEntryInfo,
    SweepResult,
    utc_now,
)
from gallerycache.services.legacy_sweep import LegacyCleanupSweep
from gallerycache.services.tiered_store import DualTierStore
from gallerycache.shared.cache_utils import KeyBuilder, KeyClass, short_key_hash
from gallerycache.shared.constants import CacheKind, CacheTTL, CacheValidationConstants
from gallerycache.shared.errors import (
    DomainError,
    ErrorCode,
    ErrorContext,
    GalleryCacheError,
    MalformedEntryError,
    UpstreamFetchError,
    create_upstream_error,
    create_validation_error,
)

T = TypeVar("T")

DEFAULT_KIND_TTLS: dict[CacheKind, int] = {
    CacheKind.SIDEBAR: CacheTTL.SIDEBAR,
    CacheKind.CASE_LIST: CacheTTL.CASE_LIST,
    CacheKind.SINGLE_CASE: CacheTTL.SINGLE_CASE,
    CacheKind.CAROUSEL: CacheTTL.CAROUSEL,
    CacheKind.FILTERS: CacheTTL.FILTERS,
    CacheKind.FAVORITES: CacheTTL.FAVORITES,
}


def encode_payload(value: Any) -> bytes:
    """Serialize a cacheable value.

    Raises:
        DomainError: If the value is not JSON-serializable
    """
    try:
        return orjson.dumps(value)
    except orjson.JSONEncodeError as e:
        raise DomainError(
            ErrorCode.CACHE_SERIALIZATION_ERROR,
            f"Value is not serializable: {e!s}",
            ErrorContext(operation="encode_payload"),
            original_error=e,
        ) from e


def decode_payload(payload: bytes, key: str | None = None) -> Any:
    """Deserialize a stored payload.

    Raises:
        MalformedEntryError: If the payload is not valid JSON
    """
    try:
        return orjson.loads(payload)
    except orjson.JSONDecodeError as e:
        raise MalformedEntryError(
            ErrorCode.CACHE_CORRUPTED,
            f"Stored payload is not valid JSON: {e!s}",
            ErrorContext(operation="decode_payload", key=key),
            original_error=e,
        ) from e


class CacheManager:
    """Fetch-or-populate cache facade over a Dual-Tier Store.

    Args:
        store: Dual-Tier Store holding the entries
        key_builder: Key Builder for the current namespace version
        kind_ttls: Default TTL in seconds per kind (missing kinds use
            ``CacheTTL.DEFAULT``)
        enabled: When False every lookup misses and nothing is stored
        debug: When True every kind uses ``debug_ttl``
        debug_ttl: TTL in seconds used while ``debug`` is on
        dispatcher: Receiver of cache events
        statistics_collector: Source of hit/miss counters for ``statistics``
        sweep: Legacy Cleanup Sweep run by ``flush_all``
        clock: Callable returning the current UTC time

    Example:
        >>> manager = CacheManager(store, KeyBuilder())
        >>> cases = manager.get_or_populate(
        ...     CacheKind.CASE_LIST,
        ...     {"procedure_ids": [3405]},
        ...     lambda: client.fetch(CacheKind.CASE_LIST, {"procedure_ids": [3405]}),
        ... )
    """

    def __init__(
        self,
        store: DualTierStore,
        key_builder: KeyBuilder | None = None,
        *,
        kind_ttls: Mapping[CacheKind, int] | None = None,
        enabled: bool = True,
        debug: bool = False,
        debug_ttl: int = CacheTTL.DEBUG,
        dispatcher: EventDispatcher | None = None,
        statistics_collector: StatisticsCollector | None = None,
        sweep: LegacyCleanupSweep | None = None,
        clock: Clock = utc_now,
    ) -> None:
        self.store = store
        self.key_builder = key_builder or KeyBuilder()
        self.kind_ttls = dict(DEFAULT_KIND_TTLS)
        if kind_ttls:
            self.kind_ttls.update({CacheKind(kind): ttl for kind, ttl in kind_ttls.items()})
        for kind, ttl in [*self.kind_ttls.items(), ("debug", debug_ttl)]:
            if not CacheValidationConstants.MIN_TTL <= ttl <= CacheValidationConstants.MAX_TTL:
                msg = f"TTL for {kind} is out of range: {ttl}"
                raise create_validation_error(msg, field="ttl", operation="cache_manager_init")
        self.enabled = enabled
        self.debug = debug
        self.debug_ttl = debug_ttl
        self.events = dispatcher or EventDispatcher()
        self.statistics_collector = statistics_collector
        self.sweeper = sweep or LegacyCleanupSweep(store, self.key_builder)
        self._clock = clock

    # Keys and TTLs

    def key_for(self, kind: CacheKind, params: Mapping[str, Any] | None = None) -> str:
        return self.key_builder.build_key(kind, params)

    def ttl_for(self, kind: CacheKind) -> int:
        """Effective TTL in seconds for ``kind``."""
        if self.debug:
            return self.debug_ttl
        return self.kind_ttls.get(CacheKind(kind), CacheTTL.DEFAULT)

    # Events

    def _emit(
        self,
        operation: str,
        kind: CacheKind | None,
        key: str | None,
        outcome: EventOutcome,
        detail: str | None = None,
    ) -> None:
        self.events.emit(
            CacheEvent(
                operation=operation,
                kind=kind,
                key_hash=short_key_hash(key) if key else "",
                outcome=outcome,
                detail=detail,
            ),
        )

    # Lookups

    def _read_key(self, key: str, kind: CacheKind | None, operation: str = "get") -> Any | None:
        payload = self.store.get(key)
        if payload is None:
            self._emit(operation, kind, key, EventOutcome.MISS)
            return None

        try:
            value = decode_payload(payload, key)
        except MalformedEntryError as e:
            self.store.delete(key)
            self._emit(operation, kind, key, EventOutcome.ERROR, e.code.value)
            self._emit(operation, kind, key, EventOutcome.MISS)
            return None

        if value is None:
            self._emit(operation, kind, key, EventOutcome.MISS)
            return None
        self._emit(operation, kind, key, EventOutcome.HIT)
        return value

    def get(self, kind: CacheKind, params: Mapping[str, Any] | None = None) -> Any | None:
        """Cache-only lookup; never calls upstream.

        Returns:
            Cached value, or None on a miss
        """
        if not self.enabled:
            return None
        kind = CacheKind(kind)
        return self._read_key(self.key_for(kind, params), kind)

    def get_by_key(self, key: str) -> Any | None:
        """Cache-only lookup of a raw key of any shape."""
        if not self.enabled:
            return None
        return self._read_key(key, self.key_builder.kind_from_key(key))

    def get_or_populate(
        self,
        kind: CacheKind,
        params: Mapping[str, Any] | None,
        producer: Callable[[], T],
    ) -> T:
        """Return the cached value, populating it on a miss.

        ``producer`` is called at most once. Its result is written through
        both tiers with the kind's TTL unless it is None.

        Args:
            kind: Logical cache kind
            params: Selection parameters
            producer: Upstream fetch, invoked on a miss

        Returns:
            Cached or freshly produced value

        Raises:
            UpstreamFetchError: If ``producer`` fails; nothing is cached
        """
        kind = CacheKind(kind)
        key = self.key_for(kind, params)

        if self.enabled:
            cached = self._read_key(key, kind)
            if cached is not None:
                return cached  # type: ignore[no-any-return]

        value = self._produce(kind, key, producer)

        if value is not None and self.enabled:
            try:
                self._store(kind, key, value)
            except DomainError as e:
                if e.code is not ErrorCode.CACHE_SERIALIZATION_ERROR:
                    raise
        return value

    def _produce(self, kind: CacheKind, key: str, producer: Callable[[], T]) -> T:
        try:
            return producer()
        except UpstreamFetchError as e:
            self._emit("populate", kind, key, EventOutcome.ERROR, e.code.value)
            raise
        except Exception as e:
            # Any other failure, library errors included, is a failed fetch
            detail = e.code.value if isinstance(e, GalleryCacheError) else type(e).__name__
            self._emit("populate", kind, key, EventOutcome.ERROR, detail)
            raise create_upstream_error(
                f"Upstream fetch for {kind.value} failed: {e!s}",
                operation="get_or_populate",
                original_error=e,
                additional_data={"kind": kind, "key_hash": short_key_hash(key)},
            ) from e

    # Writes

    def _store(self, kind: CacheKind | None, key: str, value: Any, ttl: int | None = None) -> bool:
        try:
            payload = encode_payload(value)
        except DomainError as e:
            self._emit("set", kind, key, EventOutcome.ERROR, e.code.value)
            raise
        ttl_seconds = ttl if ttl is not None else self.ttl_for(kind or CacheKind.SINGLE_CASE)
        stored = self.store.set(key, payload, ttl_seconds)
        self._emit(
            "set",
            kind,
            key,
            EventOutcome.SUCCESS if stored else EventOutcome.ERROR,
            None if stored else ErrorCode.STORE_UNAVAILABLE.value,
        )
        return stored

    def set(
        self,
        kind: CacheKind,
        params: Mapping[str, Any] | None,
        value: Any,
        ttl: int | None = None,
    ) -> bool:
        """Write ``value`` through both tiers.

        None values are never cached.

        Returns:
            True if at least one tier stored the value

        Raises:
            DomainError: If the value is not serializable or the TTL is invalid
        """
        if not self.enabled or value is None:
            return False
        kind = CacheKind(kind)
        return self._store(kind, self.key_for(kind, params), value, ttl)

    def invalidate(self, kind: CacheKind, params: Mapping[str, Any] | None = None) -> bool:
        """Delete the entry for ``kind`` + ``params`` from both tiers."""
        kind = CacheKind(kind)
        key = self.key_for(kind, params)
        removed = self.store.delete(key)
        self._emit("invalidate", kind, key, EventOutcome.SUCCESS, "deleted" if removed else "absent")
        return removed

    def delete_key(self, key: str) -> bool:
        """Delete a raw key of any shape from both tiers."""
        removed = self.store.delete(key)
        self._emit(
            "delete",
            self.key_builder.kind_from_key(key),
            key,
            EventOutcome.SUCCESS,
            "deleted" if removed else "absent",
        )
        return removed

    def delete_keys(self, keys: Iterable[str]) -> int:
        """Delete a selection of raw keys.

        Returns:
            Number of keys that existed in either tier
        """
        return sum(1 for key in keys if self.delete_key(key))

    # Bulk operations

    def flush_kind(self, kind: CacheKind) -> int:
        """Delete every entry of ``kind``.

        Returns:
            Number of durable rows removed
        """
        kind = CacheKind(kind)
        count = self.store.flush_by_prefix(self.key_builder.kind_prefix(kind))
        self._emit("flush_kind", kind, None, EventOutcome.SUCCESS, str(count))
        return count

    def sweep_legacy(self) -> SweepResult:
        """Run the Legacy Cleanup Sweep."""
        result = self.sweeper.sweep()
        self._emit(
            "sweep",
            None,
            None,
            EventOutcome.SUCCESS,
            f"scanned={result.scanned} deleted={result.deleted}",
        )
        return result

    def flush_all(self) -> FlushReport:
        """Flush every kind, then sweep legacy and malformed keys."""
        flushed = {kind: self.flush_kind(kind) for kind in CacheKind}
        report = FlushReport(flushed_by_kind=flushed, sweep=self.sweep_legacy())
        self._emit("flush_all", None, None, EventOutcome.SUCCESS, str(report.total_flushed))
        return report

    def purge_expired(self) -> int:
        count = self.store.purge_expired()
        self._emit("purge_expired", None, None, EventOutcome.SUCCESS, str(count))
        return count

    def factory_reset(self) -> int:
        """Delete every durable row and flush the volatile tier.

        Returns:
            Number of durable rows removed
        """
        count = self.store.clear()
        self._emit("factory_reset", None, None, EventOutcome.SUCCESS, str(count))
        return count

    # Admin inspection

    def _annotate(self, info: StoredEntryInfo) -> StoredEntryInfo:
        return dataclasses.replace(
            info,
            kind=self.key_builder.kind_from_key(info.key),
            key_class=self.key_builder.classify_key(info.key).value,
        )

    def list_entries(self, kind: CacheKind | None = None) -> list[StoredEntryInfo]:
        """Metadata of durable rows, optionally restricted to one kind.

        Without ``kind`` every row is listed, including legacy and foreign
        keys.
        """
        prefix = self.key_builder.kind_prefix(kind) if kind is not None else ""
        return [self._annotate(info) for info in self.store.describe_entries(prefix)]

    def read_entry(self, key: str) -> Any | None:
        """Decoded payload of one key of any shape, for inspection.

        Payloads written by older releases may not be JSON; they are
        returned as text.
        """
        payload = self.store.get(key)
        if payload is None:
            return None
        try:
            return decode_payload(payload, key)
        except MalformedEntryError:
            return payload.decode("utf-8", errors="replace")

    def statistics(self) -> CacheStatistics:
        """Usage summary of the durable tier plus hit/miss counters."""
        now = self._clock()
        stats = CacheStatistics(
            kinds={kind.value: KindStatistics() for kind in CacheKind},
        )
        for info in self.list_entries():
            expired = info.is_expired(now)
            stats.total_items += 1
            stats.total_size += info.size
            stats.expired_items += int(expired)
            if info.key_class in (KeyClass.LEGACY.value, KeyClass.MALFORMED.value):
                stats.legacy_items += 1
            if info.kind is not None:
                kind_stats = stats.kinds[info.kind.value]
                kind_stats.count += 1
                kind_stats.size += info.size
                kind_stats.expired += int(expired)

        if self.statistics_collector is not None:
            stats.hits = self.statistics_collector.metrics.cache_hits
            stats.misses = self.statistics_collector.metrics.cache_misses
        stats.volatile_available = self.store.volatile_available
        stats.durable_available = self.store.durable_available
        return stats
