"""Tests for the Dual-Tier Store."""

from __future__ import annotations

from datetime import timedelta

import pytest

from gallerycache.services.memory_cache import MemoryCache
from gallerycache.services.sqlite_cache import SQLiteCacheDB
from gallerycache.services.tiered_store import DualTierStore
from gallerycache.shared.constants import TierName
from gallerycache.shared.errors import DomainError, create_store_unavailable_error

KEY = "bbg4:sidebar:" + "d" * 64
OTHER = "bbg4:cases:" + "e" * 64


class TestWriteThrough:
    """Test writes reach both tiers with one expiry."""

    def test_set_writes_both_tiers(
        self,
        tiered_store: DualTierStore,
        durable_store: SQLiteCacheDB,
        volatile_store: MemoryCache,
        clock,
    ) -> None:
        # When
        stored = tiered_store.set(KEY, b"{}", ttl_seconds=3600)

        # Then
        assert stored is True
        durable_entry = durable_store.get_entry(KEY)
        volatile_entry = volatile_store.get(KEY)
        assert durable_entry is not None
        assert volatile_entry is not None
        assert durable_entry.expires_at == volatile_entry.expires_at == clock() + timedelta(hours=1)

    @pytest.mark.parametrize("ttl", [0, -5, 366 * 24 * 3600])
    def test_invalid_ttl_is_rejected(self, tiered_store: DualTierStore, ttl: int) -> None:
        with pytest.raises(DomainError):
            tiered_store.set(KEY, b"{}", ttl_seconds=ttl)

    def test_entry_expires_in_both_tiers(self, tiered_store: DualTierStore, clock) -> None:
        tiered_store.set(KEY, b"{}", ttl_seconds=60)

        clock.advance(60)

        assert tiered_store.get(KEY) is None


class TestReadFallback:
    """Test volatile-first reads with durable backfill."""

    def test_durable_hit_backfills_volatile(
        self,
        tiered_store: DualTierStore,
        volatile_store: MemoryCache,
        clock,
    ) -> None:
        # Given - the volatile tier lost its contents
        tiered_store.set(KEY, b"{}", ttl_seconds=3600)
        volatile_store.flush()

        # When
        entry = tiered_store.get_entry(KEY)

        # Then
        assert entry is not None
        assert entry.tier_origin is TierName.DURABLE
        backfilled = volatile_store.get(KEY)
        assert backfilled is not None
        assert backfilled.expires_at == entry.expires_at

    def test_backfill_does_not_extend_lifetime(
        self,
        tiered_store: DualTierStore,
        volatile_store: MemoryCache,
        clock,
    ) -> None:
        tiered_store.set(KEY, b"{}", ttl_seconds=100)
        volatile_store.flush()
        clock.advance(90)
        tiered_store.get(KEY)

        clock.advance(10)

        assert volatile_store.get(KEY) is None
        assert tiered_store.get(KEY) is None

    def test_volatile_hit_skips_durable(self, tiered_store: DualTierStore, mocker) -> None:
        tiered_store.set(KEY, b"{}", ttl_seconds=3600)
        durable_get = mocker.spy(tiered_store.durable, "get_entry")

        assert tiered_store.get(KEY) == b"{}"
        durable_get.assert_not_called()


class TestDegradedTiers:
    """Test that an unavailable tier is a miss, never an error."""

    def test_volatile_outage_degrades_to_durable(
        self,
        tiered_store: DualTierStore,
        volatile_store: MemoryCache,
    ) -> None:
        # Given
        volatile_store.enabled = False

        # When
        stored = tiered_store.set(KEY, b"{}", ttl_seconds=3600)

        # Then
        assert stored is True
        assert tiered_store.get(KEY) == b"{}"
        assert tiered_store.volatile_available is False
        assert tiered_store.durable_available is True

    def test_durable_outage_serves_volatile(
        self,
        tiered_store: DualTierStore,
        durable_store: SQLiteCacheDB,
    ) -> None:
        # Given
        durable_store.close()

        # When
        stored = tiered_store.set(KEY, b"{}", ttl_seconds=3600)

        # Then
        assert stored is True
        assert tiered_store.get(KEY) == b"{}"
        assert tiered_store.durable_available is False
        assert tiered_store.scan_durable_keys() == []
        assert tiered_store.purge_expired() == 0

    def test_both_tiers_down(
        self,
        tiered_store: DualTierStore,
        durable_store: SQLiteCacheDB,
        volatile_store: MemoryCache,
    ) -> None:
        durable_store.close()
        volatile_store.enabled = False

        assert tiered_store.set(KEY, b"{}", ttl_seconds=3600) is False
        assert tiered_store.get(KEY) is None
        assert tiered_store.delete(KEY) is False

    def test_write_during_volatile_outage_is_not_shadowed(
        self,
        tiered_store: DualTierStore,
        volatile_store: MemoryCache,
    ) -> None:
        # Given
        tiered_store.set(KEY, b'"old"', ttl_seconds=3600)
        volatile_store.enabled = False
        tiered_store.set(KEY, b'"new"', ttl_seconds=3600)

        # When
        volatile_store.enabled = True

        # Then
        assert tiered_store.get(KEY) == b'"new"'
        assert volatile_store.get(KEY).value == b'"new"'
        assert tiered_store.volatile_available is True

    def test_delete_during_volatile_outage_stays_deleted(
        self,
        tiered_store: DualTierStore,
        volatile_store: MemoryCache,
    ) -> None:
        # Given
        tiered_store.set(KEY, b'"old"', ttl_seconds=3600)
        volatile_store.enabled = False
        tiered_store.delete(KEY)

        # When
        volatile_store.enabled = True

        # Then
        assert tiered_store.get(KEY) is None
        assert volatile_store.get(KEY) is None

    def test_volatile_is_flushed_once_after_recovery(
        self,
        tiered_store: DualTierStore,
        volatile_store: MemoryCache,
    ) -> None:
        tiered_store.set(OTHER, b"[]", ttl_seconds=3600)
        volatile_store.enabled = False
        tiered_store.delete(KEY)
        volatile_store.enabled = True

        tiered_store.get(KEY)
        tiered_store.set(KEY, b"{}", ttl_seconds=3600)
        tiered_store.get(OTHER)

        assert volatile_store.get(KEY).value == b"{}"
        assert volatile_store.get(OTHER).value == b"[]"

    def test_volatile_recovery_is_noticed(
        self,
        tiered_store: DualTierStore,
        volatile_store: MemoryCache,
    ) -> None:
        volatile_store.enabled = False
        tiered_store.get(KEY)
        volatile_store.enabled = True

        tiered_store.get(KEY)

        assert tiered_store.volatile_available is True

    def test_durable_only_store(self, durable_store: SQLiteCacheDB, clock) -> None:
        store = DualTierStore(durable_store, None, clock=clock)

        store.set(KEY, b"{}", ttl_seconds=3600)

        assert store.get(KEY) == b"{}"
        assert store.volatile_available is False

    def test_unavailable_error_from_any_durable_call(self, clock, mocker) -> None:
        durable = mocker.Mock()
        durable.get_entry.side_effect = create_store_unavailable_error("durable", "get")
        store = DualTierStore(durable, MemoryCache(clock=clock), clock=clock)

        assert store.get(KEY) is None
        assert store.durable_available is False


class TestBulkOperations:
    """Test delete, prefix flush and clear."""

    def test_delete_removes_from_both(
        self,
        tiered_store: DualTierStore,
        volatile_store: MemoryCache,
        durable_store: SQLiteCacheDB,
    ) -> None:
        tiered_store.set(KEY, b"{}", ttl_seconds=3600)

        assert tiered_store.delete(KEY) is True
        assert volatile_store.get(KEY) is None
        assert durable_store.get(KEY) is None

    def test_flush_by_prefix(self, tiered_store: DualTierStore, volatile_store: MemoryCache) -> None:
        # Given
        tiered_store.set(KEY, b"{}", ttl_seconds=3600)
        tiered_store.set(OTHER, b"[]", ttl_seconds=3600)

        # When
        deleted = tiered_store.flush_by_prefix("bbg4:sidebar:")

        # Then
        assert deleted == 1
        assert tiered_store.get(KEY) is None
        assert volatile_store.get(KEY) is None
        assert tiered_store.get(OTHER) == b"[]"

    def test_flush_by_prefix_without_volatile_scan(self, durable_store: SQLiteCacheDB, clock, mocker) -> None:
        volatile = mocker.Mock(spec=["get", "set", "delete", "flush"])
        store = DualTierStore(durable_store, volatile, clock=clock)

        store.flush_by_prefix("bbg4:sidebar:")

        volatile.flush.assert_called_once_with()

    def test_clear(self, tiered_store: DualTierStore, volatile_store: MemoryCache) -> None:
        tiered_store.set(KEY, b"{}", ttl_seconds=3600)
        tiered_store.set(OTHER, b"[]", ttl_seconds=3600)

        assert tiered_store.clear() == 2
        assert len(volatile_store) == 0
