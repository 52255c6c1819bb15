"""Tests for the Cache Manager facade."""

from __future__ import annotations

from datetime import timedelta

import orjson
import pytest

from gallerycache.services import CacheManager, DualTierStore, MemoryCache, SQLiteCacheDB
from gallerycache.shared.cache_utils import KeyBuilder
from gallerycache.shared.constants import CacheKind
from gallerycache.shared.errors import (
    DomainError,
    ErrorCode,
    ErrorContext,
    UpstreamFetchError,
)

LISTING_PARAMS = {"procedure_ids": [3405]}
LISTING = {"data": [{"id": 101}, {"id": 102}]}


class TestGetOrPopulate:
    """Test fetch-or-populate semantics."""

    def test_miss_populates_then_hits(self, cache_manager: CacheManager, mocker) -> None:
        # Given
        producer = mocker.Mock(return_value=LISTING)

        # When
        first = cache_manager.get_or_populate(CacheKind.CASE_LIST, LISTING_PARAMS, producer)
        second = cache_manager.get_or_populate(CacheKind.CASE_LIST, LISTING_PARAMS, producer)

        # Then
        assert first == second == LISTING
        producer.assert_called_once_with()

    def test_reordered_params_share_entry(self, cache_manager: CacheManager, mocker) -> None:
        producer = mocker.Mock(return_value=LISTING)

        cache_manager.get_or_populate(CacheKind.CASE_LIST, {"procedure_ids": [3405], "page": 1}, producer)
        cache_manager.get_or_populate(CacheKind.CASE_LIST, {"page": 1, "procedure_ids": [3405]}, producer)

        producer.assert_called_once_with()

    def test_none_is_never_cached(self, cache_manager: CacheManager, mocker) -> None:
        producer = mocker.Mock(return_value=None)

        assert cache_manager.get_or_populate(CacheKind.SIDEBAR, None, producer) is None
        assert cache_manager.get_or_populate(CacheKind.SIDEBAR, None, producer) is None

        assert producer.call_count == 2
        assert cache_manager.list_entries() == []

    def test_producer_failure_is_wrapped_and_not_cached(
        self,
        cache_manager: CacheManager,
        recorder,
    ) -> None:
        # Given
        def failing() -> dict:
            raise ConnectionError("upstream timeout")

        # When
        with pytest.raises(UpstreamFetchError) as exc_info:
            cache_manager.get_or_populate(CacheKind.CASE_LIST, LISTING_PARAMS, failing)

        # Then
        assert isinstance(exc_info.value.__cause__, ConnectionError)
        assert cache_manager.get(CacheKind.CASE_LIST, LISTING_PARAMS) is None
        assert "error" in recorder.outcomes("populate")

    def test_upstream_errors_propagate_unchanged(self, cache_manager: CacheManager) -> None:
        error = UpstreamFetchError(ErrorCode.UPSTREAM_INVALID_RESPONSE, "bad payload", ErrorContext())

        def failing() -> dict:
            raise error

        with pytest.raises(UpstreamFetchError) as exc_info:
            cache_manager.get_or_populate(CacheKind.SINGLE_CASE, {"case_id": "1"}, failing)

        assert exc_info.value is error

    def test_other_library_errors_are_wrapped(self, cache_manager: CacheManager, recorder) -> None:
        # Given
        error = DomainError(ErrorCode.VALIDATION_ERROR, "client rejected params", ErrorContext())

        def failing() -> dict:
            raise error

        # When
        with pytest.raises(UpstreamFetchError) as exc_info:
            cache_manager.get_or_populate(CacheKind.SINGLE_CASE, {"case_id": "1"}, failing)

        # Then
        assert exc_info.value.code is ErrorCode.UPSTREAM_FETCH_FAILED
        assert exc_info.value.original_error is error
        assert exc_info.value.__cause__ is error
        assert recorder.events[-1].detail == "VALIDATION_ERROR"

    def test_unserializable_value_is_returned_uncached(self, cache_manager: CacheManager) -> None:
        value = {"when": object()}

        result = cache_manager.get_or_populate(CacheKind.FILTERS, None, lambda: value)

        assert result is value
        assert cache_manager.get(CacheKind.FILTERS) is None

    def test_disabled_cache_always_calls_producer(
        self,
        tiered_store: DualTierStore,
        mocker,
    ) -> None:
        manager = CacheManager(tiered_store, enabled=False)
        producer = mocker.Mock(return_value=LISTING)

        manager.get_or_populate(CacheKind.CASE_LIST, LISTING_PARAMS, producer)
        manager.get_or_populate(CacheKind.CASE_LIST, LISTING_PARAMS, producer)

        assert producer.call_count == 2
        assert tiered_store.scan_durable_keys() == []

    def test_entry_expires_after_kind_ttl(self, cache_manager: CacheManager, clock, mocker) -> None:
        producer = mocker.Mock(return_value=LISTING)
        cache_manager.get_or_populate(CacheKind.CASE_LIST, LISTING_PARAMS, producer)

        clock.advance(3600)
        cache_manager.get_or_populate(CacheKind.CASE_LIST, LISTING_PARAMS, producer)

        assert producer.call_count == 2


class TestTTLs:
    """Test per-kind and debug TTL selection."""

    def test_sidebar_lives_twelve_hours(self, cache_manager: CacheManager) -> None:
        assert cache_manager.ttl_for(CacheKind.SIDEBAR) == 12 * 3600
        assert cache_manager.ttl_for(CacheKind.CASE_LIST) == 3600

    def test_debug_mode_uses_short_ttl(self, tiered_store: DualTierStore) -> None:
        manager = CacheManager(tiered_store, debug=True, debug_ttl=60)

        assert manager.ttl_for(CacheKind.SIDEBAR) == 60

    def test_override_ttls(self, tiered_store: DualTierStore) -> None:
        manager = CacheManager(tiered_store, kind_ttls={CacheKind.FAVORITES: 120})

        assert manager.ttl_for(CacheKind.FAVORITES) == 120

    def test_invalid_ttl_rejected(self, tiered_store: DualTierStore) -> None:
        with pytest.raises(DomainError):
            CacheManager(tiered_store, kind_ttls={CacheKind.SIDEBAR: 0})

    def test_explicit_ttl_on_set(self, cache_manager: CacheManager, clock) -> None:
        cache_manager.set(CacheKind.CAROUSEL, {"member_id": "7"}, [1, 2], ttl=30)

        [info] = cache_manager.list_entries(CacheKind.CAROUSEL)
        assert info.expires_at == clock() + timedelta(seconds=30)


class TestMalformedEntries:
    """Test that undecodable payloads become misses."""

    def test_malformed_payload_is_deleted_and_missed(
        self,
        cache_manager: CacheManager,
        tiered_store: DualTierStore,
        recorder,
    ) -> None:
        # Given
        key = cache_manager.key_for(CacheKind.CASE_LIST, LISTING_PARAMS)
        tiered_store.set(key, b"\x00not json", ttl_seconds=3600)

        # When
        value = cache_manager.get(CacheKind.CASE_LIST, LISTING_PARAMS)

        # Then
        assert value is None
        assert tiered_store.scan_durable_keys() == []
        assert recorder.outcomes("get")[-2:] == ["error", "miss"]

    def test_stored_null_is_a_miss(self, cache_manager: CacheManager, tiered_store: DualTierStore) -> None:
        key = cache_manager.key_for(CacheKind.SIDEBAR)
        tiered_store.set(key, b"null", ttl_seconds=3600)

        assert cache_manager.get(CacheKind.SIDEBAR) is None


class TestWritesAndInvalidation:
    """Test set, invalidate and raw key deletion."""

    def test_set_none_is_refused(self, cache_manager: CacheManager) -> None:
        assert cache_manager.set(CacheKind.SIDEBAR, None, None) is False

    def test_set_unserializable_raises(self, cache_manager: CacheManager) -> None:
        with pytest.raises(DomainError) as exc_info:
            cache_manager.set(CacheKind.SIDEBAR, None, {"bad": object()})

        assert exc_info.value.code is ErrorCode.CACHE_SERIALIZATION_ERROR

    def test_invalidate(self, cache_manager: CacheManager) -> None:
        cache_manager.set(CacheKind.CASE_LIST, LISTING_PARAMS, LISTING)

        assert cache_manager.invalidate(CacheKind.CASE_LIST, LISTING_PARAMS) is True
        assert cache_manager.invalidate(CacheKind.CASE_LIST, LISTING_PARAMS) is False
        assert cache_manager.get(CacheKind.CASE_LIST, LISTING_PARAMS) is None

    def test_delete_keys_counts_existing(self, cache_manager: CacheManager) -> None:
        cache_manager.set(CacheKind.SIDEBAR, None, {"procedures": []})
        key = cache_manager.key_for(CacheKind.SIDEBAR)

        assert cache_manager.delete_keys([key, "bbg4:sidebar:missing"]) == 1

    def test_get_by_key(self, cache_manager: CacheManager) -> None:
        cache_manager.set(CacheKind.FILTERS, {"page": 1}, {"age": [1, 2]})

        key = cache_manager.key_for(CacheKind.FILTERS, {"page": 1})

        assert cache_manager.get_by_key(key) == {"age": [1, 2]}


class TestBulkOperations:
    """Test per-kind flush, full flush and reset."""

    def test_flush_kind_leaves_other_kinds(self, cache_manager: CacheManager) -> None:
        # Given
        cache_manager.set(CacheKind.CASE_LIST, LISTING_PARAMS, LISTING)
        cache_manager.set(CacheKind.CASE_LIST, {"procedure_ids": [12]}, LISTING)
        cache_manager.set(CacheKind.SIDEBAR, None, {"procedures": []})

        # When
        flushed = cache_manager.flush_kind(CacheKind.CASE_LIST)

        # Then
        assert flushed == 2
        assert cache_manager.get(CacheKind.CASE_LIST, LISTING_PARAMS) is None
        assert cache_manager.get(CacheKind.SIDEBAR) == {"procedures": []}

    def test_flush_all_sweeps_legacy(
        self,
        cache_manager: CacheManager,
        tiered_store: DualTierStore,
    ) -> None:
        # Given
        cache_manager.set(CacheKind.SIDEBAR, None, {"procedures": []})
        tiered_store.set("brag_book_gallery_sidebar", b"{}", ttl_seconds=3600)
        tiered_store.set("unrelated_option", b"{}", ttl_seconds=3600)

        # When
        report = cache_manager.flush_all()

        # Then
        assert report.flushed_by_kind[CacheKind.SIDEBAR] == 1
        assert report.sweep.deleted == 1
        assert report.total_flushed == 2
        assert tiered_store.scan_durable_keys() == ["unrelated_option"]

    def test_factory_reset_clears_everything(
        self,
        cache_manager: CacheManager,
        tiered_store: DualTierStore,
        volatile_store: MemoryCache,
    ) -> None:
        cache_manager.set(CacheKind.SIDEBAR, None, {"procedures": []})
        tiered_store.set("unrelated_option", b"{}", ttl_seconds=3600)

        assert cache_manager.factory_reset() == 2
        assert len(volatile_store) == 0

    def test_purge_expired(self, cache_manager: CacheManager, clock) -> None:
        cache_manager.set(CacheKind.CASE_LIST, LISTING_PARAMS, LISTING)
        cache_manager.set(CacheKind.SIDEBAR, None, {"procedures": []})
        clock.advance(2 * 3600)

        assert cache_manager.purge_expired() == 1


class TestInspection:
    """Test admin listing, reading and statistics."""

    def test_list_entries_annotates_kind_and_class(
        self,
        cache_manager: CacheManager,
        tiered_store: DualTierStore,
    ) -> None:
        cache_manager.set(CacheKind.CASE_LIST, LISTING_PARAMS, LISTING)
        tiered_store.set("brag_book_gallery_sidebar", b"<html>", ttl_seconds=3600)

        entries = {info.key: info for info in cache_manager.list_entries()}

        current_key = cache_manager.key_for(CacheKind.CASE_LIST, LISTING_PARAMS)
        assert entries[current_key].kind is CacheKind.CASE_LIST
        assert entries[current_key].key_class == "current"
        assert entries[current_key].size == len(orjson.dumps(LISTING))
        assert entries["brag_book_gallery_sidebar"].key_class == "legacy"

    def test_list_entries_for_one_kind(self, cache_manager: CacheManager) -> None:
        cache_manager.set(CacheKind.CASE_LIST, LISTING_PARAMS, LISTING)
        cache_manager.set(CacheKind.SIDEBAR, None, {"procedures": []})

        entries = cache_manager.list_entries(CacheKind.SIDEBAR)

        assert [info.kind for info in entries] == [CacheKind.SIDEBAR]

    def test_read_entry_of_non_json_payload(
        self,
        cache_manager: CacheManager,
        tiered_store: DualTierStore,
    ) -> None:
        tiered_store.set("brag_book_gallery_sidebar", b"<ul>legacy</ul>", ttl_seconds=3600)

        assert cache_manager.read_entry("brag_book_gallery_sidebar") == "<ul>legacy</ul>"
        assert cache_manager.read_entry("missing") is None

    def test_statistics(self, cache_manager: CacheManager, tiered_store: DualTierStore, clock) -> None:
        # Given
        cache_manager.set(CacheKind.CASE_LIST, LISTING_PARAMS, LISTING)
        cache_manager.set(CacheKind.SIDEBAR, None, {"procedures": []})
        tiered_store.set("bbg3:cases:old", b"[]", ttl_seconds=3600)
        cache_manager.get(CacheKind.SIDEBAR)
        cache_manager.get(CacheKind.FILTERS)
        clock.advance(2 * 3600)

        # When
        stats = cache_manager.statistics()

        # Then
        assert stats.total_items == 3
        assert stats.legacy_items == 1
        assert stats.expired_items == 2
        assert stats.kinds["sidebar"].count == 1
        assert stats.kinds["cases"].expired == 1
        assert stats.hits == 1
        assert stats.misses == 1
        assert stats.hit_ratio == 0.5
        assert stats.durable_available is True

    def test_defaults_without_collaborators(self, db_path, clock) -> None:
        store = SQLiteCacheDB(db_path, clock=clock)
        manager = CacheManager(DualTierStore(store, MemoryCache(clock=clock), clock=clock))

        assert isinstance(manager.key_builder, KeyBuilder)
        assert manager.statistics().hits == 0
        store.close()
