"""Tests for the Legacy Cleanup Sweep."""

from __future__ import annotations

from gallerycache.services.legacy_sweep import LegacyCleanupSweep
from gallerycache.services.memory_cache import MemoryCache
from gallerycache.services.tiered_store import DualTierStore
from gallerycache.shared.cache_utils import KeyBuilder
from gallerycache.shared.constants import CacheKind

LEGACY_KEYS = [
    "bbg2:cases:" + "1" * 64,
    "bbg3:sidebar:whatever",
    "brag_book_gallery_transient_cases_abcd_page2",
    "brag_book_all_cases_" + "f" * 32,
    "brag_book_gallery_sidebar",
    "brag_book_gallery_case_facelift_101",
]
MALFORMED_KEY = "bbg4:nokind:" + "a" * 64


def _seed(store: DualTierStore, keys: list[str]) -> None:
    for key in keys:
        store.set(key, b"{}", ttl_seconds=3600)


class TestLegacyCleanupSweep:
    """Test legacy and malformed key deletion."""

    def test_sweep_deletes_legacy_and_malformed_only(
        self,
        tiered_store: DualTierStore,
        key_builder: KeyBuilder,
    ) -> None:
        # Given
        current = key_builder.build_key(CacheKind.SIDEBAR)
        _seed(tiered_store, [*LEGACY_KEYS, MALFORMED_KEY, current, "other_plugin_option"])
        sweep = LegacyCleanupSweep(tiered_store, key_builder)

        # When
        result = sweep.sweep()

        # Then
        assert result.scanned == len(LEGACY_KEYS) + 3
        assert result.deleted == len(LEGACY_KEYS) + 1
        assert result.deleted_by_shape["namespace_prior"] == 2
        assert result.deleted_by_shape["malformed"] == 1
        assert sorted(tiered_store.scan_durable_keys()) == sorted([current, "other_plugin_option"])

    def test_sweep_is_idempotent(self, tiered_store: DualTierStore, key_builder: KeyBuilder) -> None:
        _seed(tiered_store, LEGACY_KEYS)
        sweep = LegacyCleanupSweep(tiered_store, key_builder)

        sweep.sweep()
        second = sweep.sweep()

        assert second.deleted == 0
        assert second.deleted_by_shape == {}

    def test_sweep_removes_volatile_copies(
        self,
        tiered_store: DualTierStore,
        volatile_store: MemoryCache,
        key_builder: KeyBuilder,
    ) -> None:
        _seed(tiered_store, ["brag_book_gallery_sidebar"])

        LegacyCleanupSweep(tiered_store, key_builder).sweep()

        assert volatile_store.get("brag_book_gallery_sidebar") is None

    def test_find_stale_keys(self, tiered_store: DualTierStore, key_builder: KeyBuilder) -> None:
        _seed(tiered_store, ["brag_book_gallery_sidebar", MALFORMED_KEY])

        stale = LegacyCleanupSweep(tiered_store, key_builder).find_stale_keys()

        assert stale == {"brag_book_gallery_sidebar": "sidebar_v3", MALFORMED_KEY: "malformed"}

    def test_registered_pattern_is_swept(self, tiered_store: DualTierStore, key_builder: KeyBuilder) -> None:
        key_builder.register_legacy_pattern("favorites_v2", r"^bb_fav_")
        _seed(tiered_store, ["bb_fav_42"])

        result = LegacyCleanupSweep(tiered_store, key_builder).sweep()

        assert result.deleted_by_shape == {"favorites_v2": 1}

    def test_unavailable_durable_tier_sweeps_nothing(
        self,
        tiered_store: DualTierStore,
        key_builder: KeyBuilder,
    ) -> None:
        tiered_store.durable.close()

        result = LegacyCleanupSweep(tiered_store, key_builder).sweep()

        assert result.scanned == 0
        assert result.deleted == 0
