"""End-to-end gallery cache flow through the service container."""

from __future__ import annotations

from collections.abc import Generator
from pathlib import Path

import pytest
from dependency_injector import providers

from gallerycache.config import Settings
from gallerycache.containers import Container
from gallerycache.services import MemoryCache
from gallerycache.shared.constants import CacheKind

pytestmark = pytest.mark.integration

PROCEDURE_CONTEXT = {"procedure_ids": [3405]}
LISTING = {"data": [{"id": 101, "procedureIds": [3405]}, {"id": 102, "procedureIds": [3405]}]}


@pytest.fixture
def gallery_client(mocker):
    client = mocker.Mock()
    client.fetch.return_value = LISTING
    client.fetch_case.return_value = {"id": 999, "procedureIds": [3405], "photoSets": []}
    return client


@pytest.fixture
def container(tmp_path: Path, gallery_client) -> Generator[Container, None, None]:
    settings = Settings(
        cache={"db_path": str(tmp_path / "flow.db")},
        upstream={"website_property_id": "111"},
    )
    container = Container()
    container.config.override(providers.Object(settings))
    container.gallery_client.override(providers.Object(gallery_client))
    yield container
    container.durable_store().close()


class TestGalleryCacheFlow:
    """Listing render, case lookups and maintenance in sequence."""

    def test_listing_then_case_lookups(self, container: Container, gallery_client) -> None:
        manager = container.cache_manager()
        resolver = container.case_resolver()

        # Given - a listing page render populates the cache
        listing = manager.get_or_populate(
            CacheKind.CASE_LIST,
            PROCEDURE_CONTEXT,
            lambda: gallery_client.fetch(CacheKind.CASE_LIST, PROCEDURE_CONTEXT),
        )
        assert len(listing["data"]) == 2

        # When - a case in the listing is opened
        case_101 = resolver.resolve(101, [PROCEDURE_CONTEXT])

        # Then - it is served from the cached listing
        assert case_101.strategy == "filtered_cache"
        gallery_client.fetch_case.assert_not_called()

        # When - a case outside the listing is opened twice
        first = resolver.resolve("999", [PROCEDURE_CONTEXT])
        second = resolver.resolve(999, [PROCEDURE_CONTEXT])

        # Then - upstream is called once and the listing is untouched
        assert first.record is not None
        assert first.record.case_id == "999"
        assert second.strategy == "direct_fetch"
        gallery_client.fetch_case.assert_called_once_with("999")
        assert len(manager.get(CacheKind.CASE_LIST, PROCEDURE_CONTEXT)["data"]) == 2
        gallery_client.fetch.assert_called_once()

        stats = manager.statistics()
        assert stats.kinds["cases"].count == 1
        assert stats.kinds["case"].count == 1
        assert stats.hits >= 2

    def test_volatile_flush_falls_back_to_durable(self, container: Container, gallery_client) -> None:
        manager = container.cache_manager()
        manager.get_or_populate(CacheKind.SIDEBAR, None, lambda: {"procedures": [3405]})

        volatile = container.volatile_store()
        assert isinstance(volatile, MemoryCache)
        volatile.flush()

        assert manager.get(CacheKind.SIDEBAR) == {"procedures": [3405]}
        assert len(volatile) == 1

    def test_legacy_entries_swept_after_upgrade(self, container: Container) -> None:
        manager = container.cache_manager()
        store = container.tiered_store()
        store.set("bbg3:cases:" + "0" * 64, b"[]", ttl_seconds=3600)
        store.set("brag_book_gallery_transient_sidebar", b"{}", ttl_seconds=3600)
        manager.set(CacheKind.FILTERS, None, {"age": []})

        result = manager.sweep_legacy()

        assert result.deleted == 2
        assert [info.kind for info in manager.list_entries()] == [CacheKind.FILTERS]

    def test_disabled_volatile_tier(self, tmp_path: Path) -> None:
        settings = Settings(cache={"db_path": str(tmp_path / "durable_only.db"), "volatile_enabled": False})
        container = Container()
        container.config.override(providers.Object(settings))

        manager = container.cache_manager()
        manager.set(CacheKind.SIDEBAR, None, {"procedures": []})

        assert container.volatile_store() is None
        assert manager.get(CacheKind.SIDEBAR) == {"procedures": []}
        container.durable_store().close()
