"""Dependency Injection container for the gallery cache.

This module wires every cache service with dependency-injector so that no
component reaches for a global: settings, storage tiers, the Dual-Tier
Store, the event dispatcher, the Cache Manager and the Case Resolver are
all explicit providers.

The container manages:
- Settings (Singleton, overridable with ``container.config.override``)
- Storage tiers (SQLiteCacheDB, MemoryCache) and the DualTierStore
- Observability (EventDispatcher with logging and statistics listeners)
- CacheManager, LegacyCleanupSweep and CaseResolver
"""

from __future__ import annotations

from dependency_injector import containers, providers

from gallerycache.config.loader import load_settings
from gallerycache.config.models.settings import Settings
from gallerycache.core.statistics import StatisticsCollector
from gallerycache.services import (
    CacheManager,
    DualTierStore,
    EventDispatcher,
    LegacyCleanupSweep,
    LoggingEventListener,
    MemoryCache,
    SQLiteCacheDB,
    StatisticsEventListener,
    build_default_resolver,
)
from gallerycache.services.cache_models import Clock, utc_now
from gallerycache.shared.cache_utils import KeyBuilder


def _build_volatile_store(settings: Settings, clock: Clock) -> MemoryCache | None:
    if not settings.cache.volatile_enabled:
        return None
    return MemoryCache(clock=clock)


class Container(containers.DeclarativeContainer):
    """Dependency Injection container for gallery cache services.

    Example:
        >>> container = Container()
        >>> container.config.override(providers.Object(load_settings("gallerycache.toml")))
        >>> container.gallery_client.override(providers.Object(client))
        >>> resolver = container.case_resolver()
        >>> record = resolver.resolve_case(101, [{"procedure_id": 3405}])
    """

    # Configuration
    config = providers.Singleton(load_settings)
    clock = providers.Object(utc_now)

    statistics = providers.Singleton(StatisticsCollector)

    key_builder = providers.Singleton(
        KeyBuilder,
        namespace_version=providers.Callable(
            lambda config: config.cache.namespace_version,
            config=config,
        ),
    )

    # Storage tiers
    durable_store = providers.Singleton(
        SQLiteCacheDB,
        db_path=providers.Callable(lambda config: config.cache.db_path, config=config),
        clock=clock,
    )

    volatile_store = providers.Singleton(
        _build_volatile_store,
        settings=config,
        clock=clock,
    )

    tiered_store = providers.Singleton(
        DualTierStore,
        durable=durable_store,
        volatile=volatile_store,
        clock=clock,
    )

    # Observability
    event_dispatcher = providers.Singleton(
        EventDispatcher,
        listeners=providers.List(
            providers.Singleton(LoggingEventListener),
            providers.Singleton(StatisticsEventListener, collector=statistics),
        ),
    )

    legacy_sweep = providers.Singleton(
        LegacyCleanupSweep,
        store=tiered_store,
        key_builder=key_builder,
    )

    cache_manager = providers.Singleton(
        CacheManager,
        store=tiered_store,
        key_builder=key_builder,
        kind_ttls=providers.Callable(lambda config: config.cache.ttl.as_mapping(), config=config),
        enabled=providers.Callable(lambda config: config.cache.enabled, config=config),
        debug=providers.Callable(lambda config: config.cache.debug, config=config),
        debug_ttl=providers.Callable(lambda config: config.cache.debug_ttl, config=config),
        dispatcher=event_dispatcher,
        statistics_collector=statistics,
        sweep=legacy_sweep,
        clock=clock,
    )

    # Upstream client is supplied by the host application
    gallery_client = providers.Dependency()

    case_resolver = providers.Factory(
        build_default_resolver,
        manager=cache_manager,
        client=gallery_client,
        all_cases_params=providers.Callable(
            lambda config: config.upstream.all_cases_params(),
            config=config,
        ),
    )
