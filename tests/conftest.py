"""
Pytest configuration and shared fixtures for gallery cache tests.

This module provides a controllable clock, both storage tiers, the
Dual-Tier Store and a Cache Manager wired to an event recorder.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Generator
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest

from gallerycache.core.statistics import StatisticsCollector
from gallerycache.services import (
    CacheManager,
    DualTierStore,
    EventDispatcher,
    MemoryCache,
    SQLiteCacheDB,
    StatisticsEventListener,
)
from gallerycache.services.cache_models import CacheEvent
from gallerycache.shared.cache_utils import KeyBuilder

# Settings tests must not see configuration from the developer shell
for env_name in [name for name in os.environ if name.startswith("GALLERYCACHE_")]:
    os.environ.pop(env_name)


class FakeClock:
    """Deterministic UTC clock; call it to read the time."""

    def __init__(self, start: datetime | None = None) -> None:
        self.now = start or datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += timedelta(seconds=seconds)


class RecordingListener:
    """Cache event listener that keeps every event it receives."""

    def __init__(self) -> None:
        self.events: list[CacheEvent] = []

    def on_event(self, event: CacheEvent) -> None:
        self.events.append(event)

    def outcomes(self, operation: str | None = None) -> list[str]:
        return [
            event.outcome.value
            for event in self.events
            if operation is None or event.operation == operation
        ]


@pytest.fixture(autouse=True)
def _reset_package_logger() -> Generator[None, None, None]:
    """Undo handler setup done by CLI runs so caplog keeps working."""
    yield
    package_logger = logging.getLogger("gallerycache")
    package_logger.handlers.clear()
    package_logger.setLevel(logging.NOTSET)
    package_logger.propagate = True


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def db_path(tmp_path: Path) -> Path:
    return tmp_path / "cache" / "gallery_cache.db"


@pytest.fixture
def durable_store(db_path: Path, clock: FakeClock) -> Generator[SQLiteCacheDB, None, None]:
    """File-backed durable tier driven by the fake clock."""
    store = SQLiteCacheDB(db_path, clock=clock)
    yield store
    store.close()


@pytest.fixture
def volatile_store(clock: FakeClock) -> MemoryCache:
    return MemoryCache(clock=clock)


@pytest.fixture
def tiered_store(
    durable_store: SQLiteCacheDB,
    volatile_store: MemoryCache,
    clock: FakeClock,
) -> DualTierStore:
    return DualTierStore(durable_store, volatile_store, clock=clock)


@pytest.fixture
def key_builder() -> KeyBuilder:
    return KeyBuilder()


@pytest.fixture
def recorder() -> RecordingListener:
    return RecordingListener()


@pytest.fixture
def statistics_collector() -> StatisticsCollector:
    return StatisticsCollector()


@pytest.fixture
def cache_manager(
    tiered_store: DualTierStore,
    key_builder: KeyBuilder,
    recorder: RecordingListener,
    statistics_collector: StatisticsCollector,
    clock: FakeClock,
) -> CacheManager:
    """Cache Manager over both tiers, recording events and statistics."""
    dispatcher = EventDispatcher([recorder, StatisticsEventListener(statistics_collector)])
    return CacheManager(
        tiered_store,
        key_builder,
        dispatcher=dispatcher,
        statistics_collector=statistics_collector,
        clock=clock,
    )
