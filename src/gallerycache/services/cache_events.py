"""Cache observability events.

The cache manager and case resolver do not log outcomes themselves; they
hand a ``CacheEvent`` to every registered listener. This module provides
the dispatcher plus the two shipped listeners: one writes a structured log
line per event, the other feeds the ``StatisticsCollector``.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable

from gallerycache.core.statistics import StatisticsCollector
from gallerycache.services.cache_models import CacheEvent, EventOutcome
from gallerycache.shared.protocols import CacheEventListener

logger = logging.getLogger(__name__)

RESOLVE_OPERATION = "resolve_case"


class EventDispatcher:
    """Fan-out of cache events to listeners.

    A listener that raises is logged and skipped; it never breaks the cache
    call that emitted the event.
    """

    def __init__(self, listeners: Iterable[CacheEventListener] = ()) -> None:
        self._listeners: list[CacheEventListener] = list(listeners)

    def add_listener(self, listener: CacheEventListener) -> None:
        self._listeners.append(listener)

    def remove_listener(self, listener: CacheEventListener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    @property
    def listeners(self) -> list[CacheEventListener]:
        return list(self._listeners)

    def emit(self, event: CacheEvent) -> None:
        for listener in self._listeners:
            try:
                listener.on_event(event)
            except Exception:
                logger.exception(
                    "Cache event listener %s failed on %s",
                    type(listener).__name__,
                    event.operation,
                )


class LoggingEventListener:
    """Writes one structured log line per cache event.

    Errors are logged at WARNING, everything else at ``level``.
    """

    def __init__(self, event_logger: logging.Logger | None = None, level: int = logging.DEBUG) -> None:
        self._logger = event_logger or logging.getLogger("gallerycache.events")
        self._level = level

    def on_event(self, event: CacheEvent) -> None:
        level = logging.WARNING if event.outcome is EventOutcome.ERROR else self._level
        if not self._logger.isEnabledFor(level):
            return
        kind = event.kind.value if event.kind is not None else "*"
        self._logger.log(
            level,
            "cache %s %s kind=%s key=%s",
            event.operation,
            event.outcome.value,
            kind,
            event.key_hash or "-",
            extra={
                "operation": event.operation,
                "context": {
                    "kind": kind,
                    "key_hash": event.key_hash,
                    "outcome": event.outcome.value,
                    "detail": event.detail,
                },
            },
        )


class StatisticsEventListener:
    """Feeds cache events into a ``StatisticsCollector``."""

    def __init__(self, collector: StatisticsCollector) -> None:
        self.collector = collector

    def on_event(self, event: CacheEvent) -> None:
        kind = event.kind.value if event.kind is not None else "*"
        if event.operation == RESOLVE_OPERATION:
            self.collector.record_resolution(
                event.detail if event.outcome is EventOutcome.HIT else None,
            )
        elif event.outcome is EventOutcome.HIT:
            self.collector.record_cache_hit(kind)
        elif event.outcome is EventOutcome.MISS:
            self.collector.record_cache_miss(kind)
        else:
            self.collector.record_cache_operation(
                event.operation,
                success=event.outcome is EventOutcome.SUCCESS,
            )
