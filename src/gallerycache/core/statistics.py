"""
Statistics Collection Module

This module aggregates in-process counters for cache lookups, writes,
flushes and case resolutions. It is fed by ``StatisticsEventListener`` and
read by ``CacheManager.statistics`` and the admin CLI.
"""

from __future__ import annotations

import logging
import threading
from collections import Counter
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

logger = logging.getLogger(__name__)


@dataclass
class CacheMetrics:
    """Container for cache counters."""

    cache_hits: int = 0
    cache_misses: int = 0
    cache_writes: int = 0
    cache_errors: int = 0
    flushes: int = 0

    hits_by_kind: Counter[str] = field(default_factory=Counter)
    misses_by_kind: Counter[str] = field(default_factory=Counter)
    operations: Counter[str] = field(default_factory=Counter)

    # strategy name -> successful resolutions
    resolutions: Counter[str] = field(default_factory=Counter)
    unresolved: int = 0

    @property
    def cache_hit_ratio(self) -> float:
        lookups = self.cache_hits + self.cache_misses
        return self.cache_hits / lookups if lookups else 0.0


class StatisticsCollector:
    """Central aggregator for cache metrics.

    Thread-safe; one collector is shared by every cache manager built from
    the same container.
    """

    def __init__(self) -> None:
        """Initialize the statistics collector."""
        self.metrics = CacheMetrics()
        self.session_start = datetime.now(timezone.utc)
        self._lock = threading.Lock()

    def record_cache_hit(self, cache_kind: str) -> None:
        """Record a cache hit.

        Args:
            cache_kind: Cache kind value (sidebar, cases, ...)
        """
        with self._lock:
            self.metrics.cache_hits += 1
            self.metrics.hits_by_kind[cache_kind] += 1
        logger.debug("Recorded cache hit for kind: %s", cache_kind)

    def record_cache_miss(self, cache_kind: str) -> None:
        """Record a cache miss.

        Args:
            cache_kind: Cache kind value (sidebar, cases, ...)
        """
        with self._lock:
            self.metrics.cache_misses += 1
            self.metrics.misses_by_kind[cache_kind] += 1
        logger.debug("Recorded cache miss for kind: %s", cache_kind)

    def record_cache_operation(self, operation: str, *, success: bool = True) -> None:
        """Record a non-lookup cache operation (set, invalidate, flush, ...).

        Args:
            operation: Operation name
            success: Whether the operation succeeded
        """
        with self._lock:
            self.metrics.operations[operation] += 1
            if not success:
                self.metrics.cache_errors += 1
            elif operation == "set":
                self.metrics.cache_writes += 1
            elif operation.startswith("flush"):
                self.metrics.flushes += 1

    def record_resolution(self, strategy: str | None) -> None:
        """Record the outcome of one case resolution.

        Args:
            strategy: Name of the strategy that resolved the case, None if
                every strategy missed
        """
        with self._lock:
            if strategy is None:
                self.metrics.unresolved += 1
            else:
                self.metrics.resolutions[strategy] += 1

    def get_cache_hit_ratio(self) -> float:
        """Get the current cache hit ratio.

        Returns:
            Cache hit ratio as a percentage (0.0 to 100.0)
        """
        return self.metrics.cache_hit_ratio * 100.0

    def get_summary(self) -> dict[str, Any]:
        """Get a summary of all collected statistics.

        Returns:
            JSON-serializable dictionary of counters
        """
        with self._lock:
            metrics = self.metrics
            return {
                "session_start": self.session_start.isoformat(),
                "cache_hits": metrics.cache_hits,
                "cache_misses": metrics.cache_misses,
                "cache_hit_ratio": metrics.cache_hit_ratio,
                "cache_writes": metrics.cache_writes,
                "cache_errors": metrics.cache_errors,
                "flushes": metrics.flushes,
                "hits_by_kind": dict(metrics.hits_by_kind),
                "misses_by_kind": dict(metrics.misses_by_kind),
                "operations": dict(metrics.operations),
                "resolutions": dict(metrics.resolutions),
                "unresolved": metrics.unresolved,
            }

    def reset(self) -> None:
        """Reset all collected statistics."""
        with self._lock:
            self.metrics = CacheMetrics()
            self.session_start = datetime.now(timezone.utc)
        logger.info("StatisticsCollector reset")
