"""Core utilities for the gallery cache."""

from .statistics import CacheMetrics, StatisticsCollector

__all__ = ["CacheMetrics", "StatisticsCollector"]
