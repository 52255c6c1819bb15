"""Services module for the gallery cache.

This module contains the storage tiers, the Dual-Tier Store, the Cache
Manager facade, the Case Resolver chain and the Legacy Cleanup Sweep.
"""

from .cache_events import EventDispatcher, LoggingEventListener, StatisticsEventListener
from .cache_manager import CacheManager
from .case_resolver import CaseResolver, ResolutionAttempt, ResolutionResult, build_default_resolver
from .gallery_models import CaseRecord
from .legacy_sweep import LegacyCleanupSweep
from .memory_cache import MemoryCache
from .sqlite_cache import SQLiteCacheDB
from .tiered_store import DualTierStore

__all__ = [
    "CacheManager",
    "CaseRecord",
    "CaseResolver",
    "DualTierStore",
    "EventDispatcher",
    "LegacyCleanupSweep",
    "LoggingEventListener",
    "MemoryCache",
    "ResolutionAttempt",
    "ResolutionResult",
    "SQLiteCacheDB",
    "StatisticsEventListener",
    "build_default_resolver",
]
