"""
Gallery Cache - Two-tier response cache for a before/after photo gallery

Caches upstream gallery API responses in a volatile in-process tier backed
by a durable SQLite tier, resolves single cases across cached listings and
cleans up entries written under retired key shapes.
"""

__version__ = "0.1.0"

from .services import (
    CacheManager,
    CaseRecord,
    CaseResolver,
    DualTierStore,
    build_default_resolver,
)
from .shared.constants import CacheKind

__all__ = [
    "CacheKind",
    "CacheManager",
    "CaseRecord",
    "CaseResolver",
    "DualTierStore",
    "build_default_resolver",
]
