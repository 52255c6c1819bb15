"""
Gallery Cache Constants Module

Centralized constants for the gallery cache. All magic values are defined
here to keep a single source of truth.
"""

from .cache import (
    BASE_DAY,
    BASE_HOUR,
    BASE_MINUTE,
    BASE_SECOND,
    CacheKind,
    CacheNamespace,
    CacheStorage,
    CacheTTL,
    CacheValidationConstants,
    CaseParams,
    LegacyKeyShapes,
    TierName,
)
from .cli import CLIDefaults, CLIMessages

__all__ = [
    "BASE_DAY",
    "BASE_HOUR",
    "BASE_MINUTE",
    "BASE_SECOND",
    "CLIDefaults",
    "CLIMessages",
    "CacheKind",
    "CacheNamespace",
    "CacheStorage",
    "CacheTTL",
    "CacheValidationConstants",
    "CaseParams",
    "LegacyKeyShapes",
    "TierName",
]
