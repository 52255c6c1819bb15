"""Cache configuration model.

This module contains the cache configuration model: the global caching
toggle, debug mode, key namespace version, storage locations and the
default TTL of every cache kind.
"""

from __future__ import annotations

from pydantic import BaseModel, Field

from gallerycache.shared.constants import (
    CacheKind,
    CacheNamespace,
    CacheStorage,
    CacheTTL,
    CacheValidationConstants,
)


class KindTTLSettings(BaseModel):
    """Default time-to-live per cache kind, in seconds."""

    sidebar: int = Field(
        default=CacheTTL.SIDEBAR,
        ge=CacheValidationConstants.MIN_TTL,
        le=CacheValidationConstants.MAX_TTL,
    )
    cases: int = Field(
        default=CacheTTL.CASE_LIST,
        ge=CacheValidationConstants.MIN_TTL,
        le=CacheValidationConstants.MAX_TTL,
    )
    case: int = Field(
        default=CacheTTL.SINGLE_CASE,
        ge=CacheValidationConstants.MIN_TTL,
        le=CacheValidationConstants.MAX_TTL,
    )
    carousel: int = Field(
        default=CacheTTL.CAROUSEL,
        ge=CacheValidationConstants.MIN_TTL,
        le=CacheValidationConstants.MAX_TTL,
    )
    filters: int = Field(
        default=CacheTTL.FILTERS,
        ge=CacheValidationConstants.MIN_TTL,
        le=CacheValidationConstants.MAX_TTL,
    )
    favorites: int = Field(
        default=CacheTTL.FAVORITES,
        ge=CacheValidationConstants.MIN_TTL,
        le=CacheValidationConstants.MAX_TTL,
    )

    def as_mapping(self) -> dict[CacheKind, int]:
        """TTL per ``CacheKind``; field names match the kind values."""
        return {kind: getattr(self, kind.value) for kind in CacheKind}


class CacheSettings(BaseModel):
    """Cache configuration.

    This class manages caching behavior including the global toggle,
    debug TTLs, the key namespace and both storage tiers.
    """

    enabled: bool = Field(default=True, description="Enable caching")
    debug: bool = Field(
        default=False,
        description="Use debug_ttl for every kind",
    )
    debug_ttl: int = Field(
        default=CacheTTL.DEBUG,
        ge=CacheValidationConstants.MIN_TTL,
        description="TTL in seconds while debug is on",
    )
    namespace_version: int = Field(
        default=CacheNamespace.CURRENT_VERSION,
        ge=1,
        description="Key namespace version; bumping it orphans earlier keys",
    )
    db_path: str = Field(
        default=CacheStorage.DB_PATH,
        description="SQLite database for the durable tier (':memory:' allowed)",
    )
    volatile_enabled: bool = Field(
        default=True,
        description="Enable the in-process volatile tier",
    )
    ttl: KindTTLSettings = Field(default_factory=KindTTLSettings)


__all__ = ["CacheSettings", "KindTTLSettings"]
