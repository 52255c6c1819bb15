"""
Cache Configuration Constants

This module provides centralized cache constants for the gallery cache:
the logical cache kinds, the key namespace, default TTLs and the key
shapes written by earlier releases of the plugin.
"""

from __future__ import annotations

from enum import Enum

# Base time units for TTL calculations
BASE_SECOND = 1
BASE_MINUTE = 60 * BASE_SECOND
BASE_HOUR = 60 * BASE_MINUTE
BASE_DAY = 24 * BASE_HOUR


class CacheKind(str, Enum):
    """Logical category of a cached artifact.

    The value doubles as the key-namespace segment for the kind, so it must
    stay stable across releases.
    """

    SIDEBAR = "sidebar"
    CASE_LIST = "cases"
    SINGLE_CASE = "case"
    CAROUSEL = "carousel"
    FILTERS = "filters"
    FAVORITES = "favorites"


class TierName(str, Enum):
    """Storage tier an entry was served from."""

    VOLATILE = "volatile"
    DURABLE = "durable"


class CacheNamespace:
    """Key namespace settings."""

    TOKEN_PREFIX = "bbg"
    CURRENT_VERSION = 4
    SEPARATOR = ":"

    # SHA-256 hex digest
    DIGEST_LENGTH = 64
    EVENT_HASH_LENGTH = 16


class CacheTTL:
    """Default time-to-live per cache kind, in seconds."""

    DEFAULT = BASE_HOUR
    SIDEBAR = 12 * BASE_HOUR
    CASE_LIST = BASE_HOUR
    SINGLE_CASE = BASE_HOUR
    CAROUSEL = BASE_HOUR
    FILTERS = BASE_HOUR
    FAVORITES = BASE_HOUR

    # Short duration used for every kind while debugging
    DEBUG = BASE_MINUTE


class LegacyKeyShapes:
    """Key shapes written by plugin releases before the namespaced format.

    Each entry is ``(name, regex)``. New retired formats are appended here or
    registered at runtime through ``KeyBuilder.register_legacy_pattern``.
    """

    TRANSIENT = ("transient_v3", r"^brag_book_gallery_transient_")
    ALL_CASES = ("all_cases_v3", r"^brag_book_all_cases_[0-9a-f]{32}$")
    SIDEBAR = ("sidebar_v3", r"^brag_book_gallery_sidebar$")
    CASE_VIEW = ("case_view_v3", r"^brag_book_gallery_case_")

    ALL: tuple[tuple[str, str], ...] = (TRANSIENT, ALL_CASES, SIDEBAR, CASE_VIEW)


class CaseParams:
    """Parameter names used when caching case data."""

    CASE_ID = "case_id"
    PROPERTY_ID = "property_id"
    PROCEDURE_IDS = "procedure_ids"
    MEMBER_ID = "member_id"
    PAGE = "page"

    # Record fields that identify a case in upstream payloads
    RECORD_ID_FIELDS = ("id", "case_id", "caseId")
    LISTING_DATA_FIELDS = ("data", "cases")


class CacheValidationConstants:
    """Cache validation constants."""

    MIN_TTL = BASE_SECOND
    MAX_TTL = 365 * BASE_DAY

    MAX_KEY_LENGTH = 255
    HASH_PREFIX_LOG_LENGTH = 16


class CacheStorage:
    """Default storage locations."""

    DB_PATH = "cache/gallery_cache.db"
    CONFIG_PATHS = ("config/gallerycache.toml", "gallerycache.toml")
