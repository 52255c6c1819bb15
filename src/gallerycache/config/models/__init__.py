"""Configuration domain models."""

from __future__ import annotations

from .app_settings import LoggingSettings, UpstreamSettings
from .cache_settings import CacheSettings, KindTTLSettings
from .settings import Settings

__all__ = [
    "CacheSettings",
    "KindTTLSettings",
    "LoggingSettings",
    "Settings",
    "UpstreamSettings",
]
