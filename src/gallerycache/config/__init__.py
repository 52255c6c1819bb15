"""Gallery Cache Configuration Module

This module provides the configuration models and the settings loader.
"""

from __future__ import annotations

from .loader import load_settings
from .models import (
    CacheSettings,
    KindTTLSettings,
    LoggingSettings,
    Settings,
    UpstreamSettings,
)

__all__ = [
    "CacheSettings",
    "KindTTLSettings",
    "LoggingSettings",
    "Settings",
    "UpstreamSettings",
    "load_settings",
]
