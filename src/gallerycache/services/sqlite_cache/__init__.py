"""SQLite durable cache tier with modular operations.

This package provides the durable tier as a facade over separate query,
insert, update and schema migration classes.
"""

from gallerycache.services.sqlite_cache.cache_db import SQLiteCacheDB

__all__ = ["SQLiteCacheDB"]
