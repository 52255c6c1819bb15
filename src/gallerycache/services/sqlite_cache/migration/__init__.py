"""Schema migration for the SQLite cache."""

from gallerycache.services.sqlite_cache.migration.manager import MigrationManager

__all__ = ["MigrationManager"]
