"""Gallery Cache Shared Module.

This package contains shared constants, key utilities, error handling and
logging used across the gallery cache.
"""

__all__ = ["cache_utils", "constants", "errors", "logging", "protocols"]
