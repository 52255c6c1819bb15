"""Protocol definitions for dependency inversion.

Storage tiers, the upstream client and event listeners are consumed through
these protocols so the cache manager never imports a concrete backend.
"""

from __future__ import annotations

from .services import CacheEventListener, GalleryClientProtocol
from .stores import DurableStoreProtocol, VolatileStoreProtocol

__all__ = [
    "CacheEventListener",
    "DurableStoreProtocol",
    "GalleryClientProtocol",
    "VolatileStoreProtocol",
]
