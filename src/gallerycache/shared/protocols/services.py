"""Service protocols for dependency inversion.

This module defines the upstream gallery client and the observability hook
as Protocol interfaces, so the cache layer never depends on an HTTP client
or a logging backend directly.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Protocol

if TYPE_CHECKING:
    from collections.abc import Mapping

    from gallerycache.services.cache_models import CacheEvent
    from gallerycache.shared.constants import CacheKind


class GalleryClientProtocol(Protocol):
    """Protocol for the upstream gallery API client.

    Transport, authentication, retries and timeouts belong to the client.
    Failures are raised as exceptions; the cache wraps them in
    ``UpstreamFetchError`` and never caches a failure.

    Example:
        >>> client: GalleryClientProtocol = HttpGalleryClient(base_url)
        >>> listing = client.fetch(CacheKind.CASE_LIST, {"procedure_ids": [3405]})
        >>> case = client.fetch_case("101")
    """

    def fetch(self, kind: CacheKind, params: Mapping[str, Any]) -> Any:
        """Fetch the artifact of ``kind`` selected by ``params``.

        Args:
            kind: Logical cache kind being populated
            params: Selection parameters

        Returns:
            JSON-serializable payload
        """

    def fetch_case(self, case_id: str) -> dict[str, Any] | None:
        """Fetch one case by ID.

        Args:
            case_id: Case identifier

        Returns:
            Raw case payload, or None if the case does not exist upstream
        """


class CacheEventListener(Protocol):
    """Receiver of cache observability events."""

    def on_event(self, event: CacheEvent) -> None:
        """Handle one cache event. Must not raise."""
