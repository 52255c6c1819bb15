"""Case Resolution Strategy Pattern Implementation.

Each strategy is one way of locating a single ``CaseRecord`` by ID. The
``CaseResolver`` walks an ordered list of them, cheapest first:

1. ``FilteredCacheStrategy``: scan cached listings for the caller's active
   filter contexts.
2. ``UnfilteredCacheStrategy``: scan the cached "all cases" listing.
3. ``DirectFetchStrategy``: fetch the case upstream through the
   ``SingleCase`` cache.
4. ``LegacyKeyStrategy``: scan entries written under retired key shapes
   and migrate a match to the current format.

Adding, removing or reordering strategies is a change to the list passed
to the resolver, not to the resolver itself.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

from gallerycache.services.cache_manager import CacheManager, decode_payload
from gallerycache.services.gallery_models import (
    CaseRecord,
    case_from_payload,
    find_case_in_listing,
    listing_records,
    normalize_case_id,
)
from gallerycache.shared.cache_utils import KeyClass, short_key_hash
from gallerycache.shared.constants import CacheKind, CaseParams
from gallerycache.shared.errors import MalformedEntryError
from gallerycache.shared.protocols import GalleryClientProtocol

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ResolutionRequest:
    """One case lookup.

    Attributes:
        case_id: Requested case ID, string-normalized
        filter_contexts: Listing parameter sets currently in use, most
            recently used first
    """

    case_id: str
    filter_contexts: tuple[Mapping[str, Any], ...] = field(default_factory=tuple)

    @classmethod
    def create(
        cls,
        case_id: Any,
        filter_contexts: list[Mapping[str, Any]] | tuple[Mapping[str, Any], ...] | None = None,
    ) -> ResolutionRequest:
        return cls(
            case_id=normalize_case_id(case_id),
            filter_contexts=tuple(filter_contexts or ()),
        )


def single_case_params(case_id: str) -> dict[str, str]:
    """Parameters of the ``SingleCase`` entry for ``case_id``."""
    return {CaseParams.CASE_ID: case_id}


class ResolutionStrategy(ABC):
    """Abstract base class for case resolution strategies.

    Concrete strategies return the record when they find it and None when
    they do not. Only ``UpstreamFetchError`` may escape ``try_resolve``.

    Example:
        >>> strategy = FilteredCacheStrategy(manager)
        >>> record = strategy.try_resolve(ResolutionRequest.create(101, [{"procedure_id": 3405}]))
    """

    name: str = "strategy"

    @abstractmethod
    def try_resolve(self, request: ResolutionRequest) -> CaseRecord | None:
        """Attempt to locate ``request.case_id``.

        Args:
            request: Lookup being resolved

        Returns:
            CaseRecord if found, None otherwise

        Raises:
            UpstreamFetchError: If an upstream call made by the strategy fails
        """
        ...

    def __repr__(self) -> str:
        return f"{type(self).__name__}(name={self.name!r})"


class FilteredCacheStrategy(ResolutionStrategy):
    """Scan the cached listings of the caller's filter contexts (cache only)."""

    name = "filtered_cache"

    def __init__(self, manager: CacheManager) -> None:
        self.manager = manager

    def try_resolve(self, request: ResolutionRequest) -> CaseRecord | None:
        seen: set[str] = set()
        for params in request.filter_contexts:
            key = self.manager.key_for(CacheKind.CASE_LIST, params)
            if key in seen:
                continue
            seen.add(key)
            listing = self.manager.get(CacheKind.CASE_LIST, params)
            if listing is None:
                continue
            record = find_case_in_listing(listing, request.case_id)
            if record is not None:
                return record
        return None


class UnfilteredCacheStrategy(ResolutionStrategy):
    """Scan the cached unfiltered "all cases" listing (cache only).

    A cached listing with no records is treated as a miss and invalidated,
    since an empty "all cases" listing is never a valid upstream answer.
    """

    name = "unfiltered_cache"

    def __init__(self, manager: CacheManager, all_cases_params: Mapping[str, Any] | None = None) -> None:
        self.manager = manager
        self.all_cases_params = dict(all_cases_params or {})

    def try_resolve(self, request: ResolutionRequest) -> CaseRecord | None:
        listing = self.manager.get(CacheKind.CASE_LIST, self.all_cases_params)
        if listing is None:
            return None
        if not listing_records(listing):
            self.manager.invalidate(CacheKind.CASE_LIST, self.all_cases_params)
            return None
        return find_case_in_listing(listing, request.case_id)


class DirectFetchStrategy(ResolutionStrategy):
    """Fetch the case by ID through the ``SingleCase`` cache.

    The fetched record is cached under ``SingleCase`` only; listings are
    never modified, so their pagination and filter semantics stay intact.
    """

    name = "direct_fetch"

    def __init__(self, manager: CacheManager, client: GalleryClientProtocol) -> None:
        self.manager = manager
        self.client = client

    def try_resolve(self, request: ResolutionRequest) -> CaseRecord | None:
        params = single_case_params(request.case_id)
        payload = self.manager.get_or_populate(
            CacheKind.SINGLE_CASE,
            params,
            lambda: self.client.fetch_case(request.case_id),
        )
        if payload is None:
            return None
        try:
            record = case_from_payload(payload, request.case_id)
        except MalformedEntryError:
            self.manager.invalidate(CacheKind.SINGLE_CASE, params)
            return None
        if record is None:
            self.manager.invalidate(CacheKind.SINGLE_CASE, params)
        return record


class LegacyKeyStrategy(ResolutionStrategy):
    """Scan entries stored under retired or malformed key shapes.

    A match is rewritten under the current ``SingleCase`` key and the
    legacy entry is deleted once the rewrite is stored. Payloads that are not JSON (written by very
    old releases) are skipped and left for the cleanup sweep.
    """

    name = "legacy_keys"

    def __init__(self, manager: CacheManager) -> None:
        self.manager = manager

    def _stale_keys(self) -> list[str]:
        key_builder = self.manager.key_builder
        return [
            key
            for key in self.manager.store.scan_durable_keys()
            if key_builder.classify_key(key) in (KeyClass.LEGACY, KeyClass.MALFORMED)
        ]

    def try_resolve(self, request: ResolutionRequest) -> CaseRecord | None:
        for key in self._stale_keys():
            payload = self.manager.store.get(key)
            if payload is None:
                continue
            try:
                record = case_from_payload(decode_payload(payload, key), request.case_id)
            except MalformedEntryError:
                continue
            if record is None:
                continue

            migrated = self.manager.set(
                CacheKind.SINGLE_CASE,
                single_case_params(request.case_id),
                record.raw_payload,
            )
            if not migrated:
                # The legacy entry stays the only copy
                return record
            self.manager.delete_key(key)
            logger.info(
                "Migrated case %s from legacy key hash %s...",
                request.case_id,
                short_key_hash(key),
            )
            return record
        return None
