"""Case Resolver.

Resolves one ``CaseRecord`` by ID by walking an ordered list of
``ResolutionStrategy`` objects until one succeeds. Absence is a normal
outcome reported as None; only an upstream failure that no later strategy
could cover is raised.
"""

from __future__ import annotations

import time
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any

from gallerycache.services.cache_events import RESOLVE_OPERATION
from gallerycache.services.cache_manager import CacheManager
from gallerycache.services.cache_models import CacheEvent, EventOutcome
from gallerycache.services.gallery_models import CaseRecord
from gallerycache.services.resolution_strategies import (
    DirectFetchStrategy,
    FilteredCacheStrategy,
    LegacyKeyStrategy,
    ResolutionRequest,
    ResolutionStrategy,
    UnfilteredCacheStrategy,
    single_case_params,
)
from gallerycache.shared.cache_utils import short_key_hash
from gallerycache.shared.constants import CacheKind
from gallerycache.shared.errors import UpstreamFetchError
from gallerycache.shared.protocols import GalleryClientProtocol


@dataclass(frozen=True)
class ResolutionAttempt:
    """Diagnostic record of one strategy tried for one case ID."""

    strategy: str
    case_id: str
    succeeded: bool
    duration_ms: float
    error: str | None = None


@dataclass(frozen=True)
class ResolutionResult:
    """Resolved record (None when not found) plus the attempts made."""

    record: CaseRecord | None
    attempts: tuple[ResolutionAttempt, ...] = field(default_factory=tuple)

    @property
    def found(self) -> bool:
        return self.record is not None

    @property
    def strategy(self) -> str | None:
        """Name of the strategy that found the record."""
        for attempt in self.attempts:
            if attempt.succeeded:
                return attempt.strategy
        return None


class CaseResolver:
    """Ordered chain of case lookup strategies.

    Args:
        manager: Cache manager whose event dispatcher receives one
            ``resolve_case`` event per resolution
        strategies: Strategies in the order they are tried

    Example:
        >>> resolver = build_default_resolver(manager, client, {"property_id": 111})
        >>> record = resolver.resolve_case(101, [{"procedure_id": 3405}])
    """

    def __init__(self, manager: CacheManager, strategies: Sequence[ResolutionStrategy]) -> None:
        self.manager = manager
        self.strategies = list(strategies)

    def resolve(
        self,
        case_id: Any,
        known_filter_contexts: Sequence[Mapping[str, Any]] | None = None,
    ) -> ResolutionResult:
        """Resolve ``case_id``, recording every strategy attempted.

        If a strategy raises ``UpstreamFetchError`` the chain continues; the
        error is re-raised only when no later strategy finds the record.

        Raises:
            UpstreamFetchError: If an upstream fetch failed and no other
                strategy found the record
        """
        request = ResolutionRequest.create(case_id, tuple(known_filter_contexts or ()))
        attempts: list[ResolutionAttempt] = []
        upstream_error: UpstreamFetchError | None = None

        for strategy in self.strategies:
            started = time.perf_counter()
            error_code: str | None = None
            try:
                record = strategy.try_resolve(request)
            except UpstreamFetchError as e:
                upstream_error = e
                error_code = e.code.value
                record = None
            attempts.append(
                ResolutionAttempt(
                    strategy=strategy.name,
                    case_id=request.case_id,
                    succeeded=record is not None,
                    duration_ms=(time.perf_counter() - started) * 1000,
                    error=error_code,
                ),
            )
            if record is not None:
                self._emit(request, EventOutcome.HIT, strategy.name)
                return ResolutionResult(record=record, attempts=tuple(attempts))

        if upstream_error is not None:
            self._emit(request, EventOutcome.ERROR, upstream_error.code.value)
            raise upstream_error

        self._emit(request, EventOutcome.MISS)
        return ResolutionResult(record=None, attempts=tuple(attempts))

    def resolve_case(
        self,
        case_id: Any,
        known_filter_contexts: Sequence[Mapping[str, Any]] | None = None,
    ) -> CaseRecord | None:
        """Resolve ``case_id``; None means the case does not exist or is not visible yet."""
        return self.resolve(case_id, known_filter_contexts).record

    def _emit(self, request: ResolutionRequest, outcome: EventOutcome, detail: str | None = None) -> None:
        key = self.manager.key_for(CacheKind.SINGLE_CASE, single_case_params(request.case_id))
        self.manager.events.emit(
            CacheEvent(
                operation=RESOLVE_OPERATION,
                kind=CacheKind.SINGLE_CASE,
                key_hash=short_key_hash(key),
                outcome=outcome,
                detail=detail,
            ),
        )


def build_default_resolver(
    manager: CacheManager,
    client: GalleryClientProtocol,
    all_cases_params: Mapping[str, Any] | None = None,
) -> CaseResolver:
    """Resolver with the standard four strategies in increasing cost order."""
    return CaseResolver(
        manager,
        [
            FilteredCacheStrategy(manager),
            UnfilteredCacheStrategy(manager, all_cases_params),
            DirectFetchStrategy(manager, client),
            LegacyKeyStrategy(manager),
        ],
    )
