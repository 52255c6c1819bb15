"""Cache key utilities for gallery API request caching.

This module derives cache keys from a cache kind plus its selection
parameters. Identical selections produce identical keys regardless of
parameter order, and every key carries a namespace version token so a
version bump orphans all earlier keys without a physical delete.

Key format:
    ``{token}{version}:{kind}:{sha256(canonical params)}``

Example:
    >>> builder = KeyBuilder()
    >>> builder.build_key(CacheKind.CASE_LIST, {"procedure_ids": [3405]})
    'bbg4:cases:...'
    >>> builder.is_legacy_key("brag_book_gallery_sidebar")
    True
"""

from __future__ import annotations

import hashlib
import re
from collections.abc import Mapping
from enum import Enum
from typing import Any

import orjson

from gallerycache.shared.constants import (
    CacheKind,
    CacheNamespace,
    LegacyKeyShapes,
)
from gallerycache.shared.errors import create_validation_error

_SCALAR_TYPES = (str, int, float, bool)


class KeyClass(str, Enum):
    """Classification of a raw cache key."""

    CURRENT = "current"
    LEGACY = "legacy"
    MALFORMED = "malformed"
    FOREIGN = "foreign"


def _normalize_value(value: Any) -> Any:
    """Normalize one parameter value, returning None when it is empty."""
    if value is None:
        return None
    if isinstance(value, str):
        stripped = value.strip()
        return stripped or None
    if isinstance(value, _SCALAR_TYPES):
        return value
    if isinstance(value, (list, tuple, set, frozenset)):
        items: list[Any] = []
        seen: set[tuple[str, Any]] = set()
        for raw_item in value:
            item = _normalize_value(raw_item)
            if item is None:
                continue
            if not isinstance(item, _SCALAR_TYPES):
                msg = "Cache parameter collections may only hold scalar values"
                raise create_validation_error(msg, operation="canonical_params")
            # 1 and True hash equal, so dedupe on the type as well
            marker = (type(item).__name__, item)
            if marker in seen:
                continue
            seen.add(marker)
            items.append(item)
        if not items:
            return None
        return sorted(items, key=lambda item: (type(item).__name__, item))
    msg = f"Unsupported cache parameter type: {type(value).__name__}"
    raise create_validation_error(msg, operation="canonical_params")


def canonical_params(params: Mapping[str, Any] | None) -> dict[str, Any]:
    """Normalize parameters for consistent cache key generation.

    Normalization rules:
        1. Remove None, empty string and empty collection values
        2. Strip string values
        3. Deduplicate and sort collection values
        4. Sort keys lexicographically

    Parameter names are kept exactly as given, so ``memberId`` and
    ``memberid`` select different entries.

    Args:
        params: Selection parameters. Can be None.

    Returns:
        Normalized parameters dict with sorted keys.

    Example:
        >>> canonical_params({"procedure_ids": [3, 1, 3], "page": None})
        {'procedure_ids': [1, 3]}
    """
    if not params:
        return {}

    normalized: dict[str, Any] = {}
    for raw_key, raw_value in params.items():
        value = _normalize_value(raw_value)
        if value is None:
            continue
        normalized[str(raw_key)] = value

    return dict(sorted(normalized.items()))


def params_digest(params: Mapping[str, Any] | None) -> str:
    """Return the SHA-256 hex digest of the canonical parameter encoding."""
    encoded = orjson.dumps(canonical_params(params), option=orjson.OPT_SORT_KEYS)
    return hashlib.sha256(encoded).hexdigest()


def short_key_hash(key: str) -> str:
    """Short, log-safe hash of a full cache key."""
    digest = hashlib.sha256(key.encode("utf-8")).hexdigest()
    return digest[: CacheNamespace.EVENT_HASH_LENGTH]


class KeyBuilder:
    """Builds and classifies cache keys for one namespace version.

    Args:
        namespace_version: Current key namespace version. Keys written under
            lower versions are reported as legacy.
        token_prefix: Namespace token prefix shared by all versions.
    """

    def __init__(
        self,
        namespace_version: int = CacheNamespace.CURRENT_VERSION,
        token_prefix: str = CacheNamespace.TOKEN_PREFIX,
    ) -> None:
        if namespace_version < 1:
            msg = f"namespace_version must be >= 1, got {namespace_version}"
            raise create_validation_error(msg, field="namespace_version")

        self.namespace_version = namespace_version
        self.token_prefix = token_prefix
        self.namespace = f"{token_prefix}{namespace_version}"

        kinds = "|".join(re.escape(kind.value) for kind in CacheKind)
        sep = re.escape(CacheNamespace.SEPARATOR)
        self._current_pattern = re.compile(
            rf"^{re.escape(self.namespace)}{sep}(?P<kind>{kinds}){sep}"
            rf"[0-9a-f]{{{CacheNamespace.DIGEST_LENGTH}}}$"
        )
        self._own_namespace_pattern = re.compile(
            rf"^{re.escape(self.namespace)}{sep}"
        )

        self._legacy_patterns: dict[str, re.Pattern[str]] = {}
        if namespace_version > 1:
            prior = "|".join(str(v) for v in range(1, namespace_version))
            self.register_legacy_pattern(
                "namespace_prior",
                rf"^{re.escape(token_prefix)}(?:{prior}){sep}",
            )
        for name, pattern in LegacyKeyShapes.ALL:
            self.register_legacy_pattern(name, pattern)

    def build_key(self, kind: CacheKind, params: Mapping[str, Any] | None = None) -> str:
        """Derive the cache key for a kind and its selection parameters.

        Args:
            kind: Logical cache kind
            params: Selection parameters (procedure IDs, member ID, page, ...)

        Returns:
            Namespaced cache key
        """
        kind = CacheKind(kind)
        sep = CacheNamespace.SEPARATOR
        return f"{self.namespace}{sep}{kind.value}{sep}{params_digest(params)}"

    def kind_prefix(self, kind: CacheKind) -> str:
        """Key prefix shared by every key of ``kind`` in this namespace."""
        sep = CacheNamespace.SEPARATOR
        return f"{self.namespace}{sep}{CacheKind(kind).value}{sep}"

    def namespace_prefix(self) -> str:
        """Key prefix shared by every key in this namespace."""
        return f"{self.namespace}{CacheNamespace.SEPARATOR}"

    def kind_from_key(self, raw_key: str) -> CacheKind | None:
        """Return the kind encoded in a current-format key, else None."""
        match = self._current_pattern.match(raw_key)
        if match is None:
            return None
        return CacheKind(match.group("kind"))

    def register_legacy_pattern(self, name: str, pattern: str | re.Pattern[str]) -> None:
        """Register a retired key shape.

        Args:
            name: Identifier of the retired format
            pattern: Regex matched against the raw key with ``re.match``
        """
        compiled = re.compile(pattern) if isinstance(pattern, str) else pattern
        self._legacy_patterns[name] = compiled

    @property
    def legacy_pattern_names(self) -> list[str]:
        return list(self._legacy_patterns)

    def legacy_shape(self, raw_key: str) -> str | None:
        """Name of the legacy shape ``raw_key`` matches, if any."""
        for name, pattern in self._legacy_patterns.items():
            if pattern.match(raw_key):
                return name
        return None

    def is_legacy_key(self, raw_key: str) -> bool:
        """Whether ``raw_key`` was produced by a superseded key format."""
        return self.legacy_shape(raw_key) is not None

    def is_malformed_key(self, raw_key: str) -> bool:
        """Whether ``raw_key`` claims the current namespace but has a bad shape."""
        return bool(self._own_namespace_pattern.match(raw_key)) and not self._current_pattern.match(
            raw_key
        )

    def classify_key(self, raw_key: str) -> KeyClass:
        """Classify a raw key found in a storage tier."""
        if self._current_pattern.match(raw_key):
            return KeyClass.CURRENT
        if self.is_legacy_key(raw_key):
            return KeyClass.LEGACY
        if self._own_namespace_pattern.match(raw_key):
            return KeyClass.MALFORMED
        return KeyClass.FOREIGN
