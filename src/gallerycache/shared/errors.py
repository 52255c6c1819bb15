"""Errors raised by the gallery cache.

Every failure carries an ``ErrorCode`` and an ``ErrorContext`` whose extra
data is flattened to primitives so it can go straight into a structured
log line. The original exception, when there is one, is kept on
``original_error`` and chained with ``raise ... from``.

A case that cannot be found is ``None``, not an error.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from pathlib import Path
from typing import Any, Union

# Values allowed in ErrorContext.additional_data
PrimitiveContextValue = Union[str, int, float, bool]


class ErrorCode(str, Enum):
    """Error codes for the gallery cache.

    This enum serves as the single source of truth for all error codes
    used throughout the package.
    """

    # Storage tier errors
    STORE_UNAVAILABLE = "STORE_UNAVAILABLE"

    # Cache payload errors
    CACHE_SERIALIZATION_ERROR = "CACHE_SERIALIZATION_ERROR"
    CACHE_CORRUPTED = "CACHE_CORRUPTED"
    ENTRY_NOT_FOUND = "ENTRY_NOT_FOUND"

    # Upstream API errors
    UPSTREAM_FETCH_FAILED = "UPSTREAM_FETCH_FAILED"
    UPSTREAM_INVALID_RESPONSE = "UPSTREAM_INVALID_RESPONSE"

    # Validation errors
    VALIDATION_ERROR = "VALIDATION_ERROR"
    INVALID_TTL = "INVALID_TTL"
    INVALID_CACHE_KIND = "INVALID_CACHE_KIND"

    # Configuration errors
    CONFIG_INVALID = "CONFIG_INVALID"
    CONFIG_MISSING = "CONFIG_MISSING"

    # CLI errors
    CLI_UNEXPECTED_ERROR = "CLI_UNEXPECTED_ERROR"


def _coerce_primitives(value: Any | None) -> dict[str, PrimitiveContextValue] | None:
    """Flatten context data to log-safe primitives.

    Enums become their value, paths become strings and decimals become
    floats. Anything else is rejected with ``TypeError``.
    """
    if value is None:
        return None
    if not isinstance(value, dict):
        msg = f"context data must be a dict, not {type(value).__name__}"
        raise TypeError(msg)

    flattened: dict[str, PrimitiveContextValue] = {}
    for name, item in value.items():
        if isinstance(item, Enum):
            flattened[name] = item.value
        elif isinstance(item, (str, int, float, bool)):
            flattened[name] = item
        elif isinstance(item, Path):
            flattened[name] = str(item)
        elif isinstance(item, Decimal):
            flattened[name] = float(item)
        else:
            msg = f"context value {name!r} has unsupported type {type(item).__name__}"
            raise TypeError(msg)
    return flattened


@dataclass(frozen=True)
class ErrorContext:
    """Where an error happened.

    Attributes:
        operation: Operation name, e.g. ``"get_or_populate"``
        key: Cache key involved, if any
        additional_data: Extra primitive values for the log line
    """

    operation: str | None = None
    key: str | None = None
    additional_data: dict[str, PrimitiveContextValue] | None = None

    def __post_init__(self) -> None:
        if self.additional_data is not None:
            object.__setattr__(self, "additional_data", _coerce_primitives(self.additional_data))

    def safe_dict(self) -> dict[str, Any]:
        """Export context as dict for logging.

        Returns:
            Dictionary with non-empty fields and a guaranteed additional_data key.
        """
        data: dict[str, Any] = {}
        if self.operation is not None:
            data["operation"] = self.operation
        if self.key is not None:
            data["key"] = self.key
        data["additional_data"] = dict(self.additional_data or {})
        return data


class GalleryCacheError(Exception):
    """Base class for every error the package raises.

    Args:
        code: What went wrong
        message: Text shown to operators and written to logs
        context: Operation, key and extra data
        original_error: Exception this one wraps
    """

    def __init__(
        self,
        code: ErrorCode,
        message: str,
        context: ErrorContext | None = None,
        original_error: Exception | None = None,
    ) -> None:
        self.code = code
        self.message = message
        self.context = context or ErrorContext()
        self.original_error = original_error
        super().__init__(f"{code.value}: {message}")

    def __str__(self) -> str:
        return f"{self.code.value}: {self.message}"

    def to_dict(self) -> dict[str, Any]:
        """Log-ready view of the error."""
        cause = self.original_error
        return {
            "code": self.code.value,
            "message": self.message,
            "context": self.context.safe_dict(),
            "original_error": None if cause is None else str(cause),
        }


class DomainError(GalleryCacheError):
    """A cache rule was broken: bad parameters, an out-of-range TTL or an
    undecodable payload."""


class InfrastructureError(GalleryCacheError):
    """A storage tier or the upstream gallery API failed."""


class ApplicationError(GalleryCacheError):
    """Application-level errors such as configuration or CLI misuse."""


class StoreUnavailableError(InfrastructureError):
    """A storage tier cannot be reached.

    Raised by tier implementations and caught by the dual-tier store, which
    degrades to the remaining tier. Never surfaced to cache callers.
    """

    def __init__(
        self,
        tier: str,
        message: str,
        context: ErrorContext | None = None,
        original_error: Exception | None = None,
    ) -> None:
        super().__init__(ErrorCode.STORE_UNAVAILABLE, message, context, original_error)
        self.tier = tier


class UpstreamFetchError(InfrastructureError):
    """The upstream gallery API call behind a cache miss failed.

    Nothing is cached for a failed fetch; the error reaches the caller.
    """


class MalformedEntryError(DomainError):
    """A stored payload could not be decoded under the expected schema."""


def create_store_unavailable_error(
    tier: str,
    operation: str,
    original_error: Exception | None = None,
    key: str | None = None,
) -> StoreUnavailableError:
    """Create a store unavailable error with context."""
    context = ErrorContext(
        operation=operation,
        key=key,
        additional_data={"tier": tier},
    )
    detail = f": {original_error!s}" if original_error else ""
    return StoreUnavailableError(
        tier,
        f"{tier} tier unavailable during {operation}{detail}",
        context,
        original_error,
    )


def create_upstream_error(
    message: str,
    operation: str | None = None,
    original_error: Exception | None = None,
    additional_data: dict[str, Any] | None = None,
) -> UpstreamFetchError:
    """Create an upstream fetch error with context."""
    context = ErrorContext(
        operation=operation,
        additional_data=additional_data,
    )
    return UpstreamFetchError(
        ErrorCode.UPSTREAM_FETCH_FAILED,
        message,
        context,
        original_error,
    )


def create_validation_error(
    message: str,
    field: str | None = None,
    operation: str | None = None,
    original_error: Exception | None = None,
) -> DomainError:
    """Create a validation error naming the offending field."""
    extra = {"field": field} if field else None
    return DomainError(
        ErrorCode.VALIDATION_ERROR,
        message,
        ErrorContext(operation=operation, additional_data=extra),
        original_error,
    )


def create_config_error(
    message: str,
    config_key: str | None = None,
    operation: str | None = None,
    original_error: Exception | None = None,
) -> ApplicationError:
    """Create a configuration error naming the offending setting."""
    extra = {"config_key": config_key} if config_key else None
    return ApplicationError(
        ErrorCode.CONFIG_INVALID,
        message,
        ErrorContext(operation=operation, additional_data=extra),
        original_error,
    )
