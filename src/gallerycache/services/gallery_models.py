"""Gallery API Response Models.

This module defines Pydantic models for the gallery API payloads the cache
resolves, plus helpers that read case records out of cached listings.

Upstream payloads use camelCase field names (``procedureIds``,
``photoSets``); the models accept both those and snake_case names, and
keep the untouched payload in ``raw_payload`` so a record can be written
back to the cache exactly as received.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from gallerycache.shared.constants import CaseParams
from gallerycache.shared.errors import ErrorCode, ErrorContext, MalformedEntryError


def normalize_case_id(case_id: Any) -> str:
    """Normalize a case identifier for comparison.

    Upstream IDs arrive as ints or strings; ``101`` and ``"101"`` name the
    same case.
    """
    return str(case_id).strip()


def record_case_id(raw: Mapping[str, Any]) -> str | None:
    """Return the case ID of a raw record, or None if it carries none."""
    for field_name in CaseParams.RECORD_ID_FIELDS:
        value = raw.get(field_name)
        if value is not None and str(value).strip():
            return normalize_case_id(value)
    return None


def _first_present(raw: Mapping[str, Any], *names: str) -> Any:
    for name in names:
        if name in raw and raw[name] is not None:
            return raw[name]
    return None


class CaseRecord(BaseModel):
    """A single gallery case (one before/after photo set).

    Records are immutable once cached; a new sync overwrites rather than
    mutates.

    Attributes:
        case_id: Stable case identifier (string-normalized)
        procedure_ids: Procedure IDs the case belongs to
        member_id: Owning member (doctor) ID, if any
        images: Photo set entries as returned upstream
        nudity_flag: Whether the case is flagged as containing nudity
        raw_payload: Untouched upstream payload

    Example:
        >>> record = CaseRecord.from_payload({"id": 101, "procedureIds": [3405]})
        >>> record.case_id
        '101'
    """

    model_config = ConfigDict(frozen=True, extra="ignore")

    case_id: str = Field(..., min_length=1, description="Case identifier")
    procedure_ids: tuple[int, ...] = Field(default=(), description="Procedure IDs")
    member_id: str | None = Field(default=None, description="Member ID")
    images: tuple[Any, ...] = Field(default=(), description="Photo sets")
    nudity_flag: bool = Field(default=False, description="Nudity flag")
    raw_payload: dict[str, Any] = Field(default_factory=dict, description="Upstream payload")

    @classmethod
    def from_payload(cls, raw: Mapping[str, Any]) -> CaseRecord:
        """Build a record from an upstream case payload.

        Args:
            raw: Case payload as returned by the gallery API

        Returns:
            Validated CaseRecord

        Raises:
            MalformedEntryError: If the payload has no case ID or invalid fields
        """
        case_id = record_case_id(raw)
        context = ErrorContext(operation="case_from_payload")
        if case_id is None:
            raise MalformedEntryError(
                ErrorCode.CACHE_CORRUPTED,
                "Case payload has no identifier",
                context,
            )

        member_id = _first_present(raw, "member_id", "memberId", "doctorId")
        procedure_ids = _first_present(raw, "procedure_ids", "procedureIds") or ()
        images = _first_present(raw, "images", "photoSets", "photos") or ()
        nudity = _first_present(raw, "nudity_flag", "nudity", "hasNudity")

        try:
            return cls(
                case_id=case_id,
                procedure_ids=tuple(int(pid) for pid in procedure_ids),
                member_id=normalize_case_id(member_id) if member_id is not None else None,
                images=tuple(images),
                nudity_flag=bool(nudity),
                raw_payload=dict(raw),
            )
        except (ValidationError, TypeError, ValueError) as e:
            raise MalformedEntryError(
                ErrorCode.CACHE_CORRUPTED,
                f"Invalid case payload for case {case_id}: {e!s}",
                context,
                original_error=e,
            ) from e

    def matches(self, case_id: Any) -> bool:
        return self.case_id == normalize_case_id(case_id)


def listing_records(payload: Any) -> list[Mapping[str, Any]]:
    """Return the raw case records held by a cached listing payload.

    Accepts an upstream listing envelope (``{"data": [...]}`` or
    ``{"cases": [...]}``) or a bare list of records. Anything else yields
    an empty list.
    """
    records: Any = payload
    if isinstance(payload, Mapping):
        records = None
        for field_name in CaseParams.LISTING_DATA_FIELDS:
            if isinstance(payload.get(field_name), list):
                records = payload[field_name]
                break
    if not isinstance(records, list):
        return []
    return [record for record in records if isinstance(record, Mapping)]


def find_case_in_listing(payload: Any, case_id: Any) -> CaseRecord | None:
    """Linear scan of a listing payload for ``case_id``.

    Records that match the ID but fail validation are skipped.
    """
    wanted = normalize_case_id(case_id)
    for raw in listing_records(payload):
        if record_case_id(raw) != wanted:
            continue
        try:
            return CaseRecord.from_payload(raw)
        except MalformedEntryError:
            continue
    return None


def case_from_payload(payload: Any, case_id: Any) -> CaseRecord | None:
    """Read the record for ``case_id`` out of a single-case or listing payload.

    A single-case response may be the bare record, a ``{"data": {...}}``
    envelope, or a one-item listing. A record whose ID differs from
    ``case_id`` is not a match.

    Raises:
        MalformedEntryError: If the matching record fails validation
    """
    if isinstance(payload, Mapping):
        candidate: Any = payload
        if record_case_id(payload) is None and isinstance(payload.get("data"), Mapping):
            candidate = payload["data"]
        if record_case_id(candidate) is not None:
            record = CaseRecord.from_payload(candidate)
            return record if record.matches(case_id) else None
    return find_case_in_listing(payload, case_id)
