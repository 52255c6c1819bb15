"""
JSON envelope for ``--json`` output.

Every command prints ``{success, timestamp, command, data, errors}``.
Dataclasses, enums and datetimes inside ``data`` are handled natively by
orjson.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

import orjson

_OPTIONS = orjson.OPT_SORT_KEYS | orjson.OPT_INDENT_2 | orjson.OPT_NON_STR_KEYS


def _envelope(success: bool, command: str, data: Any, errors: list[str]) -> dict[str, Any]:
    return {
        "success": success,
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "command": command,
        "data": data,
        "errors": errors,
    }


def format_json_output(
    success: bool,
    command: str,
    data: Any | None = None,
    errors: list[str] | None = None,
) -> bytes:
    """Encode a command result.

    Any error message forces ``success`` to False. If ``data`` cannot be
    encoded, an error envelope describing the failure is returned instead.

    Example:
        >>> format_json_output(True, "sweep", {"scanned": 10, "deleted": 2})
    """
    errors = list(errors or [])
    try:
        return orjson.dumps(_envelope(success and not errors, command, data, errors), option=_OPTIONS)
    except TypeError as e:
        failure = _envelope(False, command, None, [f"Could not encode {command} output: {e!s}"])
        return orjson.dumps(failure, option=_OPTIONS)


def format_success_output(command: str, data: Any) -> bytes:
    return format_json_output(success=True, command=command, data=data)
