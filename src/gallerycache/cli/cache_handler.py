"""Cache administration command handlers.

Each handler takes the ``CliContext`` and returns an exit code. Output is
a rich table or message, or the JSON envelope when ``--json`` is set.
"""

from __future__ import annotations

import logging
import time
from typing import Any

import orjson
from rich.console import Console
from rich.table import Table

from gallerycache.cli.context import CliContext
from gallerycache.cli.error_decorator import handle_cli_errors, write_json
from gallerycache.cli.json_formatter import format_json_output, format_success_output
from gallerycache.services.cache_models import CacheStatistics, StoredEntryInfo, utc_now
from gallerycache.shared.constants import CacheKind, CLIDefaults, CLIMessages
from gallerycache.shared.errors import (
    ApplicationError,
    ErrorCode,
    ErrorContext,
)
from gallerycache.shared.logging import log_operation_success

logger = logging.getLogger(__name__)

Commands = CLIMessages.CommandNames


def parse_kind(value: str, operation: str) -> CacheKind:
    """Resolve a kind name given on the command line.

    Raises:
        ApplicationError: If ``value`` is not a known cache kind
    """
    try:
        return CacheKind(value.strip().lower())
    except ValueError as e:
        choices = ", ".join(kind.value for kind in CacheKind)
        raise ApplicationError(
            ErrorCode.INVALID_CACHE_KIND,
            CLIMessages.Error.UNKNOWN_KIND.format(kind=value, choices=choices),
            ErrorContext(operation=operation, additional_data={"kind": value}),
            original_error=e,
        ) from e


def _truncate(key: str) -> str:
    width = CLIDefaults.KEY_DISPLAY_WIDTH
    return key if len(key) <= width else key[: width - 3] + "..."


def _entry_row(info: StoredEntryInfo, now: Any) -> dict[str, Any]:
    return {
        "key": info.key,
        "kind": info.kind.value if info.kind else None,
        "key_class": info.key_class,
        "size": info.size,
        "hit_count": info.hit_count,
        "created_at": info.created_at,
        "expires_at": info.expires_at,
        "expired": info.is_expired(now),
    }


def _stats_data(stats: CacheStatistics) -> dict[str, Any]:
    return {
        "total_items": stats.total_items,
        "total_size": stats.total_size,
        "expired_items": stats.expired_items,
        "legacy_items": stats.legacy_items,
        "kinds": stats.kinds,
        "hits": stats.hits,
        "misses": stats.misses,
        "hit_ratio": stats.hit_ratio,
        "volatile_available": stats.volatile_available,
        "durable_available": stats.durable_available,
    }


def _finish(operation: str, started: float, result_info: dict[str, Any]) -> int:
    log_operation_success(
        logger,
        operation,
        (time.perf_counter() - started) * 1000,
        result_info=result_info,
    )
    return CLIDefaults.EXIT_SUCCESS


@handle_cli_errors(operation="cache_stats", command_name=Commands.STATS)
def handle_stats(context: CliContext) -> int:
    """Print durable tier usage per kind and the hit/miss counters."""
    started = time.perf_counter()
    stats = context.cache_manager().statistics()

    if context.is_json_output_enabled():
        write_json(format_success_output(Commands.STATS, _stats_data(stats)))
        return _finish("cache_stats", started, {"total_items": stats.total_items})

    table = Table(title="Gallery cache")
    table.add_column("Kind", style="cyan")
    table.add_column("Entries", justify="right")
    table.add_column("Expired", justify="right")
    table.add_column("Size (bytes)", justify="right")
    for kind, kind_stats in stats.kinds.items():
        table.add_row(kind, str(kind_stats.count), str(kind_stats.expired), str(kind_stats.size))
    table.add_section()
    table.add_row(
        "[bold]total[/bold]",
        str(stats.total_items),
        str(stats.expired_items),
        str(stats.total_size),
    )

    console = Console()
    console.print(table)
    console.print(f"Legacy or malformed entries: {stats.legacy_items}")
    console.print(
        f"Hits: {stats.hits}  Misses: {stats.misses}  Hit ratio: {stats.hit_ratio:.1%}",
    )
    if not (stats.volatile_available and stats.durable_available):
        console.print(
            "[yellow]Degraded: "
            f"volatile={'up' if stats.volatile_available else 'down'} "
            f"durable={'up' if stats.durable_available else 'down'}[/yellow]",
        )
    return _finish("cache_stats", started, {"total_items": stats.total_items})


@handle_cli_errors(operation="cache_list", command_name=Commands.LIST)
def handle_list(context: CliContext, kind: str | None = None) -> int:
    """List durable entries, optionally for one kind."""
    started = time.perf_counter()
    cache_kind = parse_kind(kind, "cache_list") if kind else None
    entries = context.cache_manager().list_entries(cache_kind)
    now = utc_now()
    rows = [_entry_row(info, now) for info in entries]

    if context.is_json_output_enabled():
        write_json(format_success_output(Commands.LIST, {"count": len(rows), "entries": rows}))
        return _finish("cache_list", started, {"count": len(rows)})

    console = Console()
    if not rows:
        console.print(CLIMessages.Info.EMPTY)
        return _finish("cache_list", started, {"count": 0})

    table = Table(title=f"Cache entries ({len(rows)})")
    table.add_column("Key", style="cyan", no_wrap=True)
    table.add_column("Kind")
    table.add_column("Class")
    table.add_column("Size", justify="right")
    table.add_column("Expires (UTC)")
    table.add_column("Status")
    for row in rows:
        table.add_row(
            _truncate(row["key"]),
            row["kind"] or "-",
            row["key_class"],
            str(row["size"]),
            row["expires_at"].strftime("%Y-%m-%d %H:%M:%S"),
            "[red]expired[/red]" if row["expired"] else "[green]live[/green]",
        )
    console.print(table)
    return _finish("cache_list", started, {"count": len(rows)})


@handle_cli_errors(operation="cache_show", command_name=Commands.SHOW)
def handle_show(context: CliContext, key: str) -> int:
    """Print the decoded payload of one key."""
    value = context.cache_manager().read_entry(key)
    if value is None:
        raise ApplicationError(
            ErrorCode.ENTRY_NOT_FOUND,
            CLIMessages.Error.ENTRY_NOT_FOUND.format(key=key),
            ErrorContext(operation="cache_show", key=key),
        )

    if context.is_json_output_enabled():
        write_json(format_success_output(Commands.SHOW, {"key": key, "value": value}))
    elif isinstance(value, str):
        Console().print(value, markup=False, highlight=False)
    else:
        Console().print_json(orjson.dumps(value).decode())
    return CLIDefaults.EXIT_SUCCESS


@handle_cli_errors(operation="cache_delete", command_name=Commands.DELETE)
def handle_delete(context: CliContext, keys: list[str]) -> int:
    """Delete a selection of raw keys."""
    started = time.perf_counter()
    count = context.cache_manager().delete_keys(keys)

    if context.is_json_output_enabled():
        write_json(
            format_success_output(Commands.DELETE, {"requested": len(keys), "deleted": count}),
        )
    else:
        Console().print(CLIMessages.Info.DELETED.format(count=count, requested=len(keys)))
    return _finish("cache_delete", started, {"deleted": count})


@handle_cli_errors(operation="cache_clear", command_name=Commands.CLEAR)
def handle_clear(context: CliContext, kind: str) -> int:
    """Flush every entry of one kind."""
    started = time.perf_counter()
    cache_kind = parse_kind(kind, "cache_clear")
    count = context.cache_manager().flush_kind(cache_kind)

    if context.is_json_output_enabled():
        write_json(format_success_output(Commands.CLEAR, {"kind": cache_kind, "cleared": count}))
    else:
        Console().print(CLIMessages.Info.CLEARED_KIND.format(count=count, kind=cache_kind.value))
    return _finish("cache_clear", started, {"kind": cache_kind.value, "cleared": count})


@handle_cli_errors(operation="cache_clear_all", command_name=Commands.CLEAR_ALL)
def handle_clear_all(context: CliContext) -> int:
    """Flush every kind, then sweep legacy and malformed keys."""
    started = time.perf_counter()
    report = context.cache_manager().flush_all()

    if context.is_json_output_enabled():
        data = {
            "flushed_by_kind": report.flushed_by_kind,
            "sweep": report.sweep,
            "total": report.total_flushed,
        }
        write_json(format_success_output(Commands.CLEAR_ALL, data))
    else:
        Console().print(CLIMessages.Info.CLEARED_ALL.format(count=report.total_flushed))
    return _finish("cache_clear_all", started, {"total": report.total_flushed})


@handle_cli_errors(operation="cache_sweep", command_name=Commands.SWEEP)
def handle_sweep(context: CliContext) -> int:
    """Delete legacy and malformed keys."""
    started = time.perf_counter()
    result = context.cache_manager().sweep_legacy()

    if context.is_json_output_enabled():
        write_json(format_json_output(success=True, command=Commands.SWEEP, data=result))
    else:
        console = Console()
        console.print(
            CLIMessages.Info.SWEEP_DONE.format(scanned=result.scanned, deleted=result.deleted),
        )
        for shape, count in sorted(result.deleted_by_shape.items()):
            console.print(f"  {shape}: {count}")
    return _finish("cache_sweep", started, {"deleted": result.deleted})


@handle_cli_errors(operation="cache_purge_expired", command_name=Commands.PURGE_EXPIRED)
def handle_purge_expired(context: CliContext) -> int:
    """Physically remove expired durable rows."""
    started = time.perf_counter()
    count = context.cache_manager().purge_expired()

    if context.is_json_output_enabled():
        write_json(format_success_output(Commands.PURGE_EXPIRED, {"purged": count}))
    else:
        Console().print(CLIMessages.Info.PURGED.format(count=count))
    return _finish("cache_purge_expired", started, {"purged": count})
