"""
Gallery Cache Typer CLI Application

Administration commands for the gallery cache: inspect entries, clear
kinds, sweep legacy keys and report usage.
"""

from __future__ import annotations

from pathlib import Path
from typing import Annotated, Optional

import typer

from gallerycache.cli import cache_handler
from gallerycache.cli.context import CliContext, LogLevel
from gallerycache.shared.constants import CLIDefaults, CLIMessages

__version__ = CLIDefaults.VERSION

Commands = CLIMessages.CommandNames

app = typer.Typer(
    name="gallerycache",
    help="Inspect and maintain the gallery response cache.",
    add_completion=False,
    rich_markup_mode="rich",
    no_args_is_help=True,
)


def version_callback(value: bool) -> None:
    """Print version information and exit."""
    if value:
        typer.echo(f"gallerycache {__version__}")
        raise typer.Exit


@app.callback()
def main(
    ctx: typer.Context,
    config: Annotated[
        Optional[Path],
        typer.Option("--config", "-c", help="TOML configuration file", dir_okay=False),
    ] = None,
    json_output: Annotated[
        bool,
        typer.Option("--json", help="Output results as a JSON envelope"),
    ] = False,
    log_level: Annotated[
        Optional[LogLevel],
        typer.Option("--log-level", help="Logging level (defaults to the configured level)"),
    ] = None,
    version: Annotated[
        bool,
        typer.Option(
            "--version",
            "-V",
            help="Show version and exit",
            callback=version_callback,
            is_eager=True,
        ),
    ] = False,
) -> None:
    """Gallery cache administration."""
    context = CliContext(json_output=json_output, log_level=log_level, config_path=config)
    ctx.obj = context
    ctx.call_on_close(context.close)


def _exit(code: int) -> None:
    if code != CLIDefaults.EXIT_SUCCESS:
        raise typer.Exit(code)


@app.command(Commands.STATS)
def stats_command(ctx: typer.Context) -> None:
    """Show entry counts and sizes per kind plus hit/miss counters."""
    _exit(cache_handler.handle_stats(ctx.obj))


@app.command(Commands.LIST)
def list_command(
    ctx: typer.Context,
    kind: Annotated[
        Optional[str],
        typer.Option("--kind", "-k", help="Only list entries of this kind"),
    ] = None,
) -> None:
    """List durable cache entries."""
    _exit(cache_handler.handle_list(ctx.obj, kind))


@app.command(Commands.SHOW)
def show_command(
    ctx: typer.Context,
    key: Annotated[str, typer.Argument(help="Full cache key")],
) -> None:
    """Show the decoded payload of one entry."""
    _exit(cache_handler.handle_show(ctx.obj, key))


@app.command(Commands.DELETE)
def delete_command(
    ctx: typer.Context,
    keys: Annotated[list[str], typer.Argument(help="Cache keys to delete")],
) -> None:
    """Delete selected entries from both tiers."""
    _exit(cache_handler.handle_delete(ctx.obj, keys))


@app.command(Commands.CLEAR)
def clear_command(
    ctx: typer.Context,
    kind: Annotated[str, typer.Argument(help="Cache kind to clear")],
) -> None:
    """Clear every entry of one kind."""
    _exit(cache_handler.handle_clear(ctx.obj, kind))


@app.command(Commands.CLEAR_ALL)
def clear_all_command(ctx: typer.Context) -> None:
    """Clear every kind and sweep legacy keys."""
    _exit(cache_handler.handle_clear_all(ctx.obj))


@app.command(Commands.SWEEP)
def sweep_command(ctx: typer.Context) -> None:
    """Delete entries stored under legacy or malformed keys."""
    _exit(cache_handler.handle_sweep(ctx.obj))


@app.command(Commands.PURGE_EXPIRED)
def purge_expired_command(ctx: typer.Context) -> None:
    """Remove expired rows from the durable tier."""
    _exit(cache_handler.handle_purge_expired(ctx.obj))


if __name__ == "__main__":
    app()
