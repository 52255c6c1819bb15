"""CLI error handling decorator.

Command handlers return an exit code and let errors propagate; this
decorator turns them into a JSON error envelope or a console message.
"""

from __future__ import annotations

import functools
import logging
import sys
from typing import Any, Callable, TypeVar

from rich.console import Console

from gallerycache.cli.json_formatter import format_json_output
from gallerycache.shared.constants import CLIDefaults, CLIMessages
from gallerycache.shared.errors import (
    ApplicationError,
    ErrorCode,
    ErrorContext,
    GalleryCacheError,
)
from gallerycache.shared.logging import log_operation_error, log_operation_start

logger = logging.getLogger(__name__)

F = TypeVar("F", bound=Callable[..., int])


def write_json(payload: bytes) -> None:
    """Write a JSON envelope to stdout."""
    sys.stdout.buffer.write(payload)
    sys.stdout.buffer.write(b"\n")
    sys.stdout.buffer.flush()


def handle_cli_errors(operation: str, command_name: str) -> Callable[[F], F]:
    """Decorator for standardized CLI error handling.

    The first positional argument of the wrapped handler must carry a
    ``json_output`` attribute (the ``CliContext``).

    Args:
        operation: Operation name for error context (e.g., "clear_kind")
        command_name: CLI command name used in the JSON envelope

    Returns:
        Decorated handler returning ``CLIDefaults.EXIT_ERROR`` on failure

    Example:
        >>> @handle_cli_errors(operation="sweep", command_name="sweep")
        ... def handle_sweep(context):
        ...     return CLIDefaults.EXIT_SUCCESS
    """

    def decorator(func: F) -> F:
        @functools.wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> int:
            json_output = bool(args and getattr(args[0], "json_output", False))
            log_operation_start(logger, operation, {"command": command_name})
            try:
                return func(*args, **kwargs)
            except GalleryCacheError as e:
                log_operation_error(logger, e, operation=operation)
                _output_error(e, json_output, command_name)
            except Exception as e:  # noqa: BLE001
                error = ApplicationError(
                    ErrorCode.CLI_UNEXPECTED_ERROR,
                    f"Unexpected error during {operation}: {e!s}",
                    ErrorContext(operation=operation),
                    original_error=e,
                )
                log_operation_error(logger, error, operation=operation)
                _output_error(error, json_output, command_name)
            return CLIDefaults.EXIT_ERROR

        return wrapper  # type: ignore[return-value]

    return decorator


def _output_error(error: GalleryCacheError, json_output: bool, command_name: str) -> None:
    if json_output:
        write_json(
            format_json_output(
                success=False,
                command=command_name,
                data={"error_code": error.code.value, "context": error.context.safe_dict()},
                errors=[error.message],
            ),
        )
        return

    console = Console(stderr=True)
    if error.code is ErrorCode.CLI_UNEXPECTED_ERROR:
        console.print(CLIMessages.Error.UNEXPECTED.format(error=error.message))
    else:
        console.print(f"[red]{error.code.value}[/red]: {error.message}", highlight=False)
