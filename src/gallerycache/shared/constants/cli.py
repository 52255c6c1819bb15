"""
CLI Configuration Constants

This module contains constants for the cache administration CLI.
"""


class CLIDefaults:
    """CLI default values."""

    VERSION = "0.1.0"

    EXIT_SUCCESS = 0
    EXIT_ERROR = 1

    DEFAULT_CONFIG_PATH = "config/gallerycache.toml"
    DEFAULT_LOG_LEVEL = "WARNING"

    # Rows longer than this are truncated in table output
    KEY_DISPLAY_WIDTH = 60


class CLIMessages:
    """CLI message templates."""

    class CommandNames:
        """Command names used in JSON envelopes."""

        STATS = "stats"
        LIST = "list"
        SHOW = "show"
        DELETE = "delete"
        CLEAR = "clear"
        CLEAR_ALL = "clear-all"
        SWEEP = "sweep"
        PURGE_EXPIRED = "purge-expired"

    class Info:
        """Informational message templates."""

        CLEARED_KIND = "[green]Cleared {count} '{kind}' entries[/green]"
        CLEARED_ALL = "[green]Cleared {count} entries across all kinds[/green]"
        SWEEP_DONE = "[green]Scanned {scanned} keys, deleted {deleted} legacy entries[/green]"
        DELETED = "[green]Deleted {count} of {requested} entries[/green]"
        PURGED = "[green]Purged {count} expired entries[/green]"
        EMPTY = "[yellow]No cache entries found[/yellow]"

    class Error:
        """Error message templates."""

        UNKNOWN_KIND = "Unknown cache kind '{kind}'. Choose from: {choices}"
        ENTRY_NOT_FOUND = "Cache entry '{key}' not found or expired"
        UNEXPECTED = "[red]Unexpected error: {error}[/red]"
