"""Settings loader.

This module loads ``Settings`` from an optional TOML file with environment
variable overrides. There is no process-wide settings singleton; callers
(the container, the CLI) hold the instance they loaded.
"""

from __future__ import annotations

import logging
from pathlib import Path

import toml
from pydantic import ValidationError

from gallerycache.config.models.settings import Settings
from gallerycache.shared.constants import CacheStorage
from gallerycache.shared.errors import (
    ApplicationError,
    ErrorCode,
    ErrorContext,
    create_config_error,
)

logger = logging.getLogger(__name__)


def _first_error_location(error: ValidationError) -> str | None:
    errors = error.errors()
    if not errors:
        return None
    return ".".join(str(part) for part in errors[0].get("loc", ()))


def _load_from_file(config_path: Path) -> Settings:
    try:
        return Settings.from_toml_file(config_path)
    except FileNotFoundError as e:
        raise ApplicationError(
            ErrorCode.CONFIG_MISSING,
            f"Configuration file not found: {config_path}",
            ErrorContext(
                operation="load_settings",
                additional_data={"config_path": str(config_path)},
            ),
            original_error=e,
        ) from e
    except toml.TomlDecodeError as e:
        raise create_config_error(
            f"Invalid TOML in {config_path}: {e}",
            operation="load_settings",
            original_error=e,
        ) from e
    except ValidationError as e:
        raise create_config_error(
            f"Invalid configuration in {config_path}: {e}",
            config_key=_first_error_location(e),
            operation="load_settings",
            original_error=e,
        ) from e


def load_settings(config_path: str | Path | None = None) -> Settings:
    """Load settings from a TOML configuration file or the environment.

    Args:
        config_path: Optional path to a TOML configuration file. If None, the
            default locations are tried before falling back to environment
            variables and defaults.

    Returns:
        Settings instance loaded from the specified source

    Raises:
        ApplicationError: If the file is missing, unreadable or invalid
    """
    if config_path:
        return _load_from_file(Path(config_path))

    for default_path in (Path(candidate) for candidate in CacheStorage.CONFIG_PATHS):
        if default_path.exists():
            logger.debug("Loading configuration from %s", default_path)
            return _load_from_file(default_path)

    try:
        return Settings()
    except ValidationError as e:
        raise create_config_error(
            f"Invalid configuration in environment: {e}",
            config_key=_first_error_location(e),
            operation="load_settings",
            original_error=e,
        ) from e


__all__ = ["load_settings"]
