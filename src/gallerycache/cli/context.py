"""
CLI Context Management Module

Holds the options shared by every command (JSON mode, log level, config
path) together with the lazily built service container. The context lives
on ``typer.Context.obj``.
"""

from __future__ import annotations

from enum import Enum
from pathlib import Path
from typing import Any

from dependency_injector import providers
from pydantic import BaseModel, ConfigDict, Field, PrivateAttr

from gallerycache.config.loader import load_settings
from gallerycache.containers import Container
from gallerycache.services.cache_manager import CacheManager
from gallerycache.shared.logging import setup_structured_logger


class LogLevel(str, Enum):
    """Log level enumeration for type safety."""

    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class CliContext(BaseModel):
    """
    CLI context model for managing per-invocation state.

    Attributes:
        json_output: Whether to output in JSON format
        log_level: Logging level
        config_path: Optional TOML configuration file
    """

    model_config = ConfigDict(arbitrary_types_allowed=True)

    json_output: bool = Field(default=False, description="Whether to output in JSON format")
    log_level: LogLevel | None = Field(
        default=None,
        description="Logging level (defaults to the configured level)",
    )
    config_path: Path | None = Field(default=None, description="TOML configuration file")

    _container: Container | None = PrivateAttr(default=None)

    def is_json_output_enabled(self) -> bool:
        return self.json_output

    @property
    def container(self) -> Container:
        """Service container built from the configured settings on first use."""
        if self._container is None:
            container = Container()
            settings = load_settings(self.config_path)
            setup_structured_logger(
                level=(self.log_level.value if self.log_level else settings.logging.level),
                log_file=settings.logging.file,
                use_rich_console=settings.logging.use_rich_console,
            )
            container.config.override(providers.Object(settings))
            self._container = container
        return self._container

    def cache_manager(self) -> CacheManager:
        return self.container.cache_manager()

    def close(self, *_: Any) -> None:
        """Release the durable tier connection if it was opened."""
        if self._container is not None:
            self._container.durable_store().close()
