"""Upstream API and logging configuration models."""

from __future__ import annotations

from pydantic import BaseModel, Field, field_validator

from gallerycache.shared.constants import CaseParams

_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


class UpstreamSettings(BaseModel):
    """Upstream gallery API configuration.

    ``website_property_id`` selects the unfiltered "all cases" listing the
    case resolver falls back to.
    """

    api_base_url: str = Field(
        default="https://app.bragbookgallery.com",
        description="Gallery API base URL",
    )
    website_property_id: str | None = Field(
        default=None,
        description="Website property ID of this site",
    )

    def all_cases_params(self) -> dict[str, str]:
        """Parameters of the unfiltered case listing."""
        if not self.website_property_id:
            return {}
        return {CaseParams.PROPERTY_ID: self.website_property_id}


class LoggingSettings(BaseModel):
    """Logging configuration.

    This class manages logging level, file output and console style.
    """

    level: str = Field(default="INFO", description="Logging level")
    file: str | None = Field(default=None, description="JSON log file path")
    use_rich_console: bool = Field(
        default=True,
        description="Rich console output instead of JSON lines",
    )

    @field_validator("level")
    @classmethod
    def _validate_level(cls, value: str) -> str:
        level = value.upper()
        if level not in _LOG_LEVELS:
            msg = f"level must be one of {', '.join(_LOG_LEVELS)}"
            raise ValueError(msg)
        return level


__all__ = ["LoggingSettings", "UpstreamSettings"]
