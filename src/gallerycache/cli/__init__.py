"""Gallery cache administration CLI."""

from .typer_app import app

__all__ = ["app"]
