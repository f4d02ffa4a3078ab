"""CLI module - Command line interface."""

from taskwave.cli.main import app

__all__ = ["app"]
