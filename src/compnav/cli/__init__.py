"""CLI module."""

from compnav.cli.main import cli

__all__ = ["cli"]
