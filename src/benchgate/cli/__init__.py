"""CLI module for benchgate.

This module provides the command-line interface using Typer.
"""

from __future__ import annotations

from benchgate.cli.main import app

__all__ = ["app"]
