"""Standardized terminal output utilities.

All user-facing CLI messages go through these functions so prefixes and
colours stay consistent. Errors and warnings go to stderr.

Usage:
    from geocatalog.output import success, info, warn, error, detail

    success("Created collection sat-2024")
    info("3 item(s) matched")
    warn("Extent of sat-2024 is out of date")
    error("Collection 'sat-2024' not found")
    detail("scene-1  2024-06-01T00:00:00Z")
"""

from __future__ import annotations

import sys
from typing import TextIO

import click

_STYLES = {
    "success": "green",
    "info": "blue",
    "warn": "yellow",
    "error": "red",
    "detail": "bright_black",
}

_PREFIXES = {
    "success": "✓",  # checkmark
    "info": "→",  # arrow
    "warn": "⚠",  # warning
    "error": "✗",  # X
    "detail": " ",
}


def _output(message: str, style: str, *, file: TextIO | None = None, nl: bool = True) -> None:
    colour = _STYLES[style]
    prefix = click.style(_PREFIXES[style], fg=colour)
    click.echo(f"{prefix} {click.style(message, fg=colour)}", file=file, nl=nl)


def success(message: str, *, file: TextIO | None = None, nl: bool = True) -> None:
    """Print a success message with green checkmark."""
    _output(message, "success", file=file, nl=nl)


def info(message: str, *, file: TextIO | None = None, nl: bool = True) -> None:
    """Print an informational message with blue arrow."""
    _output(message, "info", file=file, nl=nl)


def warn(message: str, *, file: TextIO | None = None, nl: bool = True) -> None:
    """Print a warning to stderr with yellow warning sign."""
    _output(message, "warn", file=file or sys.stderr, nl=nl)


def error(message: str, *, file: TextIO | None = None, nl: bool = True) -> None:
    """Print an error to stderr with red X."""
    _output(message, "error", file=file or sys.stderr, nl=nl)


def detail(message: str, *, file: TextIO | None = None, nl: bool = True) -> None:
    """Print an indented, dimmed detail line."""
    _output(message, "detail", file=file, nl=nl)
