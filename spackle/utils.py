"""Shared console and formatting helpers.

Provides the Rich console used for user-facing output, status printers,
duration formatting and ``key=value`` argument parsing.
"""

from __future__ import annotations

from collections.abc import Iterable

from rich.console import Console

console = Console()
err_console = Console(stderr=True)


# ---------------------------------------------------------------------------
# Argument helpers
# ---------------------------------------------------------------------------


def parse_assignments(entries: Iterable[str]) -> tuple[dict[str, str], list[str]]:
    """Split ``key=value`` strings into a mapping.

    Only the first ``=`` separates key from value, so values may contain
    ``=``.  Later assignments to the same key win.

    Returns:
        ``(assignments, rejected)`` where *rejected* holds every entry that
        had no ``=`` or an empty key.
    """
    assignments: dict[str, str] = {}
    rejected: list[str] = []
    for entry in entries:
        key, sep, value = entry.partition("=")
        key = key.strip()
        if not sep or not key:
            rejected.append(entry)
            continue
        assignments[key] = value
    return assignments, rejected


def pluralize(count: int, singular: str, plural: str | None = None) -> str:
    """``pluralize(1, "file") -> "1 file"``; ``pluralize(2, "entry", "entries") -> "2 entries"``."""
    word = singular if count == 1 else (plural or f"{singular}s")
    return f"{count} {word}"


# ---------------------------------------------------------------------------
# Formatting helpers
# ---------------------------------------------------------------------------


def format_duration(seconds: float) -> str:
    """Format a duration in seconds to a human-readable string.

    Examples::

        format_duration(0.0042) -> "4ms"
        format_duration(3.7)    -> "3.7s"
        format_duration(65.2)   -> "1m 5s"
    """
    if seconds < 0:
        return "0ms"
    if seconds < 1:
        return f"{int(seconds * 1000)}ms"

    hours = int(seconds // 3600)
    minutes = int((seconds % 3600) // 60)
    secs = seconds % 60

    parts: list[str] = []
    if hours > 0:
        parts.append(f"{hours}h")
    if minutes > 0:
        parts.append(f"{minutes}m")

    if hours > 0 or minutes > 0:
        parts.append(f"{int(secs)}s")
    else:
        parts.append(f"{secs:.1f}s")

    return " ".join(parts)


# ---------------------------------------------------------------------------
# Rich output helpers
# ---------------------------------------------------------------------------


def print_success(message: str) -> None:
    """Print a green success message."""
    console.print(f"[bold green]{message}[/bold green]")


def print_error(message: str) -> None:
    """Print a red error message to stderr."""
    err_console.print(f"[bold red]{message}[/bold red]")


def print_warning(message: str) -> None:
    """Print a yellow warning message."""
    console.print(f"[bold yellow]{message}[/bold yellow]")
