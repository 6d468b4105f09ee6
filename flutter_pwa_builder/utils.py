"""Shared utility functions for the Flutter PWA Builder.

Provides Rich-based console reporting, duration formatting, deep merging of
configuration dictionaries, and small path/time helpers used across the
registry, engine and CLI.
"""

from __future__ import annotations

import copy
import functools
import posixpath
import re
from collections.abc import Callable, Mapping
from datetime import datetime, timezone
from typing import Any

from rich.console import Console
from rich.rule import Rule
from rich.table import Table

console = Console()


# ---------------------------------------------------------------------------
# Time helpers
# ---------------------------------------------------------------------------


def utc_now_iso() -> str:
    """Return the current UTC time as an ISO-8601 string."""
    return datetime.now(timezone.utc).isoformat()


def format_duration(seconds: float) -> str:
    """Format a duration in seconds to a human-readable string.

    Examples::

        format_duration(3.7)    -> "3.7s"
        format_duration(65.2)   -> "1m 5s"
        format_duration(3661.0) -> "1h 1m 1s"
    """
    if seconds < 0:
        return "0.0s"

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
# Config merging
# ---------------------------------------------------------------------------


def deep_merge(target: Mapping[str, Any], source: Mapping[str, Any] | None) -> dict[str, Any]:
    """Recursively merge *source* over *target* and return a new dict.

    Nested mappings are merged key by key; any other value in *source*
    (lists included) replaces the one in *target*.  ``None`` values in
    *source* are ignored so partial overrides never erase defaults.  Neither
    argument is mutated.

    Examples::

        deep_merge({"a": {"x": 1, "y": 2}}, {"a": {"y": 3}}) -> {"a": {"x": 1, "y": 3}}
    """
    result: dict[str, Any] = copy.deepcopy(dict(target))
    if not source:
        return result

    for key, source_value in source.items():
        target_value = result.get(key)
        if isinstance(source_value, Mapping) and isinstance(target_value, Mapping):
            result[key] = deep_merge(target_value, source_value)
        elif source_value is not None:
            result[key] = copy.deepcopy(source_value)

    return result


def with_defaults(defaults: Mapping[str, Any]) -> Callable[[Mapping[str, Any] | None], dict[str, Any]]:
    """Return a function that deep-merges a partial config over *defaults*."""

    def _apply(partial: Mapping[str, Any] | None = None) -> dict[str, Any]:
        return deep_merge(defaults, partial)

    return _apply


# ---------------------------------------------------------------------------
# Path helpers
# ---------------------------------------------------------------------------


def normalize_relative_path(path: str) -> str | None:
    """Normalise a generated file path to relative POSIX form.

    Backslashes become slashes, ``./`` and duplicate separators collapse.
    Returns ``None`` when the path is empty, absolute, or escapes its root
    via ``..``.
    """
    cleaned = path.replace("\\", "/").strip()
    if not cleaned or cleaned.startswith("/"):
        return None
    normalized = posixpath.normpath(cleaned)
    if normalized in (".", "") or normalized == ".." or normalized.startswith("../"):
        return None
    return normalized


@functools.lru_cache(maxsize=256)
def _glob_regex(pattern: str) -> re.Pattern[str]:
    out: list[str] = []
    i = 0
    while i < len(pattern):
        char = pattern[i]
        if pattern.startswith("**/", i):
            out.append("(?:.*/)?")
            i += 3
            continue
        if pattern.startswith("**", i):
            out.append(".*")
            i += 2
            continue
        if char == "*":
            out.append("[^/]*")
        elif char == "?":
            out.append("[^/]")
        elif char == "[" and "]" in pattern[i + 1 :]:
            end = pattern.index("]", i + 1)
            body = pattern[i + 1 : end]
            if body.startswith("!"):
                body = "^" + body[1:]
            out.append(f"[{body}]")
            i = end
        else:
            out.append(re.escape(char))
        i += 1
    return re.compile("".join(out) + r"\Z")


def glob_match(pattern: str, path: str) -> bool:
    """Return ``True`` when *path*, or its basename, matches *pattern*.

    ``*`` and ``?`` never cross a ``/``; ``**`` matches any number of
    segments, so ``**/*.dart`` matches ``main.dart`` and ``lib/src/a.dart``.
    """
    regex = _glob_regex(pattern)
    cleaned = path.replace("\\", "/")
    return bool(regex.match(cleaned) or regex.match(posixpath.basename(cleaned)))


# ---------------------------------------------------------------------------
# Rich output helpers
# ---------------------------------------------------------------------------


def print_header(title: str, color: str = "bright_cyan") -> None:
    """Print a full-width rule with a bold title."""
    console.print()
    console.print(Rule(f"[bold {color}] {title} [/bold {color}]", style=color))
    console.print()


def print_summary_table(data: dict[str, str], title: str = "Summary") -> None:
    """Print a two-column key/value summary table.

    Args:
        data: Mapping of label -> value.
        title: Table title.
    """
    table = Table(title=title, show_header=True, header_style="bold cyan")
    table.add_column("Item", style="dim", no_wrap=True)
    table.add_column("Value")

    for key, value in data.items():
        table.add_row(key, str(value))

    console.print(table)
    console.print()


def print_success(message: str) -> None:
    """Print a green success message."""
    console.print(f"[bold green]{message}[/bold green]")


def print_error(message: str) -> None:
    """Print a red error message."""
    console.print(f"[bold red]{message}[/bold red]")


def print_warning(message: str) -> None:
    """Print a yellow warning message."""
    console.print(f"[bold yellow]{message}[/bold yellow]")


def print_step(message: str) -> None:
    """Print a dim progress line for verbose runs."""
    console.print(f"  [dim]{message}[/dim]")
