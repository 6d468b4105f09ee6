"""Flutter SDK version adaptation.

Rewrites generated Dart code so it uses the APIs of a target Flutter
version.  Each rule is a regular-expression substitution that applies once
the target version reaches the rule's minimum version.  Rules are applied
in declaration order and every rule is idempotent, so adapting already
adapted code is a no-op.
"""

from __future__ import annotations

import re
from dataclasses import dataclass


@dataclass(frozen=True)
class APIMapping:
    pattern: re.Pattern[str]
    replacement: str
    min_version: str
    description: str


API_MAPPINGS: tuple[APIMapping, ...] = (
    # Flutter 3.10
    APIMapping(
        pattern=re.compile(r"\bCardTheme\s*\("),
        replacement="CardThemeData(",
        min_version="3.10.0",
        description="CardTheme renamed to CardThemeData",
    ),
    APIMapping(
        pattern=re.compile(r"(\w+)\.red\s*/\s*255(?:\.0)?"),
        replacement=r"\1.r",
        min_version="3.10.0",
        description="Color components now normalized 0-1",
    ),
    APIMapping(
        pattern=re.compile(r"(\w+)\.green\s*/\s*255(?:\.0)?"),
        replacement=r"\1.g",
        min_version="3.10.0",
        description="Color components now normalized 0-1",
    ),
    APIMapping(
        pattern=re.compile(r"(\w+)\.blue\s*/\s*255(?:\.0)?"),
        replacement=r"\1.b",
        min_version="3.10.0",
        description="Color components now normalized 0-1",
    ),
    # Flutter 3.29
    APIMapping(
        pattern=re.compile(r"\.withOpacity\s*\(\s*([\d.]+)\s*\)"),
        replacement=r".withValues(alpha: \1)",
        min_version="3.29.0",
        description="withOpacity deprecated in favor of withValues",
    ),
)


def _parse_version(version: str) -> tuple[int, int, int]:
    parts = str(version).strip().split(".")
    if not parts or not all(part.isdigit() for part in parts):
        raise ValueError(f"Invalid Flutter version: {version!r}")
    numbers = [int(part) for part in parts[:3]]
    while len(numbers) < 3:
        numbers.append(0)
    return numbers[0], numbers[1], numbers[2]


def compare_versions(left: str, right: str) -> int:
    """Compare two ``major.minor.patch`` versions.

    Missing components count as zero.  Returns a negative number, zero or a
    positive number as *left* is lower than, equal to or higher than *right*.

    Raises:
        ValueError: If either version has a non-numeric component.
    """
    for a, b in zip(_parse_version(left), _parse_version(right)):
        if a != b:
            return a - b
    return 0


def _applicable(target_version: str) -> list[APIMapping]:
    return [m for m in API_MAPPINGS if compare_versions(target_version, m.min_version) >= 0]


def adapt_for_flutter_version(code: str, target_version: str) -> str:
    """Apply every mapping whose minimum version is at most *target_version*."""
    adapted = code
    for mapping in _applicable(target_version):
        adapted = mapping.pattern.sub(mapping.replacement, adapted)
    return adapted


def get_api_changes_for_version(target_version: str) -> list[str]:
    """Descriptions of the mappings applied for *target_version*, in order."""
    return [mapping.description for mapping in _applicable(target_version)]
