"""Built-in validators.

Project validators check the definition itself (package name, PWA manifest
settings, offline settings, targets).  Code validators run on generated
``.dart`` files and perform cheap structural checks only: balanced
delimiters and import placement.  They are not a Dart parser.
"""

from __future__ import annotations

import re
from typing import Any

from flutter_pwa_builder.models import ProjectDefinition, TargetPlatform
from flutter_pwa_builder.validation.framework import (
    Severity,
    ValidationInput,
    ValidationIssue,
    ValidationTarget,
    Validator,
)

_RE_PACKAGE_NAME = re.compile(r"^[a-z][a-z0-9_]*$")
_RE_HEX_COLOR = re.compile(r"^#[0-9A-Fa-f]{6}$")
_RE_STRING_LITERAL = re.compile(r"""'(?:\\.|[^'\\])*'|"(?:\\.|[^"\\])*\"""")
_RE_LINE_COMMENT = re.compile(r"//.*$")

MAX_SHORT_NAME_LENGTH = 12
MIN_PERIODIC_SYNC_SECONDS = 60

_DELIMITERS = {
    "{": ("}", "braces"),
    "(": (")", "parentheses"),
    "[": ("]", "brackets"),
}


def _as_project(content: Any) -> ProjectDefinition:
    if isinstance(content, ProjectDefinition):
        return content
    return ProjectDefinition.model_validate(content)


def suggest_package_name(name: str) -> str:
    """Turn an arbitrary name into a valid Dart package name."""
    cleaned = re.sub(r"[^a-z0-9_]", "_", name.lower())
    if not cleaned or not cleaned[0].isalpha():
        cleaned = f"app_{cleaned}"
    return cleaned


# ---------------------------------------------------------------------------
# Project validators
# ---------------------------------------------------------------------------


def check_project_name(data: ValidationInput) -> list[ValidationIssue]:
    project = _as_project(data.content)
    if not project.name:
        return [ValidationIssue(
            validator="project-name", severity=Severity.ERROR, message="Project name is required",
        )]
    if not _RE_PACKAGE_NAME.match(project.name):
        return [ValidationIssue(
            validator="project-name",
            severity=Severity.ERROR,
            message=(
                "Project name must start with lowercase letter and contain only "
                "lowercase letters, numbers, and underscores"
            ),
            suggestion=suggest_package_name(project.name),
        )]
    return []


def check_pwa_config(data: ValidationInput) -> list[ValidationIssue]:
    pwa = _as_project(data.content).pwa
    issues: list[ValidationIssue] = []

    def issue(severity: Severity, message: str, suggestion: str | None = None) -> None:
        issues.append(ValidationIssue(
            validator="pwa-config", severity=severity, message=message, suggestion=suggestion,
        ))

    if not pwa.name:
        issue(Severity.ERROR, "PWA name is required")
    if not pwa.short_name:
        issue(Severity.WARNING, "PWA short name is recommended", pwa.name[:MAX_SHORT_NAME_LENGTH] or None)
    elif len(pwa.short_name) > MAX_SHORT_NAME_LENGTH:
        issue(
            Severity.WARNING,
            f"PWA short name should be {MAX_SHORT_NAME_LENGTH} characters or less",
            pwa.short_name[:MAX_SHORT_NAME_LENGTH],
        )
    if not _RE_HEX_COLOR.match(pwa.theme_color):
        issue(Severity.ERROR, "Theme color must be a valid hex color (e.g., #2196F3)")
    if not _RE_HEX_COLOR.match(pwa.background_color):
        issue(Severity.ERROR, "Background color must be a valid hex color")
    if not pwa.icons:
        issue(
            Severity.WARNING,
            "No PWA icons configured. Icons are required for installable PWAs",
        )
    return issues


def check_offline_config(data: ValidationInput) -> list[ValidationIssue]:
    offline = _as_project(data.content).offline
    sync = offline.sync
    issues: list[ValidationIssue] = []

    if offline.storage.encryption and not (sync and sync.enabled):
        issues.append(ValidationIssue(
            validator="offline-config",
            severity=Severity.INFO,
            message=(
                "Encryption is enabled but sync is disabled. "
                "Encrypted data will only be available locally."
            ),
        ))
    if offline.caching.ttl < 0:
        issues.append(ValidationIssue(
            validator="offline-config", severity=Severity.ERROR, message="Cache TTL must be non-negative",
        ))
    if sync and sync.enabled and sync.strategy == "periodic":
        if not sync.interval or sync.interval < MIN_PERIODIC_SYNC_SECONDS:
            issues.append(ValidationIssue(
                validator="offline-config",
                severity=Severity.WARNING,
                message=f"Periodic sync interval should be at least {MIN_PERIODIC_SYNC_SECONDS} seconds",
                suggestion=str(MIN_PERIODIC_SYNC_SECONDS),
            ))
    return issues


def check_targets(data: ValidationInput) -> list[ValidationIssue]:
    targets = _as_project(data.content).targets
    if not targets:
        return [ValidationIssue(
            validator="targets",
            severity=Severity.ERROR,
            message="At least one target platform is required",
        )]
    if TargetPlatform.WEB not in targets:
        return [ValidationIssue(
            validator="targets",
            severity=Severity.WARNING,
            message=(
                "Web target is recommended for PWA functionality. "
                "PWA features will only work on web."
            ),
        )]
    return []


# ---------------------------------------------------------------------------
# Dart code validators
# ---------------------------------------------------------------------------


def _code_lines(content: Any) -> list[str]:
    return str(content or "").split("\n")


def check_dart_syntax(data: ValidationInput) -> list[ValidationIssue]:
    issues: list[ValidationIssue] = []
    counts = {opener: 0 for opener in _DELIMITERS}
    closers = {closer: opener for opener, (closer, _) in _DELIMITERS.items()}

    for number, raw in enumerate(_code_lines(data.content), start=1):
        if raw.strip().startswith("//"):
            continue
        line = _RE_LINE_COMMENT.sub("", _RE_STRING_LITERAL.sub("''", raw))
        for char in line:
            if char in counts:
                counts[char] += 1
            elif char in closers:
                counts[closers[char]] -= 1
        if ";;" in line:
            issues.append(ValidationIssue(
                validator="dart-syntax",
                severity=Severity.ERROR,
                message="Double semicolon detected",
                file=data.path,
                line=number,
            ))

    for opener, (_, label) in _DELIMITERS.items():
        balance = counts[opener]
        if balance:
            side = "missing closing" if balance > 0 else "extra closing"
            issues.append(ValidationIssue(
                validator="dart-syntax",
                severity=Severity.ERROR,
                message=f"Unbalanced {label}: {side} {label}",
                file=data.path,
            ))
    return issues


def check_dart_imports(data: ValidationInput) -> list[ValidationIssue]:
    issues: list[ValidationIssue] = []
    seen_code = False
    for number, raw in enumerate(_code_lines(data.content), start=1):
        line = raw.strip()
        if not line or line.startswith(("//", "/*", "*")):
            continue
        if line.startswith(("import ", "export ")):
            if seen_code:
                issues.append(ValidationIssue(
                    validator="dart-imports",
                    severity=Severity.WARNING,
                    message="Import statements should be at the top of the file",
                    file=data.path,
                    line=number,
                ))
        elif not line.startswith(("library ", "part ")):
            seen_code = True
    return issues


def builtin_validators() -> list[Validator]:
    """Return fresh instances of every built-in validator."""
    return [
        Validator(
            id="project-name",
            name="Project Name Validator",
            target=ValidationTarget.PROJECT,
            check=check_project_name,
        ),
        Validator(
            id="pwa-config",
            name="PWA Configuration Validator",
            target=ValidationTarget.PROJECT,
            severity=Severity.WARNING,
            check=check_pwa_config,
        ),
        Validator(
            id="offline-config",
            name="Offline Configuration Validator",
            target=ValidationTarget.PROJECT,
            severity=Severity.WARNING,
            check=check_offline_config,
        ),
        Validator(
            id="targets",
            name="Target Platforms Validator",
            target=ValidationTarget.PROJECT,
            severity=Severity.WARNING,
            check=check_targets,
        ),
        Validator(
            id="dart-syntax",
            name="Dart Syntax Validator",
            target=ValidationTarget.CODE,
            patterns=["*.dart"],
            check=check_dart_syntax,
        ),
        Validator(
            id="dart-imports",
            name="Dart Imports Validator",
            target=ValidationTarget.CODE,
            patterns=["*.dart"],
            severity=Severity.WARNING,
            check=check_dart_imports,
        ),
    ]
