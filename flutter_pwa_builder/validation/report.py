"""Console and plain-text rendering of validation results."""

from __future__ import annotations

from rich.table import Table

from flutter_pwa_builder.utils import console
from flutter_pwa_builder.validation.framework import Severity, ValidationIssue, ValidationResult

_SEVERITY_ORDER = (Severity.ERROR, Severity.WARNING, Severity.INFO)
_SEVERITY_STYLES = {
    Severity.ERROR: "red",
    Severity.WARNING: "yellow",
    Severity.INFO: "blue",
}
_SEVERITY_ICONS = {
    Severity.ERROR: "✗",
    Severity.WARNING: "⚠",
    Severity.INFO: "ℹ",
}


def _location(issue: ValidationIssue) -> str:
    if not issue.file:
        return ""
    location = issue.file
    if issue.line is not None:
        location += f":{issue.line}"
        if issue.column is not None:
            location += f":{issue.column}"
    return location


def format_validation_result(result: ValidationResult) -> str:
    """Render *result* as plain text grouped by severity."""
    if result.valid and not result.issues:
        return "✓ Validation passed"

    lines = ["✗ Validation failed" if not result.valid else "⚠ Validation passed with warnings", ""]
    for severity in _SEVERITY_ORDER:
        issues = [issue for issue in result.issues if issue.severity == severity]
        if not issues:
            continue
        lines.append(f"{_SEVERITY_ICONS[severity]} {len(issues)} {severity.value}(s):")
        for issue in issues:
            location = _location(issue)
            suffix = f" ({location})" if location else ""
            lines.append(f"  - [{issue.validator}]{suffix} {issue.message}")
            if issue.suggestion:
                lines.append(f"    Suggestion: {issue.suggestion}")
        lines.append("")
    return "\n".join(lines).rstrip("\n")


def print_validation_result(result: ValidationResult, title: str = "Validation") -> None:
    """Pretty-print *result* to the shared console as a Rich table."""
    if not result.issues:
        console.print(f"[bold green]✓ {title} passed[/bold green]")
        return

    table = Table(title=title, show_lines=True)
    table.add_column("Severity", style="bold", width=10)
    table.add_column("Validator", width=16)
    table.add_column("Location", width=36)
    table.add_column("Message")

    for issue in sorted(result.issues, key=lambda i: _SEVERITY_ORDER.index(i.severity)):
        style = _SEVERITY_STYLES[issue.severity]
        message = issue.message
        if issue.suggestion:
            message += f"\n[dim]Suggestion: {issue.suggestion}[/dim]"
        table.add_row(
            f"[{style}]{issue.severity.value.upper()}[/{style}]",
            issue.validator,
            _location(issue),
            message,
        )

    console.print(table)
    console.print(
        f"  Errors: {len(result.errors)}  |  Warnings: {len(result.warnings)}"
        f"  |  Info: {len(result.infos)}\n"
    )
