"""Validation framework with the built-in project and Dart validators.

Key classes:
    ValidationFramework  - Validator registry and validate entry points
    Validator            - A named check bound to one target
    ValidationResult     - Aggregated issues plus the ``valid`` verdict
"""

from .framework import (
    Severity,
    ValidationFramework,
    ValidationInput,
    ValidationIssue,
    ValidationResult,
    ValidationTarget,
    Validator,
)
from .report import format_validation_result, print_validation_result

__all__ = [
    "Severity",
    "ValidationFramework",
    "ValidationInput",
    "ValidationIssue",
    "ValidationResult",
    "ValidationTarget",
    "Validator",
    "format_validation_result",
    "print_validation_result",
]
