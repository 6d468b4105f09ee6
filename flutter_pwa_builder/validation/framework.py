"""Validation framework.

Validators are registered per target (project, code, ...) and optionally
scoped to file paths by glob patterns.  :meth:`ValidationFramework.validate`
runs every applicable validator and folds their issues into one
:class:`ValidationResult`; a validator that raises is reported as an
error-severity issue instead of aborting the run.
"""

from __future__ import annotations

import inspect
from enum import Enum
from typing import Any, Awaitable, Callable, Iterable, Optional, Union

from pydantic import BaseModel, Field

from flutter_pwa_builder.models import ProjectDefinition
from flutter_pwa_builder.utils import glob_match


# ---------------------------------------------------------------------------
# Data Models
# ---------------------------------------------------------------------------

class Severity(str, Enum):
    ERROR = "error"
    WARNING = "warning"
    INFO = "info"


class ValidationTarget(str, Enum):
    PROJECT = "project"
    MODULE = "module"
    FILE = "file"
    CODE = "code"
    CONFIG = "config"


class ValidationIssue(BaseModel):
    """A single problem reported by a validator."""

    validator: str = Field(..., description="Id of the reporting validator")
    severity: Severity
    message: str = Field(..., description="Human-readable description of the issue")
    file: Optional[str] = Field(default=None, description="Relative path of the offending file")
    line: Optional[int] = Field(default=None, description="1-based line number")
    column: Optional[int] = Field(default=None)
    suggestion: Optional[str] = Field(default=None, description="Suggested fix")


class ValidationInput(BaseModel):
    """What is being validated: a target kind, its content and optional path."""

    target: ValidationTarget
    content: Any = Field(default=None)
    path: Optional[str] = Field(default=None)


class ValidationResult(BaseModel):
    """Aggregated outcome; ``valid`` is false when any issue is an error."""

    valid: bool = Field(default=True)
    issues: list[ValidationIssue] = Field(default_factory=list)

    @classmethod
    def from_issues(cls, issues: Iterable[ValidationIssue]) -> "ValidationResult":
        collected = list(issues)
        return cls(
            valid=not any(issue.severity == Severity.ERROR for issue in collected),
            issues=collected,
        )

    @classmethod
    def combine(cls, results: Iterable["ValidationResult"]) -> "ValidationResult":
        return cls.from_issues(issue for result in results for issue in result.issues)

    @property
    def errors(self) -> list[ValidationIssue]:
        return [issue for issue in self.issues if issue.severity == Severity.ERROR]

    @property
    def warnings(self) -> list[ValidationIssue]:
        return [issue for issue in self.issues if issue.severity == Severity.WARNING]

    @property
    def infos(self) -> list[ValidationIssue]:
        return [issue for issue in self.issues if issue.severity == Severity.INFO]


CheckResult = Union[ValidationResult, Iterable[ValidationIssue]]
CheckFn = Callable[[ValidationInput], Union[CheckResult, Awaitable[CheckResult]]]


class Validator(BaseModel):
    """A named check bound to one validation target.

    ``check`` may be sync or async and may return either a
    :class:`ValidationResult` or a plain iterable of issues.  ``patterns``
    restricts the validator to inputs whose path matches one of the globs;
    inputs without a path are always checked.
    """

    id: str = Field(..., min_length=1)
    name: str = Field(default="")
    target: ValidationTarget
    severity: Severity = Field(default=Severity.ERROR, description="Default severity")
    patterns: list[str] = Field(default_factory=list)
    check: CheckFn = Field(..., exclude=True)

    def applies_to(self, data: ValidationInput) -> bool:
        if self.target != data.target:
            return False
        if self.patterns and data.path:
            return any(glob_match(pattern, data.path) for pattern in self.patterns)
        return True

    async def run(self, data: ValidationInput) -> list[ValidationIssue]:
        result = self.check(data)
        if inspect.isawaitable(result):
            result = await result
        if isinstance(result, ValidationResult):
            return list(result.issues)
        return list(result or [])


# ---------------------------------------------------------------------------
# ValidationFramework
# ---------------------------------------------------------------------------


class ValidationFramework:
    """Registry of validators plus the validate entry points.

    Args:
        builtin: Register the built-in project and Dart validators.
    """

    def __init__(self, builtin: bool = True) -> None:
        self._validators: dict[str, Validator] = {}
        if builtin:
            from flutter_pwa_builder.validation.builtin import builtin_validators

            for validator in builtin_validators():
                self.register(validator)

    def register(self, validator: Validator) -> None:
        """Register (or replace) *validator* under its id."""
        self._validators[validator.id] = validator

    def unregister(self, validator_id: str) -> None:
        self._validators.pop(validator_id, None)

    def get(self, validator_id: str) -> Optional[Validator]:
        return self._validators.get(validator_id)

    def list(self) -> list[Validator]:
        return list(self._validators.values())

    async def validate(self, data: ValidationInput) -> ValidationResult:
        """Run every validator applicable to *data*, in registration order."""
        issues: list[ValidationIssue] = []
        for validator in list(self._validators.values()):
            if not validator.applies_to(data):
                continue
            try:
                issues.extend(await validator.run(data))
            except Exception as exc:
                issues.append(
                    ValidationIssue(
                        validator=validator.id,
                        severity=Severity.ERROR,
                        message=f"Validator error: {exc}",
                        file=data.path,
                    )
                )
        return ValidationResult.from_issues(issues)

    async def validate_project(self, project: ProjectDefinition) -> ValidationResult:
        return await self.validate(
            ValidationInput(target=ValidationTarget.PROJECT, content=project)
        )

    async def validate_code(self, path: str, content: str) -> ValidationResult:
        return await self.validate(
            ValidationInput(target=ValidationTarget.CODE, content=content, path=path)
        )
