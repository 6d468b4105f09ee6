"""Exception hierarchy for the Flutter PWA Builder.

Every failure the core can report derives from :class:`BuilderError` and
carries the offending ids or paths as attributes so callers (the CLI, an RPC
façade, tests) can act on them without parsing messages.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Iterable

if TYPE_CHECKING:
    from flutter_pwa_builder.validation.framework import ValidationResult


class BuilderError(Exception):
    """Base class for every error raised by the builder core."""


# ---------------------------------------------------------------------------
# Identity errors
# ---------------------------------------------------------------------------


class DuplicateIdError(BuilderError):
    """Raised when an id-bearing entity is registered twice."""

    kind = "entity"

    def __init__(self, identifier: str) -> None:
        self.identifier = identifier
        super().__init__(f"{self.kind.capitalize()} already registered: {identifier}")


class DuplicateModuleError(DuplicateIdError):
    kind = "module"


class DuplicateTemplateError(DuplicateIdError):
    kind = "template"


class DuplicateProjectError(DuplicateIdError):
    kind = "project"


class AlreadyInstalledError(DuplicateIdError):
    """Raised when a module is installed twice on the same project."""

    kind = "module"

    def __init__(self, project_id: str, module_id: str) -> None:
        self.project_id = project_id
        self.identifier = module_id
        BuilderError.__init__(
            self, f"Module {module_id} is already installed in project {project_id}"
        )


class NotFoundError(BuilderError):
    """Raised when an unknown module, template or project is referenced."""

    kind = "entity"

    def __init__(self, identifier: str) -> None:
        self.identifier = identifier
        super().__init__(f"{self.kind.capitalize()} not found: {identifier}")


class UnknownModuleError(NotFoundError):
    kind = "module"


class TemplateNotFoundError(NotFoundError):
    kind = "template"


class ProjectNotFoundError(NotFoundError):
    kind = "project"


class ModuleNotInstalledError(NotFoundError):
    """Raised when uninstalling a module the project does not have."""

    kind = "module"

    def __init__(self, project_id: str, module_id: str) -> None:
        self.project_id = project_id
        self.identifier = module_id
        BuilderError.__init__(
            self, f"Module {module_id} is not installed in project {project_id}"
        )


# ---------------------------------------------------------------------------
# Module graph errors
# ---------------------------------------------------------------------------


class InvalidModuleError(BuilderError):
    """Raised when a module manifest is missing mandatory fields."""

    def __init__(self, module_id: str, reason: str) -> None:
        self.module_id = module_id
        self.reason = reason
        super().__init__(f"Invalid module {module_id or '<unnamed>'}: {reason}")


class ConflictError(BuilderError):
    """Raised when two mutually exclusive modules would coexist."""

    def __init__(self, module_id: str, other_id: str, project_id: str | None = None) -> None:
        self.module_id = module_id
        self.other_id = other_id
        self.project_id = project_id
        if project_id is None:
            message = f"Module {module_id} conflicts with existing module {other_id}"
        else:
            message = (
                f"Module {module_id} conflicts with installed module {other_id} "
                f"in project {project_id}"
            )
        super().__init__(message)


class MissingDependencyError(BuilderError):
    """Raised when a required module dependency is not installed."""

    def __init__(self, module_id: str, dependency_id: str, project_id: str) -> None:
        self.module_id = module_id
        self.dependency_id = dependency_id
        self.project_id = project_id
        super().__init__(
            f"Module {module_id} requires {dependency_id} which is not installed "
            f"in project {project_id}"
        )


class InUseError(BuilderError):
    """Raised when removing a module that something still relies on."""

    def __init__(self, module_id: str, users: Iterable[str], reason: str = "installed in") -> None:
        self.module_id = module_id
        self.users = sorted(users)
        super().__init__(
            f"Module {module_id} is still in use: {reason} {', '.join(self.users)}"
        )


class CircularDependencyError(BuilderError):
    def __init__(self, module_id: str) -> None:
        self.module_id = module_id
        super().__init__(f"Circular dependency detected: {module_id}")


class HookError(BuilderError):
    """Raised when a module lifecycle hook fails with a non-builder error."""

    def __init__(self, module_id: str, event: str, message: str) -> None:
        self.module_id = module_id
        self.event = event
        super().__init__(f"Hook {event} of module {module_id} failed: {message}")


# ---------------------------------------------------------------------------
# Template errors
# ---------------------------------------------------------------------------


class InvalidTemplateError(BuilderError):
    """Raised when a template's output descriptor is unusable."""

    def __init__(self, template_id: str, reason: str) -> None:
        self.template_id = template_id
        self.reason = reason
        super().__init__(f"Invalid template {template_id}: {reason}")


class TemplateSyntaxError(BuilderError):
    """Raised when template source cannot be compiled."""

    def __init__(self, message: str, source: str = "", template_id: str | None = None) -> None:
        self.template_id = template_id
        self.source = source
        prefix = f"Template {template_id}: " if template_id else ""
        super().__init__(f"{prefix}{message}")


class TemplateRenderError(BuilderError):
    """Raised when a compiled template fails while rendering."""

    def __init__(self, message: str, template_id: str | None = None) -> None:
        self.template_id = template_id
        prefix = f"Template {template_id}: " if template_id else ""
        super().__init__(f"{prefix}{message}")


# ---------------------------------------------------------------------------
# Generation / commit errors
# ---------------------------------------------------------------------------


class FileConflictError(BuilderError):
    """Raised when two producers emit the same output path in one run."""

    def __init__(self, path: str, first_owner: str, second_owner: str) -> None:
        self.path = path
        self.owners = (first_owner, second_owner)
        super().__init__(
            f"Output path {path} is produced by both {first_owner} and {second_owner}"
        )


class ValidationBlockedError(BuilderError):
    """Raised when error-severity validation issues block a commit."""

    def __init__(self, result: "ValidationResult", subject: str = "project") -> None:
        self.result = result
        self.subject = subject
        errors = [issue.message for issue in result.errors]
        super().__init__(f"Validation failed for {subject}: {', '.join(errors)}")


class TransactionError(BuilderError):
    """Raised on a failed commit or on misuse of a transaction."""

    def __init__(self, message: str, path: str | None = None) -> None:
        self.path = path
        super().__init__(message)


class GenerationStateError(BuilderError):
    """Raised when a generation run is driven out of order."""

    def __init__(self, current: str, requested: str) -> None:
        self.current = current
        self.requested = requested
        super().__init__(f"Cannot move generation run from {current} to {requested}")
