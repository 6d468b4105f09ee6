"""Flutter PWA Builder: generate offline-first Flutter PWA projects.

Projects are declared as data, extended by installable modules that
contribute templates and lifecycle hooks, rendered through a Handlebars-style
template engine and written to disk in a single transaction.

Key classes:
    ProjectEngine        - Create, update, generate and build projects
    ModuleRegistry       - Registered modules and per-project installations
    TemplateEngine       - Template catalog and renderer
    ValidationFramework  - Project and generated-code validators
    LocalFileSystem      - Disk backend (``MemoryFileSystem`` for tests)
"""

from .config import Config
from .errors import BuilderError
from .filesystem import LocalFileSystem, MemoryFileSystem
from .models import (
    GeneratedFile,
    LifecycleEvent,
    Module,
    ModuleConfig,
    ModuleDependency,
    ProjectDefinition,
    Template,
    TemplateContext,
    TemplateOutput,
)
from .modules import HookContext, ModuleRegistry
from .project import BuildResult, ProjectEngine
from .templating import TemplateEngine, adapt_for_flutter_version
from .validation import ValidationFramework, ValidationResult

__version__ = "0.1.0"

__all__ = [
    # Engine
    "BuildResult",
    "Config",
    "ProjectEngine",
    # Models
    "GeneratedFile",
    "LifecycleEvent",
    "Module",
    "ModuleConfig",
    "ModuleDependency",
    "ProjectDefinition",
    "Template",
    "TemplateContext",
    "TemplateOutput",
    # Subsystems
    "HookContext",
    "LocalFileSystem",
    "MemoryFileSystem",
    "ModuleRegistry",
    "TemplateEngine",
    "ValidationFramework",
    "ValidationResult",
    "adapt_for_flutter_version",
    # Errors
    "BuilderError",
]
