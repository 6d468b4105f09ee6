"""Module system: registry, dependency ordering and lifecycle hooks.

Key classes:
    ModuleRegistry      - Registered modules and per-project installations
    DependencyResolver  - Dependency-first ordering of module sets
    HookExecutor        - Sequential lifecycle hook dispatch
    HookContext         - Everything a hook receives
"""

from .hooks import HookContext, HookExecutor
from .registry import ModuleRegistry
from .resolver import DependencyResolver

__all__ = [
    # Registry
    "ModuleRegistry",
    "DependencyResolver",
    # Hooks
    "HookContext",
    "HookExecutor",
]
