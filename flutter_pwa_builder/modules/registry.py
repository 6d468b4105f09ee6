"""Module registry.

Holds every registered :class:`~flutter_pwa_builder.models.Module` and the
per-project installation records.  The registry only bookkeeps: it enforces
identity, conflict and dependency rules but never invokes lifecycle hooks.
That is left to the caller (see :class:`~flutter_pwa_builder.modules.hooks.HookExecutor`).
"""

from __future__ import annotations

from typing import Any, Optional

from flutter_pwa_builder.errors import (
    AlreadyInstalledError,
    ConflictError,
    DuplicateModuleError,
    InUseError,
    InvalidModuleError,
    MissingDependencyError,
    ModuleNotInstalledError,
    UnknownModuleError,
)
from flutter_pwa_builder.models import Module, ModuleConfig
from flutter_pwa_builder.utils import deep_merge


class ModuleRegistry:
    """Registered modules plus which project has which module installed.

    Modules are listed in registration order; a project's modules in
    installation order.
    """

    def __init__(self) -> None:
        self._modules: dict[str, Module] = {}
        self._installed: dict[str, list[ModuleConfig]] = {}

    # ------------------------------------------------------------------
    # Registration
    # ------------------------------------------------------------------

    def register(self, module: Module) -> None:
        """Add *module* to the registry.

        Raises:
            InvalidModuleError: If the id, name or version is empty.
            DuplicateModuleError: If a module with the same id is registered.
            ConflictError: If *module* and a registered module list each
                other (in either direction) as conflicting.
        """
        for field_name in ("id", "name", "version"):
            if not str(getattr(module, field_name) or "").strip():
                raise InvalidModuleError(module.id, f"module must have a {field_name}")
        if module.id in self._modules:
            raise DuplicateModuleError(module.id)
        for existing in self._modules.values():
            if module.id in existing.conflicts or existing.id in module.conflicts:
                raise ConflictError(module.id, existing.id)
        self._modules[module.id] = module

    def unregister(self, module_id: str) -> None:
        if module_id not in self._modules:
            raise UnknownModuleError(module_id)
        users = self.installed_projects(module_id)
        if users:
            raise InUseError(module_id, users)
        del self._modules[module_id]

    def get(self, module_id: str) -> Optional[Module]:
        return self._modules.get(module_id)

    def list(self) -> list[Module]:
        return list(self._modules.values())

    def __contains__(self, module_id: object) -> bool:
        return module_id in self._modules

    # ------------------------------------------------------------------
    # Installation
    # ------------------------------------------------------------------

    def install(
        self,
        project_id: str,
        module_id: str,
        config: Optional[dict[str, Any]] = None,
    ) -> ModuleConfig:
        """Record *module_id* as installed on *project_id*.

        The stored configuration is the module's ``default_config`` with
        *config* deep-merged over it.

        Raises:
            UnknownModuleError: If the module is not registered.
            AlreadyInstalledError: If the project already has the module.
            ConflictError: If the module conflicts, in either direction,
                with a module installed on the project.
            MissingDependencyError: If a non-optional dependency is not
                installed on the project.
        """
        module = self._modules.get(module_id)
        if module is None:
            raise UnknownModuleError(module_id)
        if self.is_installed(project_id, module_id):
            raise AlreadyInstalledError(project_id, module_id)

        for installed in self.get_installed(project_id):
            if installed.id in module.conflicts or module.id in installed.conflicts:
                raise ConflictError(module_id, installed.id, project_id)

        for dependency in module.dependencies:
            if not dependency.optional and not self.is_installed(project_id, dependency.id):
                raise MissingDependencyError(module_id, dependency.id, project_id)

        entry = ModuleConfig(
            id=module_id,
            enabled=True,
            config=deep_merge(module.default_config, config),
        )
        self._installed.setdefault(project_id, []).append(entry)
        return entry

    def uninstall(self, project_id: str, module_id: str) -> ModuleConfig:
        """Remove the installation record and return it.

        Raises:
            ModuleNotInstalledError: If the project does not have the module.
            InUseError: If another installed module requires it.
        """
        entry = self.installed_config(project_id, module_id)
        if entry is None:
            raise ModuleNotInstalledError(project_id, module_id)
        dependents = self.dependents(project_id, module_id)
        if dependents:
            raise InUseError(module_id, dependents, reason="required by")
        self._installed[project_id].remove(entry)
        return entry

    def dependents(self, project_id: str, module_id: str) -> list[str]:
        """Installed modules of *project_id* that require *module_id*."""
        return [
            module.id
            for module in self.get_installed(project_id)
            if module.id != module_id
            and any(d.id == module_id and not d.optional for d in module.dependencies)
        ]

    def get_installed(self, project_id: str) -> list[Module]:
        return [
            self._modules[entry.id]
            for entry in self._installed.get(project_id, [])
            if entry.id in self._modules
        ]

    def get_installed_configs(self, project_id: str) -> list[ModuleConfig]:
        return [entry.model_copy(deep=True) for entry in self._installed.get(project_id, [])]

    def installed_config(self, project_id: str, module_id: str) -> Optional[ModuleConfig]:
        return next(
            (entry for entry in self._installed.get(project_id, []) if entry.id == module_id),
            None,
        )

    def is_installed(self, project_id: str, module_id: str) -> bool:
        return self.installed_config(project_id, module_id) is not None

    def installed_projects(self, module_id: str) -> list[str]:
        return [
            project_id
            for project_id, entries in self._installed.items()
            if any(entry.id == module_id for entry in entries)
        ]

    def forget_project(self, project_id: str) -> None:
        """Drop every installation record of *project_id*."""
        self._installed.pop(project_id, None)
