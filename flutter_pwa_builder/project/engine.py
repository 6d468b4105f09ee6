"""Project engine: the façade over projects, modules and generation runs.

The engine owns the in-memory project store and wires the module registry,
template engine, validation framework and file system together.  Every
generation or build creates a fresh :class:`GenerationRun`; the engine only
sequences the build hooks around it.

Usage::

    engine = ProjectEngine(file_system=LocalFileSystem())
    engine.register_builtin_modules()
    project = await engine.create(name="my_pwa", modules=[{"id": "pwa"}])
    result = await engine.build(project.id, "./output/my_pwa")
"""

from __future__ import annotations

import time
from typing import Any, Iterable, Optional

from pydantic import BaseModel

from flutter_pwa_builder.config import Config
from flutter_pwa_builder.errors import (
    BuilderError,
    ConflictError,
    DuplicateProjectError,
    InUseError,
    MissingDependencyError,
    ModuleNotInstalledError,
    ProjectNotFoundError,
    UnknownModuleError,
    ValidationBlockedError,
)
from flutter_pwa_builder.filesystem.base import FileSystem
from flutter_pwa_builder.filesystem.local import LocalFileSystem
from flutter_pwa_builder.models import (
    GeneratedFile,
    LifecycleEvent,
    Module,
    ModuleConfig,
    ProjectDefinition,
)
from flutter_pwa_builder.modules.builtin import BUILTIN_MODULES
from flutter_pwa_builder.modules.hooks import HookExecutor
from flutter_pwa_builder.modules.registry import ModuleRegistry
from flutter_pwa_builder.modules.resolver import DependencyResolver
from flutter_pwa_builder.project.core_files import CORE_TEMPLATES
from flutter_pwa_builder.project.generation import BuildResult, GenerationRun
from flutter_pwa_builder.templating.engine import TemplateEngine
from flutter_pwa_builder.utils import deep_merge, print_step, utc_now_iso
from flutter_pwa_builder.validation.framework import (
    Severity,
    ValidationFramework,
    ValidationIssue,
    ValidationResult,
)

_IMMUTABLE_FIELDS = ("id", "created_at", "updated_at")
_MERGED_FIELDS = ("pwa", "offline")


class ProjectEngine:
    """Create, update, generate and build Flutter PWA projects.

    Collaborators default to fresh instances, so ``ProjectEngine()`` is a
    working engine writing to the local disk.  With ``verbose`` each step
    prints a dim progress line.
    """

    def __init__(
        self,
        file_system: Optional[FileSystem] = None,
        template_engine: Optional[TemplateEngine] = None,
        registry: Optional[ModuleRegistry] = None,
        validation: Optional[ValidationFramework] = None,
        config: Optional[Config] = None,
        verbose: Optional[bool] = None,
    ) -> None:
        self.config = config or Config()
        self.file_system = file_system or LocalFileSystem()
        self.template_engine = template_engine or TemplateEngine()
        self.registry = registry or ModuleRegistry()
        self.validation = validation or ValidationFramework()
        self.verbose = self.config.verbose if verbose is None else verbose
        self._on_step = print_step if self.verbose else None
        self.hooks = HookExecutor(
            self.registry, self.file_system, self.template_engine, on_step=self._on_step
        )
        self.resolver = DependencyResolver(self.registry)
        self._projects: dict[str, ProjectDefinition] = {}

        for template in CORE_TEMPLATES:
            if template.id not in self.template_engine:
                self.template_engine.register(template)

    # ------------------------------------------------------------------
    # Module catalog
    # ------------------------------------------------------------------

    def register_module(self, module: Module) -> None:
        """Register *module* and its templates as one step.

        If a template fails to register, the module and the templates
        registered so far are removed again.
        """
        self.registry.register(module)
        registered: list[str] = []
        try:
            for template in module.templates:
                self.template_engine.register(template)
                registered.append(template.id)
        except BuilderError:
            for template_id in registered:
                self.template_engine.unregister(template_id)
            self.registry.unregister(module.id)
            raise

    def unregister_module(self, module_id: str) -> None:
        module = self.registry.get(module_id)
        if module is None:
            raise UnknownModuleError(module_id)
        self.registry.unregister(module_id)
        for template in module.templates:
            if template.id in self.template_engine:
                self.template_engine.unregister(template.id)

    def register_builtin_modules(self, module_ids: Optional[Iterable[str]] = None) -> list[str]:
        """Register built-in modules, by default those listed in the config."""
        ids = list(self.config.builtin_modules if module_ids is None else module_ids)
        for module_id in ids:
            factory = BUILTIN_MODULES.get(module_id)
            if factory is None:
                raise UnknownModuleError(module_id)
            if module_id not in self.registry:
                self.register_module(factory())
        return ids

    async def install_module(
        self,
        project_id: str,
        module_id: str,
        config: Optional[dict[str, Any]] = None,
    ) -> ModuleConfig:
        """Install a module on a stored project and run its install hook."""
        project = self._require(project_id)
        entry = self.registry.install(project_id, module_id, config)
        module = self.registry.get(module_id)
        try:
            await self.hooks.on_install(project, module)
        except BaseException:
            self.registry.uninstall(project_id, module_id)
            raise
        modules = [m for m in project.modules if m.id != module_id]
        modules.append(ModuleConfig(id=module_id, enabled=True, config=dict(config or {})))
        self._projects[project_id] = project.model_copy(
            update={"modules": modules, "updated_at": utc_now_iso()}
        )
        return entry

    async def uninstall_module(self, project_id: str, module_id: str) -> None:
        """Run a module's uninstall hook, then remove it from the project."""
        project = self._require(project_id)
        await self._uninstall(project, [module_id])
        self._projects[project_id] = project.model_copy(
            update={
                "modules": [m for m in project.modules if m.id != module_id],
                "updated_at": utc_now_iso(),
            }
        )

    # ------------------------------------------------------------------
    # Project store
    # ------------------------------------------------------------------

    async def create(self, **fields: Any) -> ProjectDefinition:
        """Create, validate and store a project, then install its modules.

        Enabled modules are installed in dependency order.  If validation
        reports an error or an install fails, nothing is stored.

        Raises:
            ValidationBlockedError: If the definition has error issues.
            DuplicateProjectError: If the id is already used.
        """
        if self.config.default_flutter_version and not fields.get("flutter_version"):
            fields["flutter_version"] = self.config.default_flutter_version
        project = ProjectDefinition.model_validate(fields)
        if project.id in self._projects:
            raise DuplicateProjectError(project.id)

        result = await self.validation.validate_project(project)
        if result.errors:
            raise ValidationBlockedError(result, subject=project.name)

        enabled = [entry for entry in project.modules if entry.enabled]
        self._check_install(project.id, enabled, [])

        self._projects[project.id] = project
        try:
            await self._install(project, enabled)
        except BaseException:
            self.registry.forget_project(project.id)
            del self._projects[project.id]
            raise
        return project

    def get(self, project_id: str) -> Optional[ProjectDefinition]:
        return self._projects.get(project_id)

    def list(self) -> list[ProjectDefinition]:
        return list(self._projects.values())

    async def update(self, project_id: str, **changes: Any) -> ProjectDefinition:
        """Apply *changes* to a stored project.

        ``id`` and ``created_at`` never change.  ``pwa`` and ``offline`` are
        deep-merged; other fields are replaced.  When ``modules`` changes,
        modules no longer enabled are uninstalled and newly enabled ones
        installed, with their hooks.  New modules are checked against the
        post-update module set before anything is uninstalled; if a hook
        still fails, the previous installation records are restored and the
        stored project is left unchanged.
        """
        existing = self._require(project_id)
        data = existing.model_dump()
        for key, value in changes.items():
            if key in _IMMUTABLE_FIELDS:
                continue
            if isinstance(value, BaseModel):
                value = value.model_dump(exclude_unset=True)
            if key in _MERGED_FIELDS and isinstance(value, dict):
                data[key] = deep_merge(data[key], value)
            else:
                data[key] = value
        data["updated_at"] = utc_now_iso()
        updated = ProjectDefinition.model_validate(data)

        if "modules" in changes:
            wanted = [entry for entry in updated.modules if entry.enabled]
            wanted_ids = {entry.id for entry in wanted}
            previous = self.registry.get_installed_configs(project_id)
            installed_ids = [entry.id for entry in previous]
            kept = [module_id for module_id in installed_ids if module_id in wanted_ids]
            added = [entry for entry in wanted if entry.id not in installed_ids]
            self._check_install(project_id, added, kept)
            try:
                await self._uninstall(
                    updated, [module_id for module_id in installed_ids if module_id not in wanted_ids]
                )
                await self._install(updated, added)
            except BaseException:
                self.registry.forget_project(project_id)
                for entry in previous:
                    self.registry.install(project_id, entry.id, entry.config)
                raise

        self._projects[project_id] = updated
        return updated

    async def delete(self, project_id: str) -> None:
        """Uninstall every module (dependents first) and forget the project."""
        project = self._require(project_id)
        installed = [module.id for module in self.registry.get_installed(project_id)]
        await self._uninstall(project, installed)
        self.registry.forget_project(project_id)
        del self._projects[project_id]

    # ------------------------------------------------------------------
    # Generation
    # ------------------------------------------------------------------

    def new_run(self, project_id: str) -> GenerationRun:
        """Create a generation run for a stored project."""
        return GenerationRun(
            project=self._require(project_id),
            registry=self.registry,
            template_engine=self.template_engine,
            file_system=self.file_system,
            validation=self.validation,
            hooks=self.hooks,
            on_step=self._on_step,
        )

    async def generate(self, project_id: str) -> list[GeneratedFile]:
        """Collect every file of the project without touching the file system."""
        run = self.new_run(project_id)
        run.resolve_modules()
        return list(await run.collect())

    async def validate(self, project_id: str) -> ValidationResult:
        """Validate a stored project and the targets of its modules."""
        project = self._require(project_id)
        result = await self.validation.validate_project(project)
        issues = list(result.issues)
        for module in self.registry.get_installed(project_id):
            if not set(module.compatible_targets) & set(project.targets):
                issues.append(ValidationIssue(
                    validator="module-targets",
                    severity=Severity.WARNING,
                    message=(
                        f"Module {module.id} supports none of the project targets "
                        f"({', '.join(t.value for t in project.targets)})"
                    ),
                ))
        return ValidationResult.from_issues(issues)

    async def build(
        self,
        project_id: str,
        output_path: Optional[str] = None,
        *,
        validate: Optional[bool] = None,
        force: Optional[bool] = None,
        dry_run: bool = False,
    ) -> BuildResult:
        """Generate, validate and commit a project in one transaction.

        Args:
            project_id: Stored project to build.
            output_path: Target directory; defaults to
                ``config.output_dir / project.name``.
            validate: Validate before committing; defaults to
                ``config.validate_before_commit``.
            force: Commit despite validation errors; defaults to
                ``config.force_write``.
            dry_run: Stop after validation and write nothing.

        Raises:
            ValidationBlockedError: If validation fails and *force* is off.
            TransactionError: If the commit fails; nothing is left written.
        """
        started = time.monotonic()
        project = self._require(project_id)
        output = str(output_path) if output_path is not None else str(
            self.config.project_output(project.name)
        )
        validate = self.config.validate_before_commit if validate is None else validate
        force = self.config.force_write if force is None else force

        run = self.new_run(project_id)
        modules = run.resolve_modules()
        await self.hooks.run(LifecycleEvent.BEFORE_BUILD, project, modules)
        files = await run.collect()
        validation = await run.validate(force=force) if validate else None

        committed = False
        if not dry_run:
            await run.commit(output)
            committed = True
            await self.hooks.run(LifecycleEvent.AFTER_BUILD, project, modules, files)

        return BuildResult(
            project_id=project.id,
            output_path=output,
            files=[file.path for file in files],
            validation=validation,
            dry_run=dry_run,
            committed=committed,
            duration_seconds=time.monotonic() - started,
        )

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _require(self, project_id: str) -> ProjectDefinition:
        project = self._projects.get(project_id)
        if project is None:
            raise ProjectNotFoundError(project_id)
        return project

    def _check_install(
        self, project_id: str, entries: list[ModuleConfig], kept: list[str]
    ) -> list[Module]:
        """Resolve *entries* and check them against the *kept* modules.

        Raises the error the registry would raise on install, before any
        module or hook is touched.
        """
        modules = self.resolver.resolve(entry.id for entry in entries)
        final_ids = [*kept, *(module.id for module in modules)]

        satisfied, missing = self.resolver.check_dependencies(final_ids)
        if not satisfied:
            for module in modules:
                for dependency in module.dependencies:
                    if not dependency.optional and dependency.id in missing:
                        raise MissingDependencyError(module.id, dependency.id, project_id)

        for index, module in enumerate(modules):
            for other_id in final_ids[: len(kept) + index]:
                other = self.registry.get(other_id)
                if other_id in module.conflicts or (other is not None and module.id in other.conflicts):
                    raise ConflictError(module.id, other_id, project_id)
        return modules

    async def _install(self, project: ProjectDefinition, entries: list[ModuleConfig]) -> None:
        configs = {entry.id: entry.config for entry in entries}
        for module in self.resolver.resolve(configs):
            self.registry.install(project.id, module.id, configs[module.id])
            await self.hooks.on_install(project, module)

    async def _uninstall(self, project: ProjectDefinition, module_ids: list[str]) -> None:
        """Uninstall *module_ids* in reverse installation order.

        Every removal is checked up front so a refused uninstall leaves all
        modules and hooks untouched.
        """
        removing = set(module_ids)
        for module_id in module_ids:
            if not self.registry.is_installed(project.id, module_id):
                raise ModuleNotInstalledError(project.id, module_id)
            blockers = [
                dependent
                for dependent in self.registry.dependents(project.id, module_id)
                if dependent not in removing
            ]
            if blockers:
                raise InUseError(module_id, blockers, reason="required by")

        installed = [module.id for module in self.registry.get_installed(project.id)]
        for module_id in reversed(installed):
            if module_id not in removing:
                continue
            await self.hooks.on_uninstall(project, self.registry.get(module_id))
            self.registry.uninstall(project.id, module_id)
