"""One generation run: collect, check and commit a project's files.

A :class:`GenerationRun` walks a fixed sequence of states::

    INITIALIZED -> MODULES_RESOLVED -> HOOKS_RUNNING -> FILES_COLLECTED
        -> VALIDATED -> COMMITTED

Validation is optional, so ``FILES_COLLECTED -> COMMITTED`` is allowed too.
Any failure moves the run to ``ROLLED_BACK``; nothing touches the file
system before the single commit transaction, so a failed run leaves no
partial output behind.
"""

from __future__ import annotations

import posixpath
from enum import Enum
from typing import TYPE_CHECKING, Callable, Iterable, Optional

from pydantic import BaseModel, Field

from flutter_pwa_builder.errors import (
    FileConflictError,
    GenerationStateError,
    HookError,
    TransactionError,
    ValidationBlockedError,
)
from flutter_pwa_builder.models import (
    GeneratedFile,
    LifecycleEvent,
    Module,
    ProjectDefinition,
    TemplateContext,
)
from flutter_pwa_builder.project.core_files import render_core_files
from flutter_pwa_builder.templating.flutter_adapter import adapt_for_flutter_version
from flutter_pwa_builder.utils import normalize_relative_path
from flutter_pwa_builder.validation.framework import ValidationResult

if TYPE_CHECKING:
    from flutter_pwa_builder.filesystem.base import FileSystem, Transaction
    from flutter_pwa_builder.modules.hooks import HookExecutor
    from flutter_pwa_builder.modules.registry import ModuleRegistry
    from flutter_pwa_builder.templating.engine import TemplateEngine
    from flutter_pwa_builder.validation.framework import ValidationFramework


class RunState(str, Enum):
    INITIALIZED = "initialized"
    MODULES_RESOLVED = "modules_resolved"
    HOOKS_RUNNING = "hooks_running"
    FILES_COLLECTED = "files_collected"
    VALIDATED = "validated"
    COMMITTED = "committed"
    ROLLED_BACK = "rolled_back"


_TRANSITIONS: dict[RunState, frozenset[RunState]] = {
    RunState.INITIALIZED: frozenset({RunState.MODULES_RESOLVED}),
    RunState.MODULES_RESOLVED: frozenset({RunState.HOOKS_RUNNING}),
    RunState.HOOKS_RUNNING: frozenset({RunState.FILES_COLLECTED}),
    RunState.FILES_COLLECTED: frozenset({RunState.VALIDATED, RunState.COMMITTED}),
    RunState.VALIDATED: frozenset({RunState.COMMITTED}),
    RunState.COMMITTED: frozenset(),
    RunState.ROLLED_BACK: frozenset(),
}


class BuildResult(BaseModel):
    """Outcome of :meth:`ProjectEngine.build`."""

    project_id: str
    output_path: str
    files: list[str] = Field(default_factory=list, description="Relative paths of generated files")
    validation: Optional[ValidationResult] = Field(default=None)
    dry_run: bool = Field(default=False)
    committed: bool = Field(default=False)
    duration_seconds: float = Field(default=0.0)


class GenerationRun:
    """Drives one project through generation, validation and commit.

    Args:
        project: The project to generate.
        registry: Source of the project's installed modules.
        template_engine: Renders core and module templates.
        file_system: Target of the commit transaction.
        validation: Framework used by :meth:`validate`.
        hooks: Dispatches module lifecycle hooks.
        on_step: Optional callback receiving one line per step.
    """

    def __init__(
        self,
        project: ProjectDefinition,
        registry: ModuleRegistry,
        template_engine: TemplateEngine,
        file_system: FileSystem,
        validation: ValidationFramework,
        hooks: HookExecutor,
        on_step: Optional[Callable[[str], None]] = None,
    ) -> None:
        self.project = project
        self.registry = registry
        self.template_engine = template_engine
        self.file_system = file_system
        self.validation = validation
        self.hooks = hooks
        self._on_step = on_step
        self._state = RunState.INITIALIZED
        self._modules: list[Module] = []
        self._files: tuple[GeneratedFile, ...] = ()
        self._transaction: Optional[Transaction] = None
        self.validation_result: Optional[ValidationResult] = None

    # -- State ---------------------------------------------------------------

    @property
    def state(self) -> RunState:
        return self._state

    @property
    def modules(self) -> list[Module]:
        return list(self._modules)

    @property
    def files(self) -> tuple[GeneratedFile, ...]:
        return self._files

    def _check(self, target: RunState) -> None:
        if target not in _TRANSITIONS[self._state]:
            raise GenerationStateError(self._state.value, target.value)

    def _advance(self, target: RunState) -> None:
        self._check(target)
        self._state = target

    def _step(self, message: str) -> None:
        if self._on_step is not None:
            self._on_step(message)

    # -- Steps ---------------------------------------------------------------

    def resolve_modules(self) -> list[Module]:
        """Load the project's installed modules in installation order."""
        self._check(RunState.MODULES_RESOLVED)
        self._modules = self.registry.get_installed(self.project.id)
        self._advance(RunState.MODULES_RESOLVED)
        self._step(f"Resolved {len(self._modules)} module(s)")
        return self.modules

    async def collect(self) -> tuple[GeneratedFile, ...]:
        """Run the generate hooks and gather every file of the project.

        Core files come first, then each module's hook output, declared
        templates and static assets.  A path produced twice raises
        :class:`FileConflictError`.
        """
        self._advance(RunState.HOOKS_RUNNING)
        try:
            await self.hooks.run(LifecycleEvent.BEFORE_GENERATE, self.project, self._modules)

            self._step("Rendering core files")
            collected = render_core_files(self.template_engine, self.project)
            for module in self._modules:
                collected.extend(await self.hooks.on_generate(self.project, [module]))
                collected.extend(self._render_module_templates(module))
                collected.extend(await self._load_assets(module))
            files = _merge(collected)

            await self.hooks.run(
                LifecycleEvent.AFTER_GENERATE, self.project, self._modules, files
            )
            if self.project.flutter_version:
                self._step(f"Adapting Dart sources for Flutter {self.project.flutter_version}")
                files = tuple(_adapt(file, self.project.flutter_version) for file in files)
        except Exception:
            self._state = RunState.ROLLED_BACK
            raise

        self._files = files
        self._advance(RunState.FILES_COLLECTED)
        self._step(f"Collected {len(files)} file(s)")
        return files

    async def validate(self, force: bool = False) -> ValidationResult:
        """Validate the project and every collected file.

        Raises:
            ValidationBlockedError: If any issue is an error and *force* is
                false; the run is rolled back.
        """
        self._check(RunState.VALIDATED)
        results = [await self.validation.validate_project(self.project)]
        for file in self._files:
            results.append(await self.validation.validate_code(file.path, file.content))
        result = ValidationResult.combine(results)
        self.validation_result = result

        if result.errors and not force:
            self._state = RunState.ROLLED_BACK
            raise ValidationBlockedError(result, subject=self.project.name)
        self._advance(RunState.VALIDATED)
        self._step(
            f"Validation: {len(result.errors)} error(s), {len(result.warnings)} warning(s)"
        )
        return result

    def begin_transaction(self) -> Transaction:
        """Open the run's single transaction.

        Raises:
            TransactionError: If the run already opened one.
        """
        if self._transaction is not None:
            raise TransactionError("Generation run already has a transaction")
        self._transaction = self.file_system.begin_transaction()
        return self._transaction

    async def commit(self, output_path: str) -> list[str]:
        """Write every collected file under *output_path* in one transaction.

        Returns:
            The written paths, relative to *output_path*.
        """
        self._check(RunState.COMMITTED)
        transaction = self.begin_transaction()
        try:
            for file in self._files:
                target = posixpath.join(output_path, file.path) if output_path else file.path
                transaction.write(target, file.content)
            await transaction.commit()
        except TransactionError:
            self._state = RunState.ROLLED_BACK
            raise
        except Exception as exc:
            self._state = RunState.ROLLED_BACK
            raise TransactionError(f"Commit failed: {exc}") from exc

        self._advance(RunState.COMMITTED)
        self._step(f"Committed {len(self._files)} file(s) to {output_path or '.'}")
        return [file.path for file in self._files]

    # -- Internals -------------------------------------------------------------

    async def _load_assets(self, module: Module) -> list[GeneratedFile]:
        """Read *module*'s static assets from the file system as output files."""
        files: list[GeneratedFile] = []
        for asset in module.assets:
            try:
                if asset.type != "directory":
                    content = await self.file_system.read(asset.src)
                    files.append(GeneratedFile(path=asset.dest, content=content, module=module.id))
                    continue
                root = (await self.file_system.stat(asset.src)).path
                for entry in await self.file_system.list(asset.src, "**"):
                    if (await self.file_system.stat(entry)).is_directory:
                        continue
                    relative = entry[len(root) :].replace("\\", "/").lstrip("/")
                    files.append(
                        GeneratedFile(
                            path=posixpath.join(asset.dest, relative),
                            content=await self.file_system.read(entry),
                            module=module.id,
                        )
                    )
            except OSError as exc:
                raise HookError(
                    module.id,
                    LifecycleEvent.ON_GENERATE.value,
                    f"cannot copy asset {asset.src!r}: {exc}",
                ) from exc
        return files

    def _render_module_templates(self, module: Module) -> list[GeneratedFile]:
        context = TemplateContext(
            project=self.project,
            module=module,
            data=self.hooks.effective_config(self.project, module),
        )
        files: list[GeneratedFile] = []
        for template in module.templates:
            rendered = self.template_engine.render_template(template, context)
            if rendered is not None:
                files.append(
                    GeneratedFile(path=rendered.path, content=rendered.content, module=module.id)
                )
        return files


def _merge(files: Iterable[GeneratedFile]) -> tuple[GeneratedFile, ...]:
    """Normalise paths and reject any path claimed by two producers."""
    merged: dict[str, GeneratedFile] = {}
    for file in files:
        owner = file.module or "unknown"
        path = normalize_relative_path(file.path)
        if path is None:
            raise HookError(
                owner, LifecycleEvent.ON_GENERATE.value, f"invalid output path: {file.path!r}"
            )
        if path in merged:
            raise FileConflictError(path, merged[path].module or "unknown", owner)
        merged[path] = file if path == file.path else file.model_copy(update={"path": path})
    return tuple(merged.values())


def _adapt(file: GeneratedFile, flutter_version: str) -> GeneratedFile:
    if not file.path.endswith(".dart"):
        return file
    adapted = adapt_for_flutter_version(file.content, flutter_version)
    if adapted == file.content:
        return file
    return file.model_copy(update={"content": adapted})
