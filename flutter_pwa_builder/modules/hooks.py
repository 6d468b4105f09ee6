"""Lifecycle hook execution.

The :class:`HookExecutor` builds a :class:`HookContext` for each module and
dispatches lifecycle events sequentially, awaiting each hook before the next
one starts.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Callable, Iterable, Mapping, Optional

from pydantic import ValidationError

from flutter_pwa_builder.errors import BuilderError, HookError
from flutter_pwa_builder.models import (
    GeneratedFile,
    LifecycleEvent,
    Module,
    ProjectDefinition,
)
from flutter_pwa_builder.utils import deep_merge

if TYPE_CHECKING:
    from flutter_pwa_builder.filesystem.base import FileSystem
    from flutter_pwa_builder.modules.registry import ModuleRegistry
    from flutter_pwa_builder.templating.engine import TemplateEngine


@dataclass
class HookContext:
    """Everything a lifecycle hook may use.

    ``config`` is the module's effective configuration for the project
    (its defaults deep-merged with the project's overrides).  ``files`` holds
    the files collected so far and is only populated for ``after_generate``.
    """

    project: ProjectDefinition
    module: Module
    config: dict[str, Any]
    file_system: FileSystem
    template_engine: TemplateEngine
    files: tuple[GeneratedFile, ...] = field(default_factory=tuple)


class HookExecutor:
    """Runs module lifecycle hooks one after another."""

    def __init__(
        self,
        registry: ModuleRegistry,
        file_system: FileSystem,
        template_engine: TemplateEngine,
        on_step: Optional[Callable[[str], None]] = None,
    ) -> None:
        self.registry = registry
        self.file_system = file_system
        self.template_engine = template_engine
        self._on_step = on_step

    def effective_config(self, project: ProjectDefinition, module: Module) -> dict[str, Any]:
        installed = self.registry.installed_config(project.id, module.id)
        if installed is not None:
            return deep_merge({}, installed.config)
        entry = project.module_config(module.id)
        return deep_merge(module.default_config, entry.config if entry else None)

    def create_context(
        self,
        project: ProjectDefinition,
        module: Module,
        files: Iterable[GeneratedFile] = (),
    ) -> HookContext:
        return HookContext(
            project=project,
            module=module,
            config=self.effective_config(project, module),
            file_system=self.file_system,
            template_engine=self.template_engine,
            files=tuple(files),
        )

    async def dispatch(
        self,
        event: LifecycleEvent,
        project: ProjectDefinition,
        module: Module,
        files: Iterable[GeneratedFile] = (),
    ) -> Any:
        """Run one module's handler for *event*.

        Builder errors propagate unchanged; anything else is wrapped in a
        :class:`HookError` naming the module and event.
        """
        if not module.implements(event):
            return None
        if self._on_step is not None:
            self._on_step(f"{event.value}: {module.id}")
        ctx = self.create_context(project, module, files)
        try:
            return await module.dispatch(event, ctx)
        except BuilderError:
            raise
        except Exception as exc:
            raise HookError(module.id, event.value, str(exc)) from exc

    async def run(
        self,
        event: LifecycleEvent,
        project: ProjectDefinition,
        modules: Iterable[Module],
        files: Iterable[GeneratedFile] = (),
    ) -> list[Any]:
        """Dispatch *event* to each module in order and collect the results."""
        frozen = tuple(files)
        results = []
        for module in modules:
            results.append(await self.dispatch(event, project, module, frozen))
        return results

    async def on_generate(
        self, project: ProjectDefinition, modules: Iterable[Module]
    ) -> list[GeneratedFile]:
        """Collect the files returned by every module's ``on_generate`` hook.

        Files without an owner are attributed to the module that returned
        them.
        """
        collected: list[GeneratedFile] = []
        for module in modules:
            returned = await self.dispatch(LifecycleEvent.ON_GENERATE, project, module)
            for item in returned or []:
                collected.append(_as_generated_file(item, module.id))
        return collected

    async def on_install(self, project: ProjectDefinition, module: Module) -> None:
        await self.dispatch(LifecycleEvent.ON_INSTALL, project, module)

    async def on_uninstall(self, project: ProjectDefinition, module: Module) -> None:
        await self.dispatch(LifecycleEvent.ON_UNINSTALL, project, module)


def _as_generated_file(item: Any, module_id: str) -> GeneratedFile:
    if isinstance(item, GeneratedFile):
        file = item
    elif isinstance(item, Mapping):
        try:
            file = GeneratedFile.model_validate(item)
        except ValidationError as exc:
            raise HookError(module_id, LifecycleEvent.ON_GENERATE.value, str(exc)) from exc
    else:
        raise HookError(
            module_id,
            LifecycleEvent.ON_GENERATE.value,
            f"expected generated files, got {type(item).__name__}",
        )
    if file.module is None:
        file = file.model_copy(update={"module": module_id})
    return file
