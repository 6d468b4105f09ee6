"""Unit tests for lifecycle hook dispatch (flutter_pwa_builder.modules.hooks)."""

from __future__ import annotations

import pytest

from flutter_pwa_builder.errors import BuilderError, HookError, UnknownModuleError
from flutter_pwa_builder.models import GeneratedFile, LifecycleEvent, Module, ModuleConfig, ProjectDefinition
from flutter_pwa_builder.modules import HookContext, HookExecutor


pytestmark = pytest.mark.unit


@pytest.fixture
def executor(registry, memory_fs, template_engine) -> HookExecutor:
    return HookExecutor(registry, memory_fs, template_engine)


class FailingModule(Module):
    id: str = "failing"
    name: str = "Failing"

    async def before_generate(self, ctx):
        raise RuntimeError("disk on fire")

    async def after_generate(self, ctx):
        raise UnknownModuleError("other")


class SyncModule(Module):
    id: str = "sync"
    name: str = "Sync"

    def on_generate(self, ctx):
        return [{"path": "a.txt", "content": "from sync"}]


class BadOutputModule(Module):
    id: str = "bad"
    name: str = "Bad"

    async def on_generate(self, ctx):
        return ["not a file"]


class TestDispatch:
    async def test_events_reach_handlers_in_module_order(self, executor, make_recorder, hook_log):
        project = ProjectDefinition(name="demo")
        modules = [make_recorder("one"), make_recorder("two")]
        await executor.run(LifecycleEvent.BEFORE_BUILD, project, modules)
        assert hook_log == [("one", LifecycleEvent.BEFORE_BUILD), ("two", LifecycleEvent.BEFORE_BUILD)]

    async def test_unimplemented_event_is_skipped(self, executor):
        project = ProjectDefinition(name="demo")
        plain = Module(id="plain", name="Plain")
        assert plain.implements(LifecycleEvent.ON_INSTALL) is False
        assert await executor.dispatch(LifecycleEvent.ON_INSTALL, project, plain) is None

    async def test_foreign_exception_wrapped(self, executor):
        project = ProjectDefinition(name="demo")
        with pytest.raises(HookError) as exc_info:
            await executor.dispatch(LifecycleEvent.BEFORE_GENERATE, project, FailingModule())
        error = exc_info.value
        assert error.module_id == "failing"
        assert error.event == "beforeGenerate"
        assert isinstance(error.__cause__, RuntimeError)

    async def test_builder_errors_propagate_unchanged(self, executor):
        project = ProjectDefinition(name="demo")
        with pytest.raises(UnknownModuleError):
            await executor.dispatch(LifecycleEvent.AFTER_GENERATE, project, FailingModule())

    async def test_on_step_callback(self, registry, memory_fs, template_engine, make_recorder):
        steps: list[str] = []
        executor = HookExecutor(registry, memory_fs, template_engine, on_step=steps.append)
        await executor.on_install(ProjectDefinition(name="demo"), make_recorder("one"))
        assert steps == ["onInstall: one"]


class TestContext:
    def test_context_carries_collaborators(self, executor, memory_fs, template_engine):
        project = ProjectDefinition(name="demo")
        module = Module(id="m", name="M", default_config={"a": 1})
        ctx = executor.create_context(project, module, [GeneratedFile(path="x", content="")])
        assert isinstance(ctx, HookContext)
        assert ctx.file_system is memory_fs
        assert ctx.template_engine is template_engine
        assert ctx.config == {"a": 1}
        assert isinstance(ctx.files, tuple)

    def test_effective_config_from_project_entry(self, executor):
        module = Module(id="m", name="M", default_config={"a": {"x": 1, "y": 2}})
        project = ProjectDefinition(name="demo", modules=[ModuleConfig(id="m", config={"a": {"y": 3}})])
        assert executor.effective_config(project, module) == {"a": {"x": 1, "y": 3}}

    def test_effective_config_prefers_installed_record(self, executor, registry):
        module = Module(id="m", name="M", default_config={"a": 1})
        registry.register(module)
        project = ProjectDefinition(name="demo", modules=[ModuleConfig(id="m", config={"a": 5})])
        registry.install(project.id, "m", {"a": 7})
        assert executor.effective_config(project, module) == {"a": 7}


class TestOnGenerate:
    async def test_files_attributed_to_module(self, executor, make_recorder):
        files = await executor.on_generate(ProjectDefinition(name="demo"), [make_recorder("rec")])
        assert files == [GeneratedFile(path="notes/rec.txt", content="rec", module="rec")]

    async def test_sync_handler_and_mapping_results(self, executor):
        files = await executor.on_generate(ProjectDefinition(name="demo"), [SyncModule()])
        assert files == [GeneratedFile(path="a.txt", content="from sync", module="sync")]

    async def test_non_file_results_rejected(self, executor):
        with pytest.raises(HookError, match="expected generated files"):
            await executor.on_generate(ProjectDefinition(name="demo"), [BadOutputModule()])

    def test_hook_error_is_builder_error(self):
        assert issubclass(HookError, BuilderError)
