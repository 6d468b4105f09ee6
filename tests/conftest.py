"""Shared pytest fixtures for the Flutter PWA Builder test suite.

Provides reusable fixtures for:
- In-memory and temporary on-disk file systems
- A fresh template engine, module registry and validation framework
- A wired ProjectEngine with the built-in modules registered
- Sample project definitions and drift table configurations
- A recording module that logs every lifecycle hook it receives
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

import pytest

from flutter_pwa_builder.config import Config
from flutter_pwa_builder.filesystem import LocalFileSystem, MemoryFileSystem
from flutter_pwa_builder.models import (
    GeneratedFile,
    LifecycleEvent,
    Module,
    ProjectDefinition,
)
from flutter_pwa_builder.modules import ModuleRegistry
from flutter_pwa_builder.project import ProjectEngine
from flutter_pwa_builder.templating import TemplateEngine
from flutter_pwa_builder.validation import ValidationFramework


# ---------------------------------------------------------------------------
# File systems
# ---------------------------------------------------------------------------

@pytest.fixture
def memory_fs() -> MemoryFileSystem:
    """Empty in-memory file system."""
    return MemoryFileSystem()


@pytest.fixture
def local_fs(tmp_path: Path) -> LocalFileSystem:
    """Local file system rooted at a temporary directory (auto-cleanup)."""
    return LocalFileSystem(tmp_path)


# ---------------------------------------------------------------------------
# Core collaborators
# ---------------------------------------------------------------------------

@pytest.fixture
def template_engine() -> TemplateEngine:
    return TemplateEngine()


@pytest.fixture
def registry() -> ModuleRegistry:
    return ModuleRegistry()


@pytest.fixture
def validation() -> ValidationFramework:
    return ValidationFramework()


@pytest.fixture
def engine(memory_fs: MemoryFileSystem) -> ProjectEngine:
    """ProjectEngine writing to memory with the built-in modules registered."""
    project_engine = ProjectEngine(file_system=memory_fs, config=Config())
    project_engine.register_builtin_modules()
    return project_engine


@pytest.fixture
def bare_engine(memory_fs: MemoryFileSystem) -> ProjectEngine:
    """ProjectEngine writing to memory with no modules registered."""
    return ProjectEngine(file_system=memory_fs, config=Config(builtin_modules=[]))


# ---------------------------------------------------------------------------
# Sample data
# ---------------------------------------------------------------------------

@pytest.fixture
def sample_project() -> ProjectDefinition:
    """A project with icons configured so PWA checks stay quiet."""
    return ProjectDefinition(
        name="field_notes",
        display_name="Field Notes",
        pwa={
            "short_name": "Notes",
            "theme_color": "#3F51B5",
            "icons": [
                {"src": "icons/Icon-192.png", "sizes": "192x192", "type": "image/png"},
                {"src": "icons/Icon-512.png", "sizes": "512x512", "type": "image/png"},
                {
                    "src": "icons/Icon-maskable-512.png",
                    "sizes": "512x512",
                    "type": "image/png",
                    "purpose": "maskable",
                },
            ],
        },
    )


@pytest.fixture
def note_tables() -> list[dict[str, Any]]:
    """Drift table configuration for a small notes app."""
    return [
        {
            "name": "notes",
            "timestamps": True,
            "softDelete": True,
            "columns": [
                {"name": "id", "type": "integer", "primaryKey": True, "autoIncrement": True},
                {"name": "title", "type": "text"},
                {"name": "body", "type": "text", "nullable": True},
                {"name": "pinned", "type": "boolean", "defaultValue": False},
            ],
        },
        {
            "name": "tags",
            "columns": [
                {"name": "slug", "type": "text", "primaryKey": True},
                {"name": "label", "type": "text", "unique": True},
            ],
        },
    ]


# ---------------------------------------------------------------------------
# Recording module
# ---------------------------------------------------------------------------

class RecordingModule(Module):
    """Module that appends ``(module id, event)`` to a shared log on every hook.

    ``on_generate`` returns one marker file per module.
    """

    id: str = "recorder"
    name: str = "Recorder"
    log: Any = None

    async def on_install(self, ctx):
        self.log.append((self.id, LifecycleEvent.ON_INSTALL))

    async def before_generate(self, ctx):
        self.log.append((self.id, LifecycleEvent.BEFORE_GENERATE))

    async def on_generate(self, ctx):
        self.log.append((self.id, LifecycleEvent.ON_GENERATE))
        return [GeneratedFile(path=f"notes/{self.id}.txt", content=self.id)]

    async def after_generate(self, ctx):
        self.log.append((self.id, LifecycleEvent.AFTER_GENERATE))

    async def before_build(self, ctx):
        self.log.append((self.id, LifecycleEvent.BEFORE_BUILD))

    async def after_build(self, ctx):
        self.log.append((self.id, LifecycleEvent.AFTER_BUILD))

    async def on_uninstall(self, ctx):
        self.log.append((self.id, LifecycleEvent.ON_UNINSTALL))


@pytest.fixture
def hook_log() -> list[tuple[str, LifecycleEvent]]:
    return []


@pytest.fixture
def make_recorder(hook_log):
    """Factory for RecordingModule instances sharing ``hook_log``.

    Usage::

        def test_order(make_recorder):
            base = make_recorder("base")
            ui = make_recorder("ui", dependencies=[{"id": "base"}])
    """

    def factory(module_id: str, **fields: Any) -> RecordingModule:
        return RecordingModule(id=module_id, name=module_id.title(), log=hook_log, **fields)

    return factory
