"""Unit tests for ModuleRegistry and DependencyResolver.

Tests cover:
- Registration identity and manifest checks
- Conflict symmetry at registration and install time
- Install/uninstall bookkeeping, dependency and in-use rules
- Dependency-first ordering and cycle detection
"""

from __future__ import annotations

import pytest

from flutter_pwa_builder.errors import (
    AlreadyInstalledError,
    CircularDependencyError,
    ConflictError,
    DuplicateIdError,
    DuplicateModuleError,
    InUseError,
    InvalidModuleError,
    MissingDependencyError,
    ModuleNotInstalledError,
    NotFoundError,
    UnknownModuleError,
)
from flutter_pwa_builder.models import Module, ModuleDependency
from flutter_pwa_builder.modules import DependencyResolver


pytestmark = pytest.mark.unit


def _module(module_id: str, **fields) -> Module:
    return Module(id=module_id, **{"name": module_id.upper(), **fields})


def _requires(*ids: str, optional: bool = False) -> list[ModuleDependency]:
    return [ModuleDependency(id=i, optional=optional) for i in ids]


# ---------------------------------------------------------------------------
# Registration
# ---------------------------------------------------------------------------


class TestRegistration:
    def test_register_and_get(self, registry):
        module = _module("a")
        registry.register(module)
        assert registry.get("a") is module
        assert "a" in registry
        assert registry.list() == [module]

    def test_get_unknown_returns_none(self, registry):
        assert registry.get("nope") is None

    def test_duplicate_rejected(self, registry):
        registry.register(_module("a"))
        with pytest.raises(DuplicateModuleError) as exc_info:
            registry.register(_module("a"))
        assert isinstance(exc_info.value, DuplicateIdError)
        assert exc_info.value.identifier == "a"

    @pytest.mark.parametrize("field_name", ["name", "version"])
    def test_blank_manifest_field_rejected(self, registry, field_name):
        with pytest.raises(InvalidModuleError, match=field_name):
            registry.register(_module("a", **{field_name: " "}))

    def test_conflict_declared_by_newcomer(self, registry):
        registry.register(_module("A"))
        with pytest.raises(ConflictError) as exc_info:
            registry.register(_module("B", conflicts=["A"]))
        assert (exc_info.value.module_id, exc_info.value.other_id) == ("B", "A")
        assert "B" not in registry

    def test_conflict_declared_by_existing(self, registry):
        registry.register(_module("A", conflicts=["B"]))
        with pytest.raises(ConflictError):
            registry.register(_module("B"))

    def test_unregister(self, registry):
        registry.register(_module("a"))
        registry.unregister("a")
        assert registry.get("a") is None
        with pytest.raises(UnknownModuleError):
            registry.unregister("a")

    def test_unregister_installed_module_refused(self, registry):
        registry.register(_module("a"))
        registry.install("p1", "a")
        with pytest.raises(InUseError) as exc_info:
            registry.unregister("a")
        assert exc_info.value.users == ["p1"]


# ---------------------------------------------------------------------------
# Installation
# ---------------------------------------------------------------------------


class TestInstallation:
    def test_install_merges_default_config(self, registry):
        registry.register(_module("a", default_config={"x": {"a": 1, "b": 2}, "y": True}))
        entry = registry.install("p1", "a", {"x": {"b": 3}})
        assert entry.config == {"x": {"a": 1, "b": 3}, "y": True}
        assert registry.installed_config("p1", "a").config == entry.config

    def test_install_unknown_module(self, registry):
        with pytest.raises(UnknownModuleError) as exc_info:
            registry.install("p1", "ghost")
        assert isinstance(exc_info.value, NotFoundError)

    def test_install_twice_rejected(self, registry):
        registry.register(_module("a"))
        registry.install("p1", "a")
        with pytest.raises(AlreadyInstalledError) as exc_info:
            registry.install("p1", "a")
        assert exc_info.value.project_id == "p1"

    def test_same_module_on_two_projects(self, registry):
        registry.register(_module("a"))
        registry.install("p1", "a")
        registry.install("p2", "a")
        assert registry.installed_projects("a") == ["p1", "p2"]

    def test_missing_dependency(self, registry):
        registry.register(_module("base"))
        registry.register(_module("ui", dependencies=_requires("base")))
        with pytest.raises(MissingDependencyError) as exc_info:
            registry.install("p1", "ui")
        assert exc_info.value.dependency_id == "base"

    def test_optional_dependency_not_required(self, registry):
        registry.register(_module("ui", dependencies=_requires("analytics", optional=True)))
        registry.install("p1", "ui")
        assert registry.is_installed("p1", "ui")

    def test_install_conflicts_with_installed(self, registry):
        registry.register(_module("hive"))
        registry.register(_module("drift"))
        # register() refuses conflicting pairs, so swap one in directly.
        registry._modules["drift"] = _module("drift", conflicts=["hive"])
        registry.install("p1", "hive")
        with pytest.raises(ConflictError) as exc_info:
            registry.install("p1", "drift")
        assert exc_info.value.project_id == "p1"

    def test_installed_in_installation_order(self, registry):
        for module_id in ("c", "a", "b"):
            registry.register(_module(module_id))
        for module_id in ("b", "c", "a"):
            registry.install("p1", module_id)
        assert [m.id for m in registry.get_installed("p1")] == ["b", "c", "a"]

    def test_installed_configs_are_copies(self, registry):
        registry.register(_module("a", default_config={"k": [1]}))
        registry.install("p1", "a")
        registry.get_installed_configs("p1")[0].config["k"].append(2)
        assert registry.installed_config("p1", "a").config == {"k": [1]}

    def test_uninstall(self, registry):
        registry.register(_module("a"))
        registry.install("p1", "a")
        entry = registry.uninstall("p1", "a")
        assert entry.id == "a"
        assert not registry.is_installed("p1", "a")

    def test_uninstall_not_installed(self, registry):
        registry.register(_module("a"))
        with pytest.raises(ModuleNotInstalledError):
            registry.uninstall("p1", "a")

    def test_uninstall_required_module_refused(self, registry):
        registry.register(_module("base"))
        registry.register(_module("ui", dependencies=_requires("base")))
        registry.install("p1", "base")
        registry.install("p1", "ui")
        with pytest.raises(InUseError) as exc_info:
            registry.uninstall("p1", "base")
        assert exc_info.value.users == ["ui"]
        assert registry.dependents("p1", "base") == ["ui"]

    def test_forget_project(self, registry):
        registry.register(_module("a"))
        registry.install("p1", "a")
        registry.forget_project("p1")
        assert registry.get_installed("p1") == []
        registry.forget_project("never-seen")


# ---------------------------------------------------------------------------
# DependencyResolver
# ---------------------------------------------------------------------------


class TestDependencyResolver:
    def test_dependencies_first(self, registry):
        registry.register(_module("ui", dependencies=_requires("state")))
        registry.register(_module("state", dependencies=_requires("core")))
        registry.register(_module("core"))
        order = DependencyResolver(registry).resolve(["ui", "state", "core"])
        assert [m.id for m in order] == ["core", "state", "ui"]

    def test_input_order_kept_for_independent_modules(self, registry):
        for module_id in ("b", "a", "c"):
            registry.register(_module(module_id))
        order = DependencyResolver(registry).resolve(["c", "a", "b", "a"])
        assert [m.id for m in order] == ["c", "a", "b"]

    def test_dependencies_outside_request_ignored(self, registry):
        registry.register(_module("ui", dependencies=_requires("core")))
        assert [m.id for m in DependencyResolver(registry).resolve(["ui"])] == ["ui"]

    def test_cycle_detected(self, registry):
        registry.register(_module("a", dependencies=_requires("b")))
        registry.register(_module("b", dependencies=_requires("a")))
        with pytest.raises(CircularDependencyError):
            DependencyResolver(registry).resolve(["a", "b"])

    def test_unknown_module(self, registry):
        with pytest.raises(UnknownModuleError):
            DependencyResolver(registry).resolve(["ghost"])

    def test_check_dependencies(self, registry):
        registry.register(_module("ui", dependencies=_requires("core", "state")))
        registry.register(_module("state"))
        ok, missing = DependencyResolver(registry).check_dependencies(["ui", "state"])
        assert ok is False
        assert missing == ["core"]
