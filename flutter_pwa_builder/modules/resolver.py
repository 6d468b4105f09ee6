"""Dependency ordering of module sets."""

from __future__ import annotations

from collections.abc import Iterable

from flutter_pwa_builder.errors import CircularDependencyError, UnknownModuleError
from flutter_pwa_builder.models import Module
from flutter_pwa_builder.modules.registry import ModuleRegistry


class DependencyResolver:
    """Orders registered modules so dependencies come before dependents.

    Only dependencies that are part of the requested set influence the
    order; version constraints are recorded on the manifest but not solved.
    """

    def __init__(self, registry: ModuleRegistry) -> None:
        self.registry = registry

    def resolve(self, module_ids: Iterable[str]) -> list[Module]:
        """Topologically sort *module_ids*, keeping the input order otherwise.

        Raises:
            UnknownModuleError: If an id is not registered.
            CircularDependencyError: If the requested modules form a cycle.
        """
        requested = list(dict.fromkeys(module_ids))
        wanted = set(requested)
        resolved: list[Module] = []
        visited: set[str] = set()
        visiting: set[str] = set()

        def visit(module_id: str) -> None:
            if module_id in visited:
                return
            if module_id in visiting:
                raise CircularDependencyError(module_id)
            module = self.registry.get(module_id)
            if module is None:
                raise UnknownModuleError(module_id)

            visiting.add(module_id)
            for dependency in module.dependencies:
                if dependency.id in wanted:
                    visit(dependency.id)
            visiting.discard(module_id)
            visited.add(module_id)
            resolved.append(module)

        for module_id in requested:
            visit(module_id)
        return resolved

    def check_dependencies(self, module_ids: Iterable[str]) -> tuple[bool, list[str]]:
        """Return ``(satisfied, missing)`` for a set of module ids.

        ``missing`` lists, once each, the required dependencies that are not
        part of the set.  Unknown ids are ignored.
        """
        ids = list(module_ids)
        missing: list[str] = []
        for module_id in ids:
            module = self.registry.get(module_id)
            if module is None:
                continue
            for dependency in module.dependencies:
                if not dependency.optional and dependency.id not in ids and dependency.id not in missing:
                    missing.append(dependency.id)
        return not missing, missing
