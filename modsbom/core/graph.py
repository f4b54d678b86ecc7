"""Dependency graph construction from ``go mod graph`` output."""

from __future__ import annotations

import logging
from typing import List, Optional

from modsbom.core.config import GeneratorConfig
from modsbom.core.module import Module, sort_dependencies
from modsbom.runners import gocmd

_LOG = logging.getLogger(__name__)


def apply_module_graph(module_dir: str, modules: List[Module], config: GeneratorConfig) -> None:
    _LOG.debug("applying module graph of %s to %d modules", module_dir, len(modules))
    output = gocmd.module_graph(module_dir, go_binary=config.go_binary)
    parse_module_graph(output, modules)


def parse_module_graph(output: str, modules: List[Module]) -> None:
    """Populate ``dependencies`` of *modules* from ``dependant dependency`` lines.

    *modules* must be the selected set: one version per module path. Existing
    dependency lists are replaced, so applying the same graph twice yields the
    same result.
    """

    for module in modules:
        module.dependencies = []

    for raw_line in output.splitlines():
        line = raw_line.strip()
        if not line:
            continue
        fields = line.split()
        if len(fields) != 2:
            raise ValueError(f"expected two fields per line, but got {len(fields)}: {line}")

        # The graph lists edges for every version ever required; only the
        # selected version of a dependant counts.
        dependant = find_module(modules, fields[0], strict=True)
        if dependant is None:
            continue

        # Minimal version selection may have picked a newer version than the
        # one this edge names.
        dependency = find_module(modules, fields[1], strict=False)
        if dependency is None:
            _LOG.debug(
                "skipping graph edge %s -> %s: dependency not in list of selected modules",
                dependant.coordinates(),
                fields[1],
            )
            continue

        if dependant.main and dependency.indirect:
            _LOG.debug(
                "skipping graph edge %s -> %s: indirect dependency",
                dependant.coordinates(),
                dependency.coordinates(),
            )
            continue

        dependant.dependencies.append(dependency)

    for module in modules:
        sort_dependencies(module.dependencies)


def find_module(modules: List[Module], coordinates: str, strict: bool) -> Optional[Module]:
    for module in modules:
        if coordinates in (module.coordinates(), module.effective_coordinates()):
            return module
    if strict:
        return None
    for module in modules:
        if coordinates.startswith(module.path + "@") or coordinates.startswith(module.effective_path + "@"):
            return module
    return None
