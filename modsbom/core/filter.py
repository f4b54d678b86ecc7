"""Filtering of the selected module set down to modules that are really imported."""

from __future__ import annotations

import logging
from typing import Dict, List, Set

from modsbom.core.config import GeneratorConfig
from modsbom.core.module import Module, chunk_modules
from modsbom.runners import gocmd

_LOG = logging.getLogger(__name__)

TEST_BINARY_SUFFIX = ".test"
NOT_NEEDED_PREFIX = "(main module does not need "


def filter_modules(module_dir: str, modules: List[Module], config: GeneratorConfig) -> List[Module]:
    """Keep the modules the main module needs, according to ``go mod why -m``.

    Main modules are kept without being queried. The listing for a module is
    the shortest import chain ending in one of its own packages; when a package
    before that last one is a test binary the module is flagged ``test_only``
    and dropped unless ``config.include_test`` is set.

    ``go mod why`` only knows modules by their required path, so this has to
    run before replacements are applied.
    """

    _LOG.debug(
        "filtering %d modules in %s (include_test=%s)", len(modules), module_dir, config.include_test
    )
    candidates = [module for module in modules if not module.main]
    needed: Dict[str, List[str]] = {}
    for chunk in chunk_modules(candidates, config.chunk_size):
        paths = [module.path for module in chunk]
        output = gocmd.mod_why(module_dir, paths, go_binary=config.go_binary)
        needed.update(parse_mod_why(output))

    filtered: List[Module] = []
    seen: Set[str] = set()
    for module in modules:
        if module.path in seen:
            _LOG.debug("filtering module %s: duplicate path", module.coordinates())
            continue
        seen.add(module.path)
        if module.main:
            filtered.append(module)
            continue
        packages = needed.get(module.path) or []
        if not packages:
            _LOG.debug("filtering module %s: not needed", module.path)
            continue
        test_only = any(package.endswith(TEST_BINARY_SUFFIX) for package in packages[:-1])
        if test_only and not config.include_test:
            _LOG.debug("filtering module %s: test only", module.path)
            continue
        module.test_only = test_only
        filtered.append(module)
    return filtered


def parse_mod_why(output: str) -> Dict[str, List[str]]:
    """Map each ``# module`` section of ``go mod why -m`` output to its package lines."""

    packages: Dict[str, List[str]] = {}
    current = ""
    for raw_line in output.splitlines():
        line = raw_line.strip()
        if not line or line.startswith(NOT_NEEDED_PREFIX):
            continue
        if line.startswith("#"):
            current = line[1:].strip()
            packages[current] = []
            continue
        packages.setdefault(current, []).append(line)
    return packages
