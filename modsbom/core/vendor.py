"""Parsing of the vendored-module manifest printed by ``go mod vendor -v``."""

from __future__ import annotations

import logging
import os
from typing import List, Set

from modsbom.core.config import GeneratorConfig
from modsbom.core.filter import filter_modules
from modsbom.core.module import Module, is_module, make_replacement, sort_modules
from modsbom.core.modules import NoModuleError, load_module, resolve_local_replacements
from modsbom.runners import gocmd

_LOG = logging.getLogger(__name__)

RECORD_PREFIX = "# "
REPLACE_ARROW = "=>"


class NotVendoringError(ValueError):
    """Raised when a module does not vendor its dependencies."""


def is_vendoring(module_dir: str) -> bool:
    return os.path.isfile(os.path.join(module_dir, "vendor", "modules.txt"))


def get_vendored_modules(module_dir: str, config: GeneratorConfig) -> List[Module]:
    """Load the vendored dependencies of *module_dir* plus its main module."""

    if not is_module(module_dir):
        raise NoModuleError(f"not a go module: {module_dir}")
    if not is_vendoring(module_dir):
        raise NotVendoringError(f"the module is not vendoring its dependencies: {module_dir}")

    _LOG.debug("loading vendored modules in %s (include_test=%s)", module_dir, config.include_test)
    output = gocmd.list_vendored_modules(module_dir, go_binary=config.go_binary)
    modules = parse_vendored_modules(module_dir, output)
    modules = filter_modules(module_dir, modules, config)
    resolve_local_replacements(module_dir, modules, config)

    # go mod vendor never lists the main module
    main = load_module(module_dir, config)
    modules.append(main)
    sort_modules(modules)
    return modules


def parse_vendored_modules(main_module_dir: str, output: str) -> List[Module]:
    """Parse ``# path version`` and ``# path [version] => path [version]`` records.

    Replacement records are printed a second time at the end of the manifest;
    only the first record per module path is kept.
    """

    modules: List[Module] = []
    seen: Set[str] = set()
    for raw_line in output.splitlines():
        line = raw_line.strip()
        if not line.startswith(RECORD_PREFIX):
            continue
        fields = line[len(RECORD_PREFIX) :].split()

        if REPLACE_ARROW in fields:
            module = _parse_replacement(fields, line)
        else:
            if len(fields) != 2:
                raise ValueError(f"expected two fields per line, but got {len(fields)}: {line}")
            module = Module(path=fields[0], version=fields[1])
        # replacements are copied into the directory of the module they replace
        module.dir = os.path.join(main_module_dir, "vendor", module.path)
        module.vendored = True

        if module.path in seen:
            continue
        seen.add(module.path)
        modules.append(module)
    return modules


def _parse_replacement(fields: List[str], line: str) -> Module:
    arrow = fields.index(REPLACE_ARROW)
    if arrow not in (1, 2) or len(fields) - arrow not in (2, 3):
        raise ValueError(f"malformed replacement record: {line}")
    parent_version = fields[1] if arrow == 2 else ""
    replacement_version = fields[arrow + 2] if len(fields) == arrow + 3 else ""
    replacement = make_replacement(fields[arrow + 1], replacement_version)
    return Module(path=fields[0], version=parent_version, replace=replacement)
