"""Loading of the selected module set and resolution of local replacements."""

from __future__ import annotations

import json
import logging
import os
from typing import Iterator, List, Optional, Set

from modsbom.core import version as version_detector
from modsbom.core.config import GeneratorConfig
from modsbom.core.filter import filter_modules
from modsbom.core.module import (
    DEVEL_VERSION,
    STDLIB_MODULE_PATH,
    LocalReplacement,
    Module,
    is_module,
    sort_modules,
)
from modsbom.runners import git, gocmd

_LOG = logging.getLogger(__name__)


class NoModuleError(ValueError):
    """Raised when a directory is not the root of a Go module."""


def load_module(module_dir: str, config: GeneratorConfig) -> Module:
    """Load the identity of the module rooted at *module_dir*."""

    _LOG.debug("loading module in %s", module_dir)
    output = gocmd.list_module(module_dir, go_binary=config.go_binary)
    modules = list(parse_modules(output))
    if not modules:
        raise ValueError(f"decoding module info for {module_dir} failed: empty output")
    return modules[0]


def load_modules(module_dir: str, config: GeneratorConfig) -> List[Module]:
    """Load, filter and resolve the selected module set of *module_dir*."""

    _LOG.debug("loading modules in %s (include_test=%s)", module_dir, config.include_test)
    if not is_module(module_dir):
        raise NoModuleError(f"not a go module: {module_dir}")

    output = gocmd.list_modules(module_dir, go_binary=config.go_binary)
    modules = list(parse_modules(output))
    modules = filter_modules(module_dir, modules, config)
    resolve_local_replacements(module_dir, modules, config)
    sort_modules(modules)
    return modules


def parse_modules(output: str) -> Iterator[Module]:
    """Parse the stream of JSON objects printed by ``go list -m -json``."""

    decoder = json.JSONDecoder()
    index = 0
    length = len(output)
    while True:
        while index < length and output[index].isspace():
            index += 1
        if index >= length:
            return
        record, index = decoder.raw_decode(output, index)
        yield Module.from_json(record)


def load_stdlib_module(config: GeneratorConfig) -> Module:
    env = gocmd.get_env(go_binary=config.go_binary)
    goroot = env.get("GOROOT")
    if not goroot:
        raise ValueError("failed to determine GOROOT")
    module = load_module(os.path.join(goroot, "src"), config)
    module.path = STDLIB_MODULE_PATH
    module.version = gocmd.get_version(go_binary=config.go_binary)
    module.main = False
    return module


def resolve_local_replacements(
    main_module_dir: str,
    modules: List[Module],
    config: GeneratorConfig,
    _seen: Optional[Set[str]] = None,
) -> None:
    """Resolve path and version of every local (``./`` or ``../``) replacement.

    Directories that are not modules are skipped with a warning. Version
    detection failures are logged and leave the version empty.
    """

    seen = _seen if _seen is not None else {os.path.abspath(main_module_dir)}
    for module in modules:
        replacement = module.replace
        if not isinstance(replacement, LocalReplacement):
            continue

        local_dir = os.path.abspath(os.path.join(main_module_dir, replacement.target))
        if not is_module(local_dir):
            _LOG.warning("local replacement %s does not exist or is not a module", local_dir)
            continue

        _resolve_local_replacement(local_dir, replacement, config, seen)


def _resolve_local_replacement(
    local_dir: str,
    replacement: LocalReplacement,
    config: GeneratorConfig,
    seen: Set[str],
) -> None:
    _LOG.debug("resolving local replacement module in %s", local_dir)
    local_module = load_module(local_dir, config)
    if local_dir not in seen:
        seen.add(local_dir)
        resolve_local_replacements(local_dir, [local_module], config, seen)

    replacement.path = local_module.path
    replacement.dir = local_dir
    replacement.resolved = True

    if replacement.version and replacement.version != DEVEL_VERSION:
        return
    try:
        replacement.version = version_detector.get_module_version(local_dir)
    except git.GitError as exc:
        _LOG.warning("failed to resolve version of local module %s in %s: %s", replacement.path, local_dir, exc)
