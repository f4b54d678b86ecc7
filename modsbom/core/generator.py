"""Resolution pipelines for binaries and module source trees."""

from __future__ import annotations

import datetime as dt
import logging
import os
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from modsbom.core import cyclonedx, spdx
from modsbom.core.buildinfo import BuildInfoError, load_build_info
from modsbom.core.config import GeneratorConfig
from modsbom.core.download import detect_licenses
from modsbom.core.graph import apply_module_graph
from modsbom.core.hashes import calculate_file_hashes
from modsbom.core.module import (
    DEVEL_VERSION,
    STDLIB_MODULE_PATH,
    BuildInfo,
    Module,
    find_main,
    sort_dependencies,
)
from modsbom.core.modules import NoModuleError, load_modules, load_stdlib_module, resolve_local_replacements
from modsbom.core.packages import apply_packages
from modsbom.core.vendor import NotVendoringError, get_vendored_modules, is_vendoring
from modsbom.core.version import pseudo_version
from modsbom.runners import gocmd, git

_LOG = logging.getLogger(__name__)

TOOL_NAME = "modsbom"
TOOL_VERSION = "0.1.0"

# everything a stage may raise that should abort the run
_STAGE_ERRORS = (
    BuildInfoError,
    gocmd.GoCommandError,
    git.GitError,
    NoModuleError,
    NotVendoringError,
    ValueError,
    OSError,
)


class GenerationError(RuntimeError):
    """Raised when a pipeline stage fails; the message names the stage."""

    def __init__(self, stage: str, reason: object) -> None:
        super().__init__(f"{stage}: {reason}")
        self.stage = stage


@dataclass
class Result:
    """Main module and its resolved dependencies, ready for serialization."""

    main: Module
    dependencies: List[Module]
    build_info: Optional[BuildInfo] = None
    binary_path: Optional[str] = None
    binary_hashes: Dict[str, str] = field(default_factory=dict)
    image_digest: Optional[str] = None
    include_packages: bool = False

    def to_spdx(self, created: Optional[dt.datetime] = None) -> Dict[str, Any]:
        try:
            return spdx.build_document(
                self.main,
                self.dependencies,
                TOOL_NAME,
                TOOL_VERSION,
                created=created,
                image_digest=self.image_digest,
            )
        except ValueError as exc:
            raise GenerationError("spdx", exc) from exc

    def to_cyclonedx(
        self,
        timestamp: Optional[dt.datetime] = None,
        serial_number: Optional[str] = None,
    ) -> Dict[str, Any]:
        properties = None
        main_package_path = ""
        if self.build_info is not None and self.binary_path:
            properties = cyclonedx.binary_properties(
                os.path.basename(self.binary_path),
                self.build_info.go_version,
                self.build_info.settings,
                self.binary_hashes,
            )
            main_package_path = self.build_info.path
        try:
            return cyclonedx.build_document(
                self.main,
                self.dependencies,
                TOOL_NAME,
                TOOL_VERSION,
                timestamp=timestamp,
                serial_number=serial_number,
                properties=properties,
                main_package_path=main_package_path,
                include_packages=self.include_packages,
            )
        except ValueError as exc:
            raise GenerationError("cyclonedx", exc) from exc


def generate_from_binary(
    binary_path: str,
    config: GeneratorConfig,
    module_dir: Optional[str] = None,
    image_digest: Optional[str] = None,
) -> Result:
    """Resolve the modules compiled into *binary_path*.

    Every dependency becomes a direct dependency of the main module, since the
    build info does not record edges. Local replacements are only resolved
    when the source tree of the main module is given as *module_dir*.
    """

    try:
        build_info = load_build_info(binary_path, config)
    except _STAGE_ERRORS as exc:
        raise GenerationError("loading build info", exc) from exc
    if build_info.main is None:
        raise GenerationError("loading build info", f"failed to parse any modules from {binary_path}")

    main = build_info.main
    dependencies = list(build_info.deps)
    if config.include_stdlib:
        dependencies.append(Module(path=STDLIB_MODULE_PATH, version=build_info.go_version))

    if config.version_override:
        main.version = config.version_override
    elif main.version == DEVEL_VERSION and build_info.settings:
        _LOG.debug("building pseudo version from build info")
        try:
            main.version = build_pseudo_version(build_info.settings)
        except ValueError as exc:
            _LOG.warning("failed to build pseudo version from build info: %s", exc)

    if module_dir:
        try:
            resolve_local_replacements(module_dir, dependencies, config)
        except _STAGE_ERRORS as exc:
            raise GenerationError("resolving local replacements", exc) from exc

    main.dependencies = list(dependencies)
    sort_dependencies(main.dependencies)

    if config.detect_licenses:
        try:
            detect_licenses([main, *dependencies], config)
        except _STAGE_ERRORS as exc:
            raise GenerationError("detecting licenses", exc) from exc

    try:
        binary_hashes = calculate_file_hashes(binary_path)
    except OSError as exc:
        raise GenerationError("hashing binary", exc) from exc

    return Result(
        main=main,
        dependencies=dependencies,
        build_info=build_info,
        binary_path=binary_path,
        binary_hashes=binary_hashes,
        image_digest=image_digest,
    )


def generate_from_module(module_dir: str, config: GeneratorConfig) -> Result:
    """Resolve the dependency graph of the module rooted at *module_dir*."""

    try:
        if is_vendoring(module_dir):
            modules = get_vendored_modules(module_dir, config)
        else:
            modules = load_modules(module_dir, config)
    except _STAGE_ERRORS as exc:
        raise GenerationError("loading modules", exc) from exc

    main = find_main(modules)
    if main is None:
        raise GenerationError("loading modules", f"no main module found in {module_dir}")

    try:
        apply_module_graph(module_dir, modules, config)
    except _STAGE_ERRORS as exc:
        raise GenerationError("applying module graph", exc) from exc

    if config.include_packages:
        try:
            apply_packages(module_dir, modules, config)
        except _STAGE_ERRORS as exc:
            raise GenerationError("loading packages", exc) from exc

    if config.include_stdlib:
        try:
            stdlib = load_stdlib_module(config)
        except _STAGE_ERRORS as exc:
            raise GenerationError("loading standard library", exc) from exc
        modules.append(stdlib)
        main.dependencies.append(stdlib)
        sort_dependencies(main.dependencies)

    if config.version_override:
        main.version = config.version_override

    if config.detect_licenses:
        try:
            detect_licenses(modules, config)
        except _STAGE_ERRORS as exc:
            raise GenerationError("detecting licenses", exc) from exc

    dependencies = [module for module in modules if module is not main]
    return Result(main=main, dependencies=dependencies, include_packages=config.include_packages)


def build_pseudo_version(settings: Dict[str, str]) -> str:
    revision = settings.get("vcs.revision")
    if not revision:
        raise ValueError("no vcs.revision build setting")
    timestamp = settings.get("vcs.time")
    if not timestamp:
        raise ValueError("no vcs.time build setting")
    try:
        parsed = dt.datetime.fromisoformat(timestamp.replace("Z", "+00:00"))
    except ValueError as exc:
        raise ValueError(f"invalid vcs.time {timestamp!r}") from exc
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=dt.timezone.utc)
    return pseudo_version("", "", parsed, revision[:12])
