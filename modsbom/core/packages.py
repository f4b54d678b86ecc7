"""Package listing and grouping of packages under their modules."""

from __future__ import annotations

import json
import logging
import os
from typing import Any, Dict, Iterator, List, Tuple

from modsbom.core.config import GeneratorConfig
from modsbom.core.module import STDLIB_MODULE_PATH, Module, Package
from modsbom.runners import gocmd

_LOG = logging.getLogger(__name__)

DEFAULT_PACKAGE_PATTERN = "./..."

_FILE_FIELDS = {
    "go_files": "GoFiles",
    "cgo_files": "CgoFiles",
    "c_files": "CFiles",
    "cxx_files": "CXXFiles",
    "m_files": "MFiles",
    "h_files": "HFiles",
    "f_files": "FFiles",
    "s_files": "SFiles",
    "swig_files": "SwigFiles",
    "swig_cxx_files": "SwigCXXFiles",
    "syso_files": "SysoFiles",
    "embed_files": "EmbedFiles",
}


def parse_packages(output: str) -> Iterator[Tuple[Package, Dict[str, Any]]]:
    """Yield each package of a ``go list -deps -json`` stream with its raw module record.

    A package that failed to load raises ``ValueError``.
    """

    decoder = json.JSONDecoder()
    index = 0
    length = len(output)
    while True:
        while index < length and output[index].isspace():
            index += 1
        if index >= length:
            return
        record, index = decoder.raw_decode(output, index)
        error = record.get("Error")
        if error:
            message = error.get("Err") if isinstance(error, dict) else error
            raise ValueError(f"failed to load package {record.get('ImportPath')}: {message}")
        module_record = record.get("Module") or {}
        files = {name: tuple(record.get(key) or ()) for name, key in _FILE_FIELDS.items()}
        package = Package(
            import_path=str(record.get("ImportPath") or ""),
            module_path=STDLIB_MODULE_PATH if record.get("Standard") else str(module_record.get("Path") or ""),
            name=str(record.get("Name") or ""),
            dir=str(record.get("Dir") or ""),
            standard=bool(record.get("Standard")),
            **files,
        )
        yield package, module_record


def group_packages(output: str) -> Dict[str, List[Package]]:
    """Index packages by the coordinates of their module.

    Standard library packages are grouped under ``std``; packages without a
    module are skipped.
    """

    grouped: Dict[str, List[Package]] = {}
    for package, module_record in parse_packages(output):
        if package.standard:
            coordinates = STDLIB_MODULE_PATH
        elif not module_record:
            _LOG.debug("skipping package %s: no associated module", package.import_path)
            continue
        else:
            coordinates = Module.from_json(module_record).coordinates()
        grouped.setdefault(coordinates, []).append(package)
    return grouped


def attach_packages(modules: List[Module], grouped: Dict[str, List[Package]]) -> None:
    """Set ``packages`` of every module from an index built by :func:`group_packages`."""

    for module in modules:
        key = STDLIB_MODULE_PATH if module.path == STDLIB_MODULE_PATH else module.coordinates()
        module.packages = sorted(grouped.get(key, []), key=lambda package: package.import_path)


def apply_packages(
    module_dir: str,
    modules: List[Module],
    config: GeneratorConfig,
    pattern: str = DEFAULT_PACKAGE_PATTERN,
) -> None:
    output = gocmd.list_packages(module_dir, to_relative_pattern(pattern), go_binary=config.go_binary)
    attach_packages(modules, group_packages(output))


def to_relative_pattern(pattern: str) -> str:
    pattern = pattern.replace(os.sep, "/")
    if not pattern.startswith("./"):
        pattern = "./" + pattern
    return pattern
