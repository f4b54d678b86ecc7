"""Best-effort download of module sources through ``go mod download``."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import List, Optional

from modsbom.core.config import GeneratorConfig
from modsbom.core.license import detect_license
from modsbom.core.module import STDLIB_MODULE_PATH, LocalReplacement, Module, chunk_modules
from modsbom.runners import gocmd

_LOG = logging.getLogger(__name__)


@dataclass
class ModuleDownload:
    path: str
    version: str = ""
    error: str = ""
    dir: str = ""
    sum: str = ""

    def coordinates(self) -> str:
        return f"{self.path}@{self.version}" if self.version else self.path


def download_modules(modules: List[Module], config: GeneratorConfig) -> List[ModuleDownload]:
    """Download *modules* into the module cache, one ``go mod download`` per chunk.

    Replaced modules are downloaded as their replacement. The standard library,
    local replacements and modules that already have a source directory are
    skipped.
    """

    candidates = [
        module
        for module in modules
        if module.path != STDLIB_MODULE_PATH
        and not isinstance(module.replace, LocalReplacement)
        and not module.effective_dir
    ]
    downloads: List[ModuleDownload] = []
    for chunk in chunk_modules(candidates, config.chunk_size):
        coordinates = [module.effective_coordinates() for module in chunk]
        output = gocmd.download_modules(coordinates, go_binary=config.go_binary)
        # go mod download exits non-zero when any single module fails; those
        # failures are reported per module on stdout, fatal ones on stderr.
        if output.returncode != 0 and output.stderr.strip():
            raise gocmd.GoCommandError(f"downloading modules failed: {output.stderr.strip()}")
        downloads.extend(parse_downloads(output.stdout))
    return downloads


def parse_downloads(output: str) -> List[ModuleDownload]:
    decoder = json.JSONDecoder()
    downloads: List[ModuleDownload] = []
    index = 0
    length = len(output)
    while True:
        while index < length and output[index].isspace():
            index += 1
        if index >= length:
            return downloads
        record, index = decoder.raw_decode(output, index)
        downloads.append(
            ModuleDownload(
                path=str(record.get("Path") or ""),
                version=str(record.get("Version") or ""),
                error=str(record.get("Error") or ""),
                dir=str(record.get("Dir") or ""),
                sum=str(record.get("Sum") or ""),
            )
        )


def apply_downloads(modules: List[Module], downloads: List[ModuleDownload]) -> None:
    """Point each module at its downloaded source directory.

    A download whose checksum differs from the recorded one is ignored so that
    licenses are only reported for the exact module content.
    """

    for download in downloads:
        if download.error:
            _LOG.warning("module download failed for %s: %s", download.coordinates(), download.error)
            continue
        module = match_module(modules, download.coordinates())
        if module is None:
            _LOG.warning("downloaded module %s not found", download.coordinates())
            continue
        if module.effective_sum and module.effective_sum != download.sum:
            _LOG.warning(
                "module hash mismatch for %s: recorded %s, downloaded %s",
                download.coordinates(),
                module.effective_sum,
                download.sum,
            )
            continue
        _LOG.debug("module %s downloaded", download.coordinates())
        module.dir = download.dir


def match_module(modules: List[Module], coordinates: str) -> Optional[Module]:
    for module in modules:
        if coordinates in (module.effective_coordinates(), module.coordinates()):
            return module
    return None


def detect_licenses(modules: List[Module], config: GeneratorConfig) -> None:
    """Download remote modules and record the license found in each source tree."""

    apply_downloads(modules, download_modules(modules, config))
    for module in modules:
        if module.path == STDLIB_MODULE_PATH:
            continue
        directory = module.effective_dir
        if not directory:
            _LOG.warning("can't resolve license of %s: module not in cache", module.coordinates())
            continue
        module.license = detect_license(directory)
        if module.license is None:
            _LOG.warning("no license detected for %s", module.coordinates())
