"""Parser for the build information Go embeds in compiled binaries."""

from __future__ import annotations

import logging
from typing import List, Optional

from modsbom.core.config import GeneratorConfig
from modsbom.core.module import BuildInfo, Module, make_replacement
from modsbom.runners import gocmd

_LOG = logging.getLogger(__name__)

PATH_LINE = "path\t"
MOD_LINE = "mod\t"
DEP_LINE = "dep\t"
REPLACE_LINE = "=>\t"
BUILD_LINE = "build\t"
GO_LINE = "go\t"


class BuildInfoError(ValueError):
    """Raised for a malformed build info line."""

    def __init__(self, line_number: int, reason: str) -> None:
        super().__init__(f"could not parse Go build info: line {line_number}: {reason}")
        self.line_number = line_number
        self.reason = reason


def parse_build_info(text: str) -> BuildInfo:
    """Parse ``go version -m`` style build info into a :class:`BuildInfo`.

    Every ``=>`` line must directly follow the ``mod`` or ``dep`` line it
    replaces. Unknown line prefixes are ignored.
    """

    info = BuildInfo()
    last: Optional[Module] = None
    for line_number, raw_line in enumerate(text.split("\n"), start=1):
        line = raw_line[1:] if raw_line.startswith("\t") else raw_line
        line = line.rstrip("\r")
        if line.startswith(PATH_LINE):
            info.path = line[len(PATH_LINE):]
        elif line.startswith(MOD_LINE):
            info.main = _read_module(line[len(MOD_LINE):].split("\t"), line_number)
            info.main.main = True
            last = info.main
        elif line.startswith(DEP_LINE):
            last = _read_module(line[len(DEP_LINE):].split("\t"), line_number)
            info.deps.append(last)
        elif line.startswith(REPLACE_LINE):
            elem = line[len(REPLACE_LINE):].split("\t")
            if len(elem) != 3:
                raise BuildInfoError(line_number, f"expected 3 columns for replacement; got {len(elem)}")
            if last is None:
                raise BuildInfoError(line_number, "replacement with no module on previous line")
            last.replace = make_replacement(elem[0], elem[1], elem[2])
            last = None
        elif line.startswith(BUILD_LINE):
            elem = line[len(BUILD_LINE):].split("=", 1)
            if len(elem) != 2:
                raise BuildInfoError(line_number, f"expected 2 columns for build setting; got {len(elem)}")
            if not elem[0]:
                raise BuildInfoError(line_number, "empty key")
            info.settings[elem[0]] = elem[1]
        elif line.startswith(GO_LINE):
            info.go_version = line[len(GO_LINE):].strip()
        elif line_number == 1 and ": go" in line:
            try:
                info.go_version = gocmd.parse_version(line)
            except ValueError:
                _LOG.debug("no go version in header line %r", line)
    return info


def fix_local_replace_directives(text: str) -> str:
    """Add the checksum column Go 1.18 omits for ``=> ../dir (devel)`` lines."""

    lines: List[str] = []
    for line in text.splitlines():
        elem = line.lstrip("\t").split("\t")
        if len(elem) == 3 and elem[0] == "=>" and elem[2] == "(devel)":
            lines.append(line + "\t")
            continue
        lines.append(line)
    return "\n".join(lines)


def load_build_info(binary_path: str, config: GeneratorConfig) -> BuildInfo:
    output = gocmd.version_m(binary_path, go_binary=config.go_binary)
    return parse_build_info(fix_local_replace_directives(output))


def _read_module(elem: List[str], line_number: int) -> Module:
    if len(elem) not in (2, 3):
        raise BuildInfoError(line_number, f"expected 2 or 3 columns; got {len(elem)}")
    return Module(path=elem[0], version=elem[1], sum=elem[2] if len(elem) == 3 else "")
