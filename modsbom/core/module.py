"""Go module data model shared by every resolution stage."""

from __future__ import annotations

import functools
import pathlib
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple, Union

from modsbom.core import semver

LOCAL_PREFIXES = ("./", "../")
DEVEL_VERSION = "(devel)"
STDLIB_MODULE_PATH = "std"


@dataclass
class RemoteReplacement:
    """Replacement by another module coordinate fetched like any other module."""

    path: str
    version: str = ""
    sum: str = ""


@dataclass
class LocalReplacement:
    """Replacement by a directory on disk.

    ``target`` is the path written in the replace directive. ``path`` and
    ``version`` are only known once the directory has been resolved.
    """

    target: str
    path: str = ""
    version: str = ""
    sum: str = ""
    dir: str = ""
    resolved: bool = False

    @property
    def effective_path(self) -> str:
        return self.path if self.resolved and self.path else self.target


Replacement = Union[RemoteReplacement, LocalReplacement]


def make_replacement(path: str, version: str = "", sum: str = "") -> Replacement:
    if is_local_path(path):
        return LocalReplacement(target=path, version=version, sum=sum)
    return RemoteReplacement(path=path, version=version, sum=sum)


def is_local_path(path: str) -> bool:
    return path.startswith(LOCAL_PREFIXES)


@dataclass(frozen=True)
class Package:
    """A Go package as reported by ``go list -deps -json``.

    The owning module is referenced by path only; :func:`modsbom.core.packages.group_packages`
    attaches packages to their module in a single pass.
    """

    import_path: str
    module_path: str = ""
    name: str = ""
    dir: str = ""
    standard: bool = False
    go_files: Tuple[str, ...] = ()
    cgo_files: Tuple[str, ...] = ()
    c_files: Tuple[str, ...] = ()
    cxx_files: Tuple[str, ...] = ()
    m_files: Tuple[str, ...] = ()
    h_files: Tuple[str, ...] = ()
    f_files: Tuple[str, ...] = ()
    s_files: Tuple[str, ...] = ()
    swig_files: Tuple[str, ...] = ()
    swig_cxx_files: Tuple[str, ...] = ()
    syso_files: Tuple[str, ...] = ()
    embed_files: Tuple[str, ...] = ()


@dataclass(eq=False)
class Module:
    """A module of the selected set.

    ``dependencies`` holds references to other members of the same set; it is
    never used to own or copy modules.
    """

    path: str
    version: str = ""
    replace: Optional[Replacement] = None
    main: bool = False
    indirect: bool = False
    test_only: bool = False
    vendored: bool = False
    dir: str = ""
    sum: str = ""
    license: Optional[str] = None
    packages: List[Package] = field(default_factory=list)
    dependencies: List["Module"] = field(default_factory=list, repr=False)

    def coordinates(self) -> str:
        return _coordinates(self.path, self.version)

    @property
    def effective_path(self) -> str:
        if isinstance(self.replace, LocalReplacement):
            return self.replace.effective_path
        if self.replace is not None:
            return self.replace.path
        return self.path

    @property
    def effective_version(self) -> str:
        if self.replace is not None:
            return self.replace.version
        return self.version

    @property
    def effective_sum(self) -> str:
        if self.replace is not None:
            return self.replace.sum
        return self.sum

    @property
    def effective_dir(self) -> str:
        if isinstance(self.replace, LocalReplacement) and self.replace.dir:
            return self.replace.dir
        return self.dir

    @property
    def local(self) -> bool:
        return isinstance(self.replace, LocalReplacement) and self.replace.resolved

    def effective_coordinates(self) -> str:
        return _coordinates(self.effective_path, self.effective_version)

    def package_url(self) -> str:
        return f"pkg:golang/{self.effective_coordinates()}?type=module"

    @classmethod
    def from_json(cls, record: Dict[str, Any]) -> "Module":
        """Build a module from one ``go list -m -json`` record."""

        replace_raw = record.get("Replace")
        replace: Optional[Replacement] = None
        if isinstance(replace_raw, dict) and replace_raw.get("Path"):
            replace = make_replacement(
                str(replace_raw["Path"]),
                str(replace_raw.get("Version") or ""),
                str(replace_raw.get("Sum") or ""),
            )
            if isinstance(replace, LocalReplacement) and replace_raw.get("Dir"):
                replace.dir = str(replace_raw["Dir"])
        return cls(
            path=str(record.get("Path") or ""),
            version=str(record.get("Version") or ""),
            replace=replace,
            main=bool(record.get("Main")),
            indirect=bool(record.get("Indirect")),
            dir=str(record.get("Dir") or ""),
            sum=str(record.get("Sum") or ""),
        )


@dataclass
class BuildInfo:
    """Build information embedded in a Go binary."""

    go_version: str = ""
    path: str = ""
    main: Optional[Module] = None
    deps: List[Module] = field(default_factory=list)
    settings: Dict[str, str] = field(default_factory=dict)


def _coordinates(path: str, version: str) -> str:
    if not version:
        return path
    return f"{path}@{version}"


def is_module(directory: Union[str, pathlib.Path]) -> bool:
    return (pathlib.Path(directory) / "go.mod").exists()


def _compare_modules(left: Module, right: Module) -> int:
    if left.main != right.main:
        return -1 if left.main else 1
    if left.path == right.path:
        return semver.compare(left.version, right.version)
    return -1 if left.path < right.path else 1


def _compare_dependencies(left: Module, right: Module) -> int:
    left_path, right_path = left.effective_path, right.effective_path
    if left_path == right_path:
        return semver.compare(left.effective_version, right.effective_version)
    return -1 if left_path < right_path else 1


def sort_modules(modules: List[Module]) -> None:
    """Sort in place: main modules first, then by path, then by semantic version."""

    modules.sort(key=functools.cmp_to_key(_compare_modules))


def sort_dependencies(dependencies: List[Module]) -> None:
    dependencies.sort(key=functools.cmp_to_key(_compare_dependencies))


def chunk_modules(modules: Sequence[Module], chunk_size: int) -> List[List[Module]]:
    if chunk_size < 1:
        raise ValueError(f"chunk size must be positive, got {chunk_size}")
    return [list(modules[i : i + chunk_size]) for i in range(0, len(modules), chunk_size)]


def find_main(modules: Iterable[Module]) -> Optional[Module]:
    for module in modules:
        if module.main:
            return module
    return None
