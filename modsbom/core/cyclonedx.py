"""CycloneDX 1.4 JSON document assembly."""

from __future__ import annotations

import datetime as dt
import logging
import re
import uuid
from typing import Any, Dict, Iterable, List, Mapping, Optional

from modsbom.core.hashes import h1_to_sha256
from modsbom.core.module import Module, Package

_LOG = logging.getLogger(__name__)

SPEC_VERSION = "1.4"
PROPERTY_PREFIX = "cdx:gomod"

# build setting -> property name, for settings copied verbatim
BUILD_SETTING_PROPERTIES = [
    ("CGO_ENABLED", "build:env:CGO_ENABLED"),
    ("GOARCH", "build:env:GOARCH"),
    ("GOOS", "build:env:GOOS"),
    ("-compiler", "build:compiler"),
    ("vcs", "build:vcs"),
    ("vcs.revision", "build:vcs:revision"),
    ("vcs.time", "build:vcs:time"),
    ("vcs.modified", "build:vcs:modified"),
]

_MAJOR_SUFFIX = re.compile(r"(/v\d+)$")
_GOPKG_WITH_USER = re.compile(r"^gopkg\.in/([^/]+)/([^.]+)\..*$")
_GOPKG_WITHOUT_USER = re.compile(r"^gopkg\.in/([^.]+)\..*$")


def build_document(
    main: Module,
    dependencies: List[Module],
    tool_name: str,
    tool_version: str,
    timestamp: Optional[dt.datetime] = None,
    serial_number: Optional[str] = None,
    properties: Optional[List[Dict[str, str]]] = None,
    main_package_path: str = "",
    include_packages: bool = False,
) -> Dict[str, Any]:
    """Assemble a CycloneDX BOM for *main* and its *dependencies*.

    The dependency section mirrors the ``dependencies`` edges of every module.
    When *main_package_path* is a sub-path of the main module, the main
    component reference carries it as a purl subpath.
    """

    timestamp = timestamp or dt.datetime.now(dt.timezone.utc)
    if timestamp.tzinfo is not None:
        timestamp = timestamp.astimezone(dt.timezone.utc)

    main_component = to_component(main, component_type="application", include_packages=include_packages)
    main_ref = main.package_url()
    subpath = main_subpath(main.path, main_package_path)
    if subpath:
        main_component["bom-ref"] = main_component["purl"] = f"{main_ref}#{subpath}"

    components = [to_component(module, include_packages=include_packages) for module in dependencies]

    graph = build_dependency_graph([main, *dependencies])
    graph[0]["ref"] = main_component["bom-ref"]

    metadata: Dict[str, Any] = {
        "timestamp": timestamp.strftime("%Y-%m-%dT%H:%M:%SZ"),
        "tools": [{"vendor": tool_name, "name": tool_name, "version": tool_version}],
        "component": main_component,
    }
    if properties:
        metadata["properties"] = properties

    return {
        "bomFormat": "CycloneDX",
        "specVersion": SPEC_VERSION,
        "serialNumber": serial_number or f"urn:uuid:{uuid.uuid4()}",
        "version": 1,
        "metadata": metadata,
        "components": components,
        "dependencies": graph,
        "compositions": build_compositions(main_component, components),
    }


def to_component(
    module: Module,
    component_type: str = "library",
    include_packages: bool = False,
) -> Dict[str, Any]:
    _LOG.debug("converting module %s to component", module.coordinates())
    purl = module.package_url()
    component: Dict[str, Any] = {
        "bom-ref": purl,
        "type": component_type,
        "name": module.effective_path,
        "version": module.effective_version,
    }
    if not module.main:
        component["scope"] = "optional" if module.test_only else "required"
    if module.effective_sum:
        component["hashes"] = [{"alg": "SHA-256", "content": h1_to_sha256(module.effective_sum)}]
    if module.license:
        component["licenses"] = [{"license": {"id": module.license}}]
    component["purl"] = purl

    vcs_url = resolve_vcs_url(module.effective_path)
    if vcs_url:
        component["externalReferences"] = [{"type": "vcs", "url": vcs_url}]

    if include_packages and module.packages:
        component["components"] = [package_component(package, module) for package in module.packages]
    return component


def package_component(package: Package, module: Module) -> Dict[str, Any]:
    version = module.effective_version
    coordinates = f"{package.import_path}@{version}" if version else package.import_path
    purl = f"pkg:golang/{coordinates}?type=package"
    return {
        "bom-ref": purl,
        "type": "library",
        "name": package.import_path,
        "version": version,
        "purl": purl,
    }


def build_dependency_graph(modules: Iterable[Module]) -> List[Dict[str, Any]]:
    graph: List[Dict[str, Any]] = []
    for module in modules:
        entry: Dict[str, Any] = {"ref": module.package_url()}
        if module.dependencies:
            entry["dependsOn"] = [dependency.package_url() for dependency in module.dependencies]
        graph.append(entry)
    return graph


def build_compositions(main_component: Dict[str, Any], components: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    # Everything main depends on is listed; how the dependencies relate to
    # each other is not.
    return [
        {"aggregate": "complete", "dependencies": [main_component["bom-ref"]]},
        {"aggregate": "unknown", "dependencies": [component["bom-ref"] for component in components]},
    ]


def binary_properties(
    binary_name: str,
    go_version: str,
    settings: Mapping[str, str],
    binary_hashes: Mapping[str, str],
) -> List[Dict[str, str]]:
    """Describe a compiled binary and its build settings, sorted by name then value."""

    properties = [
        new_property("binary:name", binary_name),
        new_property("build:env:GOVERSION", go_version),
    ]
    for setting, name in BUILD_SETTING_PROPERTIES:
        if setting in settings:
            properties.append(new_property(name, settings[setting]))
    if "-tags" in settings:
        for tag in settings["-tags"].split(","):
            properties.append(new_property("build:tag", tag))
    for algorithm, digest in binary_hashes.items():
        properties.append(new_property(f"binary:hash:{algorithm}", digest))
    return sort_properties(properties)


def new_property(name: str, value: str) -> Dict[str, str]:
    return {"name": f"{PROPERTY_PREFIX}:{name}", "value": value}


def sort_properties(properties: List[Dict[str, str]]) -> List[Dict[str, str]]:
    return sorted(properties, key=lambda prop: (prop["name"], prop["value"]))


def main_subpath(module_path: str, package_path: str) -> str:
    if not package_path or package_path == module_path or not package_path.startswith(module_path):
        return ""
    return package_path[len(module_path) :].lstrip("/")


def resolve_vcs_url(module_path: str) -> str:
    if module_path.startswith("github.com/"):
        return "https://" + _MAJOR_SUFFIX.sub("", module_path)
    if _GOPKG_WITH_USER.match(module_path):
        return "https://" + _GOPKG_WITH_USER.sub(r"github.com/\1/\2", module_path)
    if _GOPKG_WITHOUT_USER.match(module_path):
        return "https://" + _GOPKG_WITHOUT_USER.sub(r"github.com/go-\1/\1", module_path)
    return ""
