"""Generator configuration loaded from YAML and overridden from the command line."""

from __future__ import annotations

import pathlib
from dataclasses import dataclass, fields, replace
from typing import Any, Dict, Optional

import yaml

DEFAULT_CONFIG_PATH = pathlib.Path(".modsbom.yml")
DEFAULT_CHUNK_SIZE = 20


@dataclass(frozen=True)
class GeneratorConfig:
    go_binary: str = "go"
    chunk_size: int = DEFAULT_CHUNK_SIZE
    include_test: bool = False
    include_stdlib: bool = False
    include_packages: bool = False
    detect_licenses: bool = False
    version_override: Optional[str] = None
    spdx: bool = True
    cyclonedx: bool = True
    out_dir: pathlib.Path = pathlib.Path("sbom")
    s3_bucket: Optional[str] = None
    s3_prefix: str = ""

    def with_overrides(self, **overrides: Any) -> "GeneratorConfig":
        """Return a copy with every non-``None`` override applied."""

        applicable = {key: value for key, value in overrides.items() if value is not None}
        return replace(self, **applicable)


def load_config(path: pathlib.Path) -> GeneratorConfig:
    if not path.exists():
        return GeneratorConfig()
    data = yaml.safe_load(path.read_text()) or {}
    if not isinstance(data, dict):
        raise ValueError(f"{path}: expected a mapping at the top level")
    known = {item.name for item in fields(GeneratorConfig)}
    values: Dict[str, Any] = {}
    for key, value in data.items():
        name = str(key).replace("-", "_")
        if name not in known:
            raise ValueError(f"{path}: unknown setting {key!r}")
        values[name] = value
    if "out_dir" in values:
        values["out_dir"] = pathlib.Path(str(values["out_dir"]))
    if "chunk_size" in values:
        values["chunk_size"] = _positive_int(values["chunk_size"], path)
    return GeneratorConfig(**values)


def _positive_int(value: object, path: pathlib.Path) -> int:
    try:
        number = int(value)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        raise ValueError(f"{path}: chunk_size must be an integer, got {value!r}") from None
    if number < 1:
        raise ValueError(f"{path}: chunk_size must be positive, got {number}")
    return number
