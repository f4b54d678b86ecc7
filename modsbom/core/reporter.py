"""Writing of generated SBOM documents."""

from __future__ import annotations

import json
import logging
import pathlib
from dataclasses import dataclass
from typing import Any, Dict, Optional

from modsbom.core import s3util
from modsbom.core.config import GeneratorConfig
from modsbom.core.generator import GenerationError, Result

_LOG = logging.getLogger(__name__)

SPDX_SUFFIX = ".spdx.json"
CYCLONEDX_SUFFIX = ".cdx.json"


@dataclass
class ReportPaths:
    spdx_path: pathlib.Path | None
    cyclonedx_path: pathlib.Path | None


def document_basename(result: Result) -> str:
    if result.binary_path:
        return pathlib.Path(result.binary_path).name
    return result.main.path.rstrip("/").rsplit("/", 1)[-1] or "sbom"


def write_reports(
    result: Result,
    config: GeneratorConfig,
    s3_client: Optional[Any] = None,
) -> ReportPaths:
    output_dir = config.out_dir
    try:
        output_dir.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        raise GenerationError("writing documents", exc) from exc
    basename = document_basename(result)

    spdx_path = None
    if config.spdx:
        spdx_path = output_dir / f"{basename}{SPDX_SUFFIX}"
        _write(spdx_path, result.to_spdx(), config, s3_client)

    cyclonedx_path = None
    if config.cyclonedx:
        cyclonedx_path = output_dir / f"{basename}{CYCLONEDX_SUFFIX}"
        _write(cyclonedx_path, result.to_cyclonedx(), config, s3_client)

    return ReportPaths(spdx_path=spdx_path, cyclonedx_path=cyclonedx_path)


def _write(path: pathlib.Path, document: Dict[str, Any], config: GeneratorConfig, s3_client: Optional[Any]) -> None:
    try:
        path.write_text(json.dumps(document, indent=2))
    except OSError as exc:
        raise GenerationError("writing documents", exc) from exc
    _LOG.debug("wrote %s", path)
    if config.s3_bucket:
        key = f"{config.s3_prefix.rstrip('/')}/{path.name}" if config.s3_prefix else path.name
        s3util.upload_json(config.s3_bucket, key, document, client=s3_client)
        _LOG.info("uploaded %s to s3://%s/%s", path.name, config.s3_bucket, key)
