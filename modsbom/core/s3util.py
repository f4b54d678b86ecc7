"""Optional publishing of SBOM documents to S3."""

from __future__ import annotations

import json
import logging
from typing import Any, Dict, Optional

try:
    import boto3  # type: ignore
except ImportError:  # pragma: no cover - optional dependency
    boto3 = None

_LOG = logging.getLogger(__name__)

JSON_CONTENT_TYPE = "application/json"


def upload_json(bucket: str, key: str, document: Dict[str, Any], client: Optional[Any] = None) -> None:
    serialized = json.dumps(document, indent=2).encode("utf-8")
    upload_bytes(bucket, key, serialized, client, content_type=JSON_CONTENT_TYPE)


def upload_bytes(
    bucket: str,
    key: str,
    data: bytes,
    client: Optional[Any] = None,
    content_type: Optional[str] = None,
) -> None:
    client = client or _client()
    if not client:
        _LOG.warning("boto3 not available; skipping upload for s3://%s/%s", bucket, key)
        return
    extra = {"ContentType": content_type} if content_type else {}
    client.put_object(Bucket=bucket, Key=key, Body=data, **extra)


def _client() -> Any:
    if boto3 is None:
        return None
    return boto3.client("s3")
