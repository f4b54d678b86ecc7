"""SPDX 2.3 JSON document assembly."""

from __future__ import annotations

import datetime as dt
import re
from typing import Any, Dict, List, Optional

from modsbom.core.hashes import h1_to_sha256
from modsbom.core.module import STDLIB_MODULE_PATH, LocalReplacement, Module

SPDX_VERSION = "SPDX-2.3"
DATA_LICENSE = "CC0-1.0"
DOCUMENT_ID = "SPDXRef-DOCUMENT"
NOASSERTION = "NOASSERTION"
DATE_FORMAT = "%Y-%m-%dT%H:%M:%SZ"
GO_PROXY_URL = "https://proxy.golang.org"

_INVALID_ID_CHARS = re.compile(r"[^A-Za-z0-9.\-]")


def build_document(
    main: Module,
    dependencies: List[Module],
    tool_name: str,
    tool_version: str,
    created: Optional[dt.datetime] = None,
    image_digest: Optional[str] = None,
) -> Dict[str, Any]:
    """Describe *main* and depend on every module in *dependencies*.

    Relationships are flattened: the main package depends on each dependency
    directly, whatever the module graph says.
    """

    created = created or dt.datetime.now(dt.timezone.utc)
    if created.tzinfo is not None:
        created = created.astimezone(dt.timezone.utc)

    main_id = package_id(main.path)
    main_package = _package(main, main_id)
    main_package["downloadLocation"] = f"https://{main.path}"
    main_package["homepage"] = f"https://{main.path}"
    if image_digest:
        main_package["externalRefs"] = [_purl_ref(oci_purl(main.path, image_digest))]

    packages = [main_package]
    relationships = [
        {"spdxElementId": DOCUMENT_ID, "relationshipType": "DESCRIBES", "relatedSpdxElement": main_id}
    ]
    for module in dependencies:
        dep_id = package_id(module.effective_path, module.effective_version)
        packages.append(_package(module, dep_id))
        relationships.append(
            {"spdxElementId": main_id, "relationshipType": "DEPENDS_ON", "relatedSpdxElement": dep_id}
        )

    return {
        "spdxVersion": SPDX_VERSION,
        "dataLicense": DATA_LICENSE,
        "SPDXID": DOCUMENT_ID,
        "name": main.path,
        "documentNamespace": f"http://spdx.org/spdxpackages/{main.path}",
        "creationInfo": {
            "created": created.strftime(DATE_FORMAT),
            "creators": [f"Tool: {tool_name}-{tool_version}"],
        },
        "packages": packages,
        "relationships": relationships,
    }


def package_id(path: str, version: str = "") -> str:
    value = path.replace("/", ".")
    if version:
        value = f"{value}-{version}"
    return "SPDXRef-Package-" + _INVALID_ID_CHARS.sub("-", value)


def download_location(module: Module) -> str:
    """Proxy zip URL of a remote module; local replacements and the standard library have none."""

    if (
        isinstance(module.replace, LocalReplacement)
        or module.path == STDLIB_MODULE_PATH
        or not module.effective_version
    ):
        return NOASSERTION
    return f"{GO_PROXY_URL}/{escape_path(module.effective_path)}/@v/{escape_path(module.effective_version)}.zip"


def escape_path(path: str) -> str:
    """Apply the module proxy case encoding: every upper-case letter becomes ``!`` plus its lower case."""

    return "".join(f"!{char.lower()}" if "A" <= char <= "Z" else char for char in path)


def oci_purl(path: str, digest: str) -> str:
    name = path.rstrip("/").rsplit("/", 1)[-1]
    return f"pkg:oci/{name}@{digest.replace(':', '%3A')}"


def _package(module: Module, spdx_id: str) -> Dict[str, Any]:
    license_id = module.license or NOASSERTION
    package: Dict[str, Any] = {
        "SPDXID": spdx_id,
        "name": module.effective_path,
    }
    if module.effective_version:
        package["versionInfo"] = module.effective_version
    package.update(
        {
            "supplier": f"Organization: {module.effective_path}",
            "downloadLocation": download_location(module),
            "filesAnalyzed": False,
            "licenseConcluded": NOASSERTION,
            "licenseDeclared": license_id,
            "copyrightText": NOASSERTION,
        }
    )
    if module.effective_sum:
        package["checksums"] = [{"algorithm": "SHA256", "checksumValue": h1_to_sha256(module.effective_sum)}]
    package["externalRefs"] = [_purl_ref(module.package_url())]
    return package


def _purl_ref(locator: str) -> Dict[str, str]:
    return {"referenceCategory": "PACKAGE-MANAGER", "referenceType": "purl", "referenceLocator": locator}
