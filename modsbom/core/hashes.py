"""Checksum translation and file digests."""

from __future__ import annotations

import base64
import binascii
import hashlib
import pathlib
from typing import Dict, Iterable, Union

H1_PREFIX = "h1:"

# CycloneDX algorithm names mapped to hashlib constructors
ALGORITHMS = {
    "MD5": "md5",
    "SHA-1": "sha1",
    "SHA-256": "sha256",
    "SHA-384": "sha384",
    "SHA-512": "sha512",
    "SHA3-256": "sha3_256",
    "SHA3-512": "sha3_512",
}
DEFAULT_ALGORITHMS = ("MD5", "SHA-1", "SHA-256", "SHA-384", "SHA-512")

_CHUNK_SIZE = 64 * 1024


def h1_to_sha256(checksum: str) -> str:
    """Translate a ``h1:`` go.sum checksum into the hex SHA-256 digest it encodes."""

    if not checksum.startswith(H1_PREFIX):
        raise ValueError(f"not a h1 checksum: {checksum!r}")
    try:
        digest = base64.b64decode(checksum[len(H1_PREFIX) :], validate=True)
    except (binascii.Error, ValueError) as exc:
        raise ValueError(f"invalid h1 checksum {checksum!r}: {exc}") from exc
    return digest.hex()


def calculate_file_hashes(
    path: Union[str, pathlib.Path],
    algorithms: Iterable[str] = DEFAULT_ALGORITHMS,
) -> Dict[str, str]:
    """Hash the file at *path* with every algorithm in a single read."""

    hashers = {}
    for algorithm in algorithms:
        if algorithm not in ALGORITHMS:
            raise ValueError(f"unsupported hash algorithm: {algorithm}")
        hashers[algorithm] = hashlib.new(ALGORITHMS[algorithm])

    with open(path, "rb") as handle:
        for chunk in iter(lambda: handle.read(_CHUNK_SIZE), b""):
            for hasher in hashers.values():
                hasher.update(chunk)
    return {algorithm: hasher.hexdigest() for algorithm, hasher in hashers.items()}
