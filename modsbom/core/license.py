"""License detection for downloaded module sources."""

from __future__ import annotations

import logging
import pathlib
import re
from typing import List, Optional, Tuple, Union

_LOG = logging.getLogger(__name__)

LICENSE_FILE_PREFIXES = ("license", "licence", "copying")

# Checked in order; more specific texts come before the ones they contain.
LICENSE_PHRASES: List[Tuple[str, Tuple[str, ...]]] = [
    ("AGPL-3.0", ("gnu affero general public license", "version 3")),
    ("LGPL-3.0", ("gnu lesser general public license", "version 3")),
    ("LGPL-2.1", ("gnu lesser general public license", "version 2.1")),
    ("GPL-3.0", ("gnu general public license", "version 3")),
    ("GPL-2.0", ("gnu general public license", "version 2")),
    ("MPL-2.0", ("mozilla public license", "2.0")),
    ("Apache-2.0", ("apache license", "version 2.0")),
    ("EPL-2.0", ("eclipse public license", "2.0")),
    ("BSL-1.0", ("boost software license",)),
    ("Unlicense", ("this is free and unencumbered software released into the public domain",)),
    ("CC0-1.0", ("cc0 1.0 universal",)),
    ("ISC", ("permission to use, copy, modify, and/or distribute this software for any purpose",)),
    ("MIT", ("permission is hereby granted, free of charge",)),
    ("BSD-3-Clause", ("redistribution and use in source and binary forms", "neither the name")),
    ("BSD-2-Clause", ("redistribution and use in source and binary forms",)),
    ("Zlib", ("this software is provided 'as-is'", "altered source versions must be plainly marked")),
]

_WHITESPACE = re.compile(r"\s+")


def find_license_files(module_dir: Union[str, pathlib.Path]) -> List[pathlib.Path]:
    root = pathlib.Path(module_dir)
    if not root.is_dir():
        return []
    return sorted(
        path
        for path in root.iterdir()
        if path.is_file() and path.name.lower().startswith(LICENSE_FILE_PREFIXES)
    )


def identify_license(text: str) -> Optional[str]:
    """Return the SPDX identifier whose characteristic phrases all occur in *text*."""

    normalized = _WHITESPACE.sub(" ", text.lower())
    for spdx_id, phrases in LICENSE_PHRASES:
        if all(phrase in normalized for phrase in phrases):
            return spdx_id
    return None


def detect_license(module_dir: Union[str, pathlib.Path]) -> Optional[str]:
    for path in find_license_files(module_dir):
        try:
            text = path.read_text(encoding="utf-8", errors="replace")
        except OSError as exc:
            _LOG.warning("failed to read license file %s: %s", path, exc)
            continue
        spdx_id = identify_license(text)
        if spdx_id:
            _LOG.debug("detected license %s in %s", spdx_id, path)
            return spdx_id
    return None
