"""Semantic version handling as used by Go module versions.

Go module versions always carry a leading ``v`` and accept the shorthands
``vMAJOR`` and ``vMAJOR.MINOR``. Comparison and canonicalisation follow the
rules of ``golang.org/x/mod/semver`` so that sorting and pseudo-version
construction agree with the Go toolchain.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional, Tuple


@dataclass(frozen=True)
class _Parsed:
    major: str
    minor: str
    patch: str
    short: str
    prerelease: str
    build: str


def is_valid(version: str) -> bool:
    return _parse(version) is not None


def canonical(version: str) -> str:
    """Return ``vMAJOR.MINOR.PATCH[-PRERELEASE]``, dropping build metadata."""

    parsed = _parse(version)
    if parsed is None:
        return ""
    if parsed.build:
        return version[: len(version) - len(parsed.build)]
    if parsed.short:
        return version + parsed.short
    return version


def major(version: str) -> str:
    parsed = _parse(version)
    if parsed is None:
        return ""
    return "v" + parsed.major


def prerelease(version: str) -> str:
    parsed = _parse(version)
    return parsed.prerelease if parsed else ""


def build(version: str) -> str:
    parsed = _parse(version)
    return parsed.build if parsed else ""


def compare(left: str, right: str) -> int:
    """Compare two versions; invalid versions sort before valid ones."""

    pl = _parse(left)
    pr = _parse(right)
    if pl is None and pr is None:
        return 0
    if pl is None:
        return -1
    if pr is None:
        return 1
    for a, b in ((pl.major, pr.major), (pl.minor, pr.minor), (pl.patch, pr.patch)):
        result = _compare_int(a, b)
        if result:
            return result
    return _compare_prerelease(pl.prerelease, pr.prerelease)


def _parse(version: str) -> Optional[_Parsed]:
    if not version or version[0] != "v":
        return None
    rest = version[1:]
    major_part, rest = _parse_int(rest)
    if major_part is None:
        return None
    if not rest:
        return _Parsed(major_part, "0", "0", ".0.0", "", "")
    if rest[0] != ".":
        return None
    minor_part, rest = _parse_int(rest[1:])
    if minor_part is None:
        return None
    if not rest:
        return _Parsed(major_part, minor_part, "0", ".0", "", "")
    if rest[0] != ".":
        return None
    patch_part, rest = _parse_int(rest[1:])
    if patch_part is None:
        return None
    pre = ""
    if rest and rest[0] == "-":
        pre, rest = _parse_prerelease(rest)
        if pre is None:
            return None
    meta = ""
    if rest and rest[0] == "+":
        meta, rest = _parse_build(rest)
        if meta is None:
            return None
    if rest:
        return None
    return _Parsed(major_part, minor_part, patch_part, "", pre, meta)


def _parse_int(value: str) -> Tuple[Optional[str], str]:
    index = 0
    while index < len(value) and value[index].isdigit() and value[index].isascii():
        index += 1
    if index == 0:
        return None, value
    if value[0] == "0" and index != 1:
        return None, value
    return value[:index], value[index:]


def _parse_prerelease(value: str) -> Tuple[Optional[str], str]:
    # value starts with "-"
    index = 1
    start = 1
    while index < len(value) and value[index] != "+":
        if not _is_ident_char(value[index]) and value[index] != ".":
            return None, value
        if value[index] == ".":
            if start == index or _is_bad_num(value[start:index]):
                return None, value
            start = index + 1
        index += 1
    if start == index or _is_bad_num(value[start:index]):
        return None, value
    return value[:index], value[index:]


def _parse_build(value: str) -> Tuple[Optional[str], str]:
    # value starts with "+"
    index = 1
    start = 1
    while index < len(value):
        if not _is_ident_char(value[index]) and value[index] != ".":
            return None, value
        if value[index] == ".":
            if start == index:
                return None, value
            start = index + 1
        index += 1
    if start == index:
        return None, value
    return value, ""


def _is_ident_char(char: str) -> bool:
    return char.isascii() and (char.isalnum() or char == "-")


def _is_bad_num(ident: str) -> bool:
    return _is_num(ident) and len(ident) > 1 and ident[0] == "0"


def _is_num(ident: str) -> bool:
    return bool(ident) and ident.isascii() and ident.isdigit()


def _compare_int(left: str, right: str) -> int:
    if left == right:
        return 0
    if len(left) != len(right):
        return -1 if len(left) < len(right) else 1
    return -1 if left < right else 1


def _compare_prerelease(left: str, right: str) -> int:
    if left == right:
        return 0
    if not left:
        return 1
    if not right:
        return -1
    left_idents: List[str] = left[1:].split(".")
    right_idents: List[str] = right[1:].split(".")
    for a, b in zip(left_idents, right_idents):
        if a == b:
            continue
        a_num, b_num = _is_num(a), _is_num(b)
        if a_num and b_num:
            return _compare_int(a, b)
        if a_num:
            return -1
        if b_num:
            return 1
        return -1 if a < b else 1
    if len(left_idents) == len(right_idents):
        return 0
    return -1 if len(left_idents) < len(right_idents) else 1
