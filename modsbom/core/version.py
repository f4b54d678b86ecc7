"""Version detection for modules that live in git working trees."""

from __future__ import annotations

import datetime as dt
import logging
import pathlib
from typing import Optional, Union

from modsbom.core import semver
from modsbom.runners import git

_LOG = logging.getLogger(__name__)

PSEUDO_VERSION_TIMESTAMP_FORMAT = "%Y%m%d%H%M%S"


class NoTagError(LookupError):
    """Raised when no semver tag at or before HEAD exists."""


def pseudo_version(major: str, older: str, timestamp: dt.datetime, revision: str) -> str:
    """Build a Go pseudo-version.

    Produces the same text as ``golang.org/x/mod/module.PseudoVersion``:

    * ``vX.0.0-yyyymmddhhmmss-abcdefabcdef`` when there is no base version
    * ``vX.Y.(Z+1)-0.yyyymmddhhmmss-abcdefabcdef`` for a release base ``vX.Y.Z``
    * ``vX.Y.Z-pre.0.yyyymmddhhmmss-abcdefabcdef`` for a prerelease base
    """

    if not major:
        major = "v0"
    if timestamp.tzinfo is not None:
        timestamp = timestamp.astimezone(dt.timezone.utc)
    segment = f"{timestamp.strftime(PSEUDO_VERSION_TIMESTAMP_FORMAT)}-{revision}"
    build = semver.build(older)
    older = semver.canonical(older)
    if not older:
        return f"{major}.0.0-{segment}"
    if semver.prerelease(older):
        return f"{older}.0.{segment}{build}"
    index = older.rfind(".") + 1
    base, patch = older[:index], older[index:]
    return f"{base}{_inc_decimal(patch)}-0.{segment}{build}"


def get_module_version(module_dir: Union[str, pathlib.Path]) -> str:
    """Detect the version of the module in *module_dir*.

    Parent directories are searched for a git repository so that modules
    nested inside multi-module repositories are handled.
    """

    _LOG.debug("detecting module version in %s", module_dir)
    repo_dir = pathlib.Path(module_dir).absolute()
    while True:
        try:
            return get_version_from_tag(repo_dir)
        except git.RepositoryNotFoundError:
            if repo_dir.parent == repo_dir:
                raise git.RepositoryNotFoundError(f"no git repository found for {module_dir}") from None
            repo_dir = repo_dir.parent


def get_version_from_tag(repo_dir: pathlib.Path) -> str:
    """Return the tag pointing at HEAD, or a pseudo-version relative to the latest tag."""

    repo = git.open_repository(repo_dir)
    head = git.head_commit(repo)

    try:
        latest = get_latest_tag(repo, head)
    except NoTagError:
        return pseudo_version("v0", "", head.author_time, head.hash[:12])

    if latest.commit.hash == head.hash:
        return latest.name

    return pseudo_version(
        semver.major(latest.name),
        latest.name,
        latest.commit.author_time,
        latest.commit.hash[:12],
    )


def get_latest_tag(repo: pathlib.Path, head: git.Commit) -> git.Tag:
    """Find the most recent semver tag whose commit is not newer than HEAD."""

    _LOG.debug("getting latest tag for head commit %s", head.hash)
    latest: Optional[git.Tag] = None
    for name in git.list_tags(repo):
        if not semver.is_valid(name):
            _LOG.debug("skipping tag %s: not a valid semver", name)
            continue
        commit = git.resolve_commit(repo, f"refs/tags/{name}")
        if commit.committer_time > head.committer_time:
            continue
        if latest is None or commit.committer_time > latest.commit.committer_time:
            latest = git.Tag(name=name, commit=commit)
    if latest is None:
        raise NoTagError(f"no semver tag reachable from {head.hash}")
    return latest


def _inc_decimal(decimal: str) -> str:
    digits = list(decimal)
    index = len(digits) - 1
    while index >= 0 and digits[index] == "9":
        digits[index] = "0"
        index -= 1
    if index >= 0:
        digits[index] = chr(ord(digits[index]) + 1)
    else:
        digits.insert(0, "1")
    return "".join(digits)
