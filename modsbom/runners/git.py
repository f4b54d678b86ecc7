"""Read-only access to git repositories through the ``git`` executable."""

from __future__ import annotations

import datetime as dt
import logging
import pathlib
import subprocess
from dataclasses import dataclass
from typing import List

_LOG = logging.getLogger(__name__)

COMMIT_FORMAT = "%H%x09%at%x09%ct"


class GitError(RuntimeError):
    """Raised when a git command fails."""


class RepositoryNotFoundError(GitError):
    """Raised when a directory does not hold a git repository."""


@dataclass(frozen=True)
class Commit:
    hash: str
    author_time: dt.datetime
    committer_time: dt.datetime


@dataclass(frozen=True)
class Tag:
    name: str
    commit: Commit


def open_repository(directory: pathlib.Path) -> pathlib.Path:
    """Return *directory* if it is the root of a git working tree.

    Parent directories are not searched; callers walk upwards themselves.
    """

    if not (directory / ".git").exists():
        raise RepositoryNotFoundError(f"repository does not exist: {directory}")
    return directory


def head_commit(repo: pathlib.Path) -> Commit:
    return resolve_commit(repo, "HEAD")


def resolve_commit(repo: pathlib.Path, revision: str) -> Commit:
    output = _run_git(repo, ["log", "-1", f"--format={COMMIT_FORMAT}", f"{revision}^{{commit}}", "--"])
    return _parse_commit(output.strip())


def list_tags(repo: pathlib.Path) -> List[str]:
    output = _run_git(repo, ["tag", "--list"])
    return [line.strip() for line in output.splitlines() if line.strip()]


def _parse_commit(line: str) -> Commit:
    try:
        commit_hash, author_ts, committer_ts = line.split("\t")
        return Commit(
            hash=commit_hash,
            author_time=dt.datetime.fromtimestamp(int(author_ts), tz=dt.timezone.utc),
            committer_time=dt.datetime.fromtimestamp(int(committer_ts), tz=dt.timezone.utc),
        )
    except ValueError as exc:
        raise GitError(f"unexpected commit format: {line!r}") from exc


def _run_git(repo: pathlib.Path, args: List[str]) -> str:
    cmd = ["git", *args]
    _LOG.debug("executing command %s in %s", " ".join(cmd), repo)
    try:
        completed = subprocess.run(
            cmd,
            cwd=repo,
            check=True,
            capture_output=True,
            text=True,
        )
    except FileNotFoundError as exc:
        raise GitError("git executable not found") from exc
    except subprocess.CalledProcessError as exc:
        raise GitError(f"command `{' '.join(cmd)}` failed: {(exc.stderr or '').strip()}") from exc
    return completed.stdout
