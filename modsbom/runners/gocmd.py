"""Thin wrappers around the ``go`` command line tool."""

from __future__ import annotations

import json
import logging
import re
import subprocess
import tempfile
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence

_LOG = logging.getLogger(__name__)

VERSION_PATTERN = re.compile(r"^.*(?P<version>\bgo[^\s$]+)")


class GoCommandError(RuntimeError):
    """Raised when a ``go`` invocation cannot run or exits unsuccessfully."""


@dataclass
class CommandOutput:
    returncode: int
    stdout: str
    stderr: str


def execute(
    args: Sequence[str],
    cwd: Optional[str] = None,
    go_binary: str = "go",
    check: bool = True,
) -> CommandOutput:
    cmd = [go_binary, *args]
    _LOG.debug("executing command %s in %s", " ".join(cmd), cwd or ".")
    try:
        completed = subprocess.run(
            cmd,
            cwd=cwd,
            check=False,
            capture_output=True,
            text=True,
        )
    except (FileNotFoundError, NotADirectoryError, PermissionError) as exc:
        raise GoCommandError(f"command `{' '.join(cmd)}` failed: {exc}") from exc
    if check and completed.returncode != 0:
        raise GoCommandError(
            f"command `{' '.join(cmd)}` failed with exit code {completed.returncode}: {completed.stderr.strip()}"
        )
    return CommandOutput(completed.returncode, completed.stdout or "", completed.stderr or "")


def parse_version(text: str) -> str:
    """Locate a Go version such as ``go1.21.3`` in free-form output."""

    match = VERSION_PATTERN.match(text)
    if not match:
        raise ValueError(f"no go version found in {text!r}")
    return match.group("version")


def get_version(go_binary: str = "go") -> str:
    return parse_version(execute(["version"], go_binary=go_binary).stdout)


def get_env(go_binary: str = "go") -> Dict[str, str]:
    output = execute(["env", "-json"], go_binary=go_binary).stdout
    return json.loads(output)


def list_module(module_dir: str, go_binary: str = "go") -> str:
    return execute(["list", "-mod", "readonly", "-json", "-m"], cwd=module_dir, go_binary=go_binary).stdout


def list_modules(module_dir: str, go_binary: str = "go") -> str:
    return execute(["list", "-mod", "readonly", "-json", "-m", "all"], cwd=module_dir, go_binary=go_binary).stdout


def list_packages(module_dir: str, pattern: str, go_binary: str = "go") -> str:
    output = execute(["list", "-deps", "-json", pattern], cwd=module_dir, go_binary=go_binary)
    _log_stderr(output.stderr)
    return output.stdout


def list_vendored_modules(module_dir: str, go_binary: str = "go") -> str:
    # `go mod vendor -v` reports vendored modules on stderr
    return execute(["mod", "vendor", "-v", "-e"], cwd=module_dir, go_binary=go_binary).stderr


def module_graph(module_dir: str, go_binary: str = "go") -> str:
    return execute(["mod", "graph"], cwd=module_dir, go_binary=go_binary).stdout


def mod_why(module_dir: str, module_paths: List[str], go_binary: str = "go") -> str:
    output = execute(["mod", "why", "-m", "-vendor", *module_paths], cwd=module_dir, go_binary=go_binary)
    _log_stderr(output.stderr)
    return output.stdout


def version_m(binary_path: str, go_binary: str = "go") -> str:
    return execute(["version", "-m", binary_path], go_binary=go_binary).stdout


def download_modules(coordinates: List[str], go_binary: str = "go") -> CommandOutput:
    """Run ``go mod download -json`` outside of any module.

    The exit status is not checked: per-module failures are reported in the
    JSON output, so callers inspect stderr to tell them apart from hard failures.
    """

    # `go mod download` rewrites go.sum when run inside a module directory
    return execute(
        ["mod", "download", "-json", *coordinates],
        cwd=tempfile.gettempdir(),
        go_binary=go_binary,
        check=False,
    )


def _log_stderr(stderr: str) -> None:
    for line in stderr.splitlines():
        if line.strip():
            _LOG.debug("%s", line.strip())
