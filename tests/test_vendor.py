import json
import os
from pathlib import Path

import pytest

from modsbom.core import vendor
from modsbom.core.config import GeneratorConfig
from modsbom.core.module import LocalReplacement, RemoteReplacement
from modsbom.core.modules import NoModuleError
from modsbom.runners import gocmd

MANIFEST = """# github.com/pkg/errors v0.9.1
## explicit
github.com/pkg/errors
# example.com/old v1.0.0 => example.com/new v1.1.0
example.com/old
# example.com/lib => ../lib
example.com/lib
# example.com/old v1.0.0 => example.com/new v1.1.0
# example.com/lib => ../lib
"""


def test_parse_vendored_modules():
    modules = vendor.parse_vendored_modules("/src/app", MANIFEST)
    assert [module.path for module in modules] == ["github.com/pkg/errors", "example.com/old", "example.com/lib"]
    assert all(module.vendored for module in modules)

    errors, old, lib = modules
    assert errors.version == "v0.9.1"
    assert errors.dir == os.path.join("/src/app", "vendor", "github.com/pkg/errors")

    assert isinstance(old.replace, RemoteReplacement)
    assert old.version == "v1.0.0"
    assert old.effective_coordinates() == "example.com/new@v1.1.0"
    assert old.effective_dir == os.path.join("/src/app", "vendor", "example.com/old")

    assert isinstance(lib.replace, LocalReplacement)
    assert lib.version == ""
    assert lib.replace.target == "../lib"


def test_parse_vendored_modules_rejects_bad_record():
    with pytest.raises(ValueError):
        vendor.parse_vendored_modules("/src/app", "# example.com/broken\n")


def test_is_vendoring(tmp_path: Path):
    assert vendor.is_vendoring(str(tmp_path)) is False
    (tmp_path / "vendor").mkdir()
    (tmp_path / "vendor" / "modules.txt").write_text("", encoding="utf-8")
    assert vendor.is_vendoring(str(tmp_path)) is True


def test_get_vendored_modules_requires_vendor_dir(tmp_path: Path):
    with pytest.raises(NoModuleError):
        vendor.get_vendored_modules(str(tmp_path), GeneratorConfig())
    (tmp_path / "go.mod").write_text("module example.com/app\n", encoding="utf-8")
    with pytest.raises(vendor.NotVendoringError):
        vendor.get_vendored_modules(str(tmp_path), GeneratorConfig())


def test_get_vendored_modules_appends_main_module(monkeypatch: pytest.MonkeyPatch, tmp_path: Path):
    (tmp_path / "go.mod").write_text("module example.com/app\n", encoding="utf-8")
    (tmp_path / "vendor").mkdir()
    (tmp_path / "vendor" / "modules.txt").write_text("", encoding="utf-8")

    monkeypatch.setattr(
        gocmd,
        "list_vendored_modules",
        lambda module_dir, go_binary="go": "# github.com/pkg/errors v0.9.1\n# example.com/unused v1.0.0\n",
    )
    monkeypatch.setattr(
        gocmd,
        "mod_why",
        lambda module_dir, paths, go_binary="go": "# github.com/pkg/errors\nexample.com/app\ngithub.com/pkg/errors\n",
    )
    monkeypatch.setattr(
        gocmd,
        "list_module",
        lambda module_dir, go_binary="go": json.dumps({"Path": "example.com/app", "Main": True}),
    )

    modules = vendor.get_vendored_modules(str(tmp_path), GeneratorConfig())
    assert [module.path for module in modules] == ["example.com/app", "github.com/pkg/errors"]
    assert modules[0].main
    assert modules[1].vendored
