import json
import pytest

from modsbom.core import packages
from modsbom.core.config import GeneratorConfig
from modsbom.core.module import Module
from modsbom.runners import gocmd

APP_MODULE = {"Path": "example.com/app", "Main": True}
DEP_MODULE = {"Path": "example.com/dep", "Version": "v1.0.0"}

PACKAGE_LISTING = "\n".join(
    json.dumps(record)
    for record in [
        {"ImportPath": "fmt", "Name": "fmt", "Standard": True, "GoFiles": ["print.go"]},
        {"ImportPath": "example.com/dep/b", "Name": "b", "Module": DEP_MODULE, "GoFiles": ["b.go"]},
        {"ImportPath": "example.com/dep/a", "Name": "a", "Module": DEP_MODULE, "GoFiles": ["a.go"], "CFiles": ["a.c"]},
        {"ImportPath": "example.com/app", "Name": "main", "Module": APP_MODULE, "GoFiles": ["main.go"]},
        {"ImportPath": "orphan", "Name": "orphan"},
    ]
)


def test_group_packages_by_module():
    grouped = packages.group_packages(PACKAGE_LISTING)
    assert set(grouped) == {"std", "example.com/dep@v1.0.0", "example.com/app"}
    assert [package.import_path for package in grouped["example.com/dep@v1.0.0"]] == [
        "example.com/dep/b",
        "example.com/dep/a",
    ]
    assert grouped["std"][0].standard is True


def test_package_file_categories():
    grouped = packages.group_packages(PACKAGE_LISTING)
    package_a = grouped["example.com/dep@v1.0.0"][1]
    assert package_a.go_files == ("a.go",)
    assert package_a.c_files == ("a.c",)
    assert package_a.cgo_files == ()
    assert package_a.module_path == "example.com/dep"


def test_attach_packages_sorts_by_import_path():
    grouped = packages.group_packages(PACKAGE_LISTING)
    dep = Module(path="example.com/dep", version="v1.0.0")
    app = Module(path="example.com/app", main=True)
    packages.attach_packages([app, dep], grouped)
    assert [package.import_path for package in dep.packages] == ["example.com/dep/a", "example.com/dep/b"]
    assert [package.import_path for package in app.packages] == ["example.com/app"]


def test_package_error_raises():
    output = json.dumps({"ImportPath": "broken", "Error": {"Err": "no Go files"}})
    with pytest.raises(ValueError, match="no Go files"):
        list(packages.parse_packages(output))


def test_to_relative_pattern():
    assert packages.to_relative_pattern("cmd/app") == "./cmd/app"
    assert packages.to_relative_pattern("./...") == "./..."


def test_apply_packages_lists_relative_pattern(monkeypatch: pytest.MonkeyPatch):
    patterns = []

    def fake_list_packages(module_dir, pattern, go_binary="go"):
        patterns.append(pattern)
        return PACKAGE_LISTING

    monkeypatch.setattr(gocmd, "list_packages", fake_list_packages)
    app = Module(path="example.com/app", main=True)
    dep = Module(path="example.com/dep", version="v1.0.0")
    stdlib = Module(path="std", version="go1.21.3")
    packages.apply_packages("/src/app", [app, dep, stdlib], GeneratorConfig(), pattern="cmd/app")

    assert patterns == ["./cmd/app"]
    assert [package.import_path for package in stdlib.packages] == ["fmt"]
    assert [package.import_path for package in dep.packages] == ["example.com/dep/a", "example.com/dep/b"]
