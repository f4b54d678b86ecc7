import pytest

from modsbom.core import graph
from modsbom.core.config import GeneratorConfig
from modsbom.core.module import LocalReplacement, Module
from modsbom.runners import gocmd


def _selected():
    app = Module(path="example.com/app", main=True)
    dep = Module(path="example.com/dep", version="v0.1.0")
    return app, dep


def test_single_edge():
    app, dep = _selected()
    app.version = "v1.0.0"
    graph.parse_module_graph("example.com/app@v1.0.0 example.com/dep@v0.1.0\n", [app, dep])
    assert app.dependencies == [dep]
    assert dep.dependencies == []


def test_dependant_must_match_exactly():
    app, dep = _selected()
    other = Module(path="example.com/other", version="v1.2.0")
    output = "\n".join(
        [
            "example.com/app example.com/dep@v0.1.0",
            "example.com/dep@v0.0.9 example.com/other@v1.2.0",
            "example.com/dep@v0.1.0 example.com/other@v1.0.0",
        ]
    )
    graph.parse_module_graph(output, [app, dep, other])
    assert app.dependencies == [dep]
    # only the edge of the selected dep version counts; the dependency
    # version is matched loosely
    assert dep.dependencies == [other]


def test_pruned_dependency_is_dropped():
    app, dep = _selected()
    graph.parse_module_graph("example.com/app example.com/gone@v1.0.0\n", [app, dep])
    assert app.dependencies == []


def test_main_module_drops_indirect_dependencies():
    app, dep = _selected()
    indirect = Module(path="example.com/indirect", version="v1.0.0", indirect=True)
    output = "example.com/app example.com/indirect@v1.0.0\nexample.com/dep@v0.1.0 example.com/indirect@v1.0.0\n"
    graph.parse_module_graph(output, [app, dep, indirect])
    assert app.dependencies == []
    assert dep.dependencies == [indirect]


def test_dependencies_are_sorted():
    app, _ = _selected()
    zeta = Module(path="example.com/zeta", version="v1.0.0")
    alpha = Module(path="example.com/alpha", version="v1.0.0")
    output = "example.com/app example.com/zeta@v1.0.0\nexample.com/app example.com/alpha@v1.0.0\n"
    graph.parse_module_graph(output, [app, zeta, alpha])
    assert app.dependencies == [alpha, zeta]


def test_replaced_module_matches_by_effective_coordinates():
    app, _ = _selected()
    local = Module(
        path="example.com/lib",
        version="v0.0.0",
        replace=LocalReplacement(target="../lib", path="example.com/lib", version="v1.0.0", resolved=True),
    )
    graph.parse_module_graph("example.com/app example.com/lib@v0.0.0\n", [app, local])
    assert app.dependencies == [local]


def test_graph_is_idempotent():
    app, dep = _selected()
    other = Module(path="example.com/other", version="v1.0.0")
    output = (
        "example.com/app example.com/other@v1.0.0\n"
        "example.com/app example.com/dep@v0.1.0\n"
        "example.com/dep@v0.1.0 example.com/other@v0.9.0\n"
    )
    modules = [app, dep, other]
    graph.parse_module_graph(output, modules)
    first = {module.path: list(module.dependencies) for module in modules}
    graph.parse_module_graph(output, modules)
    second = {module.path: list(module.dependencies) for module in modules}
    assert first == second
    assert app.dependencies == [dep, other]


def test_malformed_line_raises():
    app, dep = _selected()
    with pytest.raises(ValueError):
        graph.parse_module_graph("example.com/app\n", [app, dep])


def test_apply_module_graph_runs_go_mod_graph(monkeypatch: pytest.MonkeyPatch):
    app, dep = _selected()
    calls = []

    def fake_graph(module_dir, go_binary="go"):
        calls.append(module_dir)
        return "example.com/app example.com/dep@v0.1.0\n"

    monkeypatch.setattr(gocmd, "module_graph", fake_graph)
    graph.apply_module_graph("/src/app", [app, dep], GeneratorConfig())
    assert calls == ["/src/app"]
    assert app.dependencies == [dep]
