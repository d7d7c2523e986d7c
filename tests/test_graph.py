"""
Tests for graph construction, ordering and the concurrent walk.
"""
import threading
import time

import pytest

from envyard.errors import BlueprintError, CycleError, UnresolvedReferenceError
from envyard.graph import Graph
from envyard.resources import ContainerResource, ExecResource, NetworkResource


def container(name, **fields):
    return ContainerResource(name=name, image="nginx", **fields)


def keys(resources):
    return [r.key for r in resources]


class TestBuild:
    """Edges come from references and explicit depends_on."""

    def test_reference_adds_edge(self):
        graph = Graph.build([
            NetworkResource(name="cloud"),
            container("web", network="${network.cloud.name}"),
        ])
        assert graph.dependencies("container.web") == ["network.cloud"]
        assert graph.dependents("network.cloud") == ["container.web"]

    def test_depends_on_adds_edge(self):
        graph = Graph.build([
            container("db"),
            container("web", depends_on=["container.db"]),
        ])
        assert graph.dependencies("container.web") == ["container.db"]

    def test_embedded_reference(self):
        graph = Graph.build([
            container("db"),
            container("web", environment={"DB": "postgres://${container.db.fqdn}:5432"}),
        ])
        assert graph.dependencies("container.web") == ["container.db"]

    def test_unknown_reference(self):
        with pytest.raises(UnresolvedReferenceError) as exc_info:
            Graph.build([container("web", network="${network.missing.name}")])
        assert exc_info.value.reference == "${network.missing.name}"
        assert exc_info.value.resource == "container.web"

    def test_unknown_depends_on(self):
        with pytest.raises(UnresolvedReferenceError):
            Graph.build([container("web", depends_on=["container.nope"])])

    def test_duplicate_resource(self):
        with pytest.raises(BlueprintError):
            Graph.build([container("web"), container("web")])

    def test_same_name_different_types(self):
        graph = Graph.build([NetworkResource(name="web"), container("web", network="${network.web.name}")])
        assert len(graph) == 2

    def test_cycle(self):
        with pytest.raises(CycleError) as exc_info:
            Graph.build([
                container("a", environment={"B": "${container.b.fqdn}"}),
                container("b", environment={"C": "${container.c.fqdn}"}),
                container("c", environment={"A": "${container.a.fqdn}"}),
            ])
        cycle = exc_info.value.cycle
        assert set(cycle) == {"container.a", "container.b", "container.c"}
        assert cycle[0] == cycle[-1]
        assert "container.a" in str(exc_info.value)

    def test_self_reference_is_cycle(self):
        with pytest.raises(CycleError):
            Graph.build([container("a", environment={"SELF": "${container.a.fqdn}"})])


class TestTopologicalOrder:
    """Deterministic order respecting every edge."""

    def test_dependencies_precede_dependents(self):
        resources = [
            container("web", network="${network.cloud.name}", depends_on=["container.db"]),
            container("db", network="${network.cloud.name}"),
            NetworkResource(name="cloud"),
            ExecResource(name="seed", command="echo", depends_on=["container.db"]),
        ]
        graph = Graph.build(resources)
        order = keys(graph.topological_order())
        for resource in resources:
            for dep in graph.dependencies(resource.key):
                assert order.index(dep) < order.index(resource.key)

    def test_ties_follow_declaration_order(self):
        graph = Graph.build([container("c"), container("a"), container("b")])
        assert keys(graph.topological_order()) == ["container.c", "container.a", "container.b"]

    def test_order_is_stable(self):
        resources = [
            NetworkResource(name="cloud"),
            container("b", network="${network.cloud.name}"),
            container("a", network="${network.cloud.name}"),
        ]
        first = keys(Graph.build(resources).topological_order())
        second = keys(Graph.build(resources).topological_order())
        assert first == second == ["network.cloud", "container.b", "container.a"]


@pytest.fixture
def diamond():
    """network.cloud -> (container.a, container.b) -> container.c, plus an unrelated container.d."""
    return Graph.build([
        NetworkResource(name="cloud"),
        container("a", network="${network.cloud.name}"),
        container("b", network="${network.cloud.name}"),
        container("c", depends_on=["container.a", "container.b"]),
        container("d"),
    ])


class TestWalk:
    """Visiting resources concurrently while honouring the partial order."""

    def test_visits_everything(self, diamond):
        visited = []
        result = diamond.walk(diamond.topological_order(), lambda r: visited.append(r.key), max_workers=4)
        assert result.ok
        assert sorted(visited) == sorted(result.completed)
        assert len(visited) == 5

    def test_never_visits_before_dependencies(self, diamond):
        done = set()
        lock = threading.Lock()
        violations = []

        def visit(resource):
            with lock:
                missing = set(diamond.dependencies(resource.key)) - done
                if missing:
                    violations.append(resource.key)
            time.sleep(0.01)
            with lock:
                done.add(resource.key)

        diamond.walk(diamond.topological_order(), visit, max_workers=4)
        assert violations == []

    def test_independent_branches_run_concurrently(self, diamond):
        active = 0
        peak = 0
        lock = threading.Lock()

        def visit(resource):
            nonlocal active, peak
            with lock:
                active += 1
                peak = max(peak, active)
            time.sleep(0.05)
            with lock:
                active -= 1

        diamond.walk(diamond.topological_order(), visit, max_workers=4)
        assert peak >= 2

    def test_single_worker_is_sequential(self, diamond):
        order = diamond.topological_order()
        visited = []
        diamond.walk(order, lambda r: visited.append(r.key), max_workers=1)
        assert visited == keys(order)

    def test_failure_skips_transitive_dependents(self, diamond):
        visited = []

        def visit(resource):
            if resource.key == "container.a":
                raise RuntimeError("boom")
            visited.append(resource.key)

        result = diamond.walk(diamond.topological_order(), visit, max_workers=2)
        assert list(result.failed) == ["container.a"]
        assert str(result.failed["container.a"]) == "boom"
        assert result.skipped == ["container.c"]
        assert "container.c" not in visited
        assert set(visited) == {"network.cloud", "container.b", "container.d"}
        assert not result.ok

    def test_root_failure_skips_whole_subtree(self, diamond):
        def visit(resource):
            if resource.key == "network.cloud":
                raise RuntimeError("no network")

        result = diamond.walk(diamond.topological_order(), visit, max_workers=4)
        assert set(result.skipped) == {"container.a", "container.b", "container.c"}
        assert result.completed == ["container.d"]

    def test_reverse_walk_waits_for_dependents(self, diamond):
        visited = []
        diamond.walk(list(reversed(diamond.topological_order())), lambda r: visited.append(r.key), max_workers=1)
        assert visited.index("container.c") < visited.index("container.a")
        assert visited.index("container.a") < visited.index("network.cloud")
        assert visited.index("container.b") < visited.index("network.cloud")

    def test_reverse_walk_failure_skips_dependencies(self, diamond):
        def visit(resource):
            if resource.key == "container.c":
                raise RuntimeError("stuck")

        result = diamond.walk(list(reversed(diamond.topological_order())), visit, max_workers=2)
        assert set(result.skipped) == {"container.a", "container.b", "network.cloud"}
        assert result.completed == ["container.d"]

    def test_subset_ignores_outside_prerequisites(self, diamond):
        subset = [r for r in diamond.topological_order() if r.key in ("container.c", "container.d")]
        visited = []
        result = diamond.walk(subset, lambda r: visited.append(r.key))
        assert result.ok
        assert sorted(visited) == ["container.c", "container.d"]
