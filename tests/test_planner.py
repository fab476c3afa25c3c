"""Tests for graph building and topological planning."""

import random

import pytest

from stackgraph.core.errors import CyclicDependencyError, UnknownResourceError
from stackgraph.graph.builder import build_graph
from stackgraph.graph.models import DependencyGraph, ResourceState
from stackgraph.graph.planner import plan
from stackgraph.graph.registry import ResourceRegistry
from stackgraph.orchestration.stack import Stack


def _assert_respects_edges(order, graph):
    position = {node_id: i for i, node_id in enumerate(order)}
    for before, after in graph.edges():
        assert position[before] < position[after], f"{before} must precede {after}"


def _random_declarations(seed, shape="random", cyclic=False):
    """Declarations for a random graph of 20-50 resources.

    Ids are numbered in a topological rank and declared in shuffled order;
    each edge is expressed either as a reference or as ``depends_on``.
    Returns the declarations and each id's set of dependencies.
    """
    rng = random.Random(seed)
    ids = [f"r{i:02d}" for i in range(rng.randint(20, 50))]
    deps = {node_id: set() for node_id in ids}

    if shape == "chain":
        for before, after in zip(ids, ids[1:]):
            deps[after].add(before)
    elif shape == "fan_in":
        deps[ids[-1]].update(ids[:-1])
    for i, node_id in enumerate(ids):
        deps[node_id].update(earlier for earlier in ids[:i] if rng.random() < 0.08)

    if cyclic:
        loop = sorted(rng.sample(ids, rng.randint(2, 6)))
        for before, after in zip(loop, loop[1:]):
            deps[after].add(before)
        deps[loop[0]].add(loop[-1])

    declared = list(ids)
    rng.shuffle(declared)
    declarations = []
    for node_id in declared:
        config = {"name": node_id}
        depends_on = []
        for dep in sorted(deps[node_id]):
            if rng.random() < 0.5:
                config[f"from_{dep}"] = {"ref": dep, "attribute": "arn"}
            else:
                depends_on.append(dep)
        declarations.append(
            {"id": node_id, "kind": "queue", "config": config, "depends_on": depends_on}
        )
    return declarations, deps


class TestGraphBuilder:
    """Tests for deriving edges from references and depends_on."""

    def test_reference_and_structural_edges(self, web_registry):
        graph = build_graph(web_registry)

        assert set(graph.edges()) == {
            ("vpc", "alb"),
            ("vpc", "asg"),
            ("alb", "listener"),
            ("listener", "targets"),
            ("asg", "targets"),
        }
        assert graph.nodes == ["vpc", "alb", "listener", "targets", "asg"]

    def test_unknown_reference_before_any_create(self, provider):
        registry = ResourceRegistry.from_declarations(
            [
                {"id": "q1", "kind": "queue"},
                {
                    "id": "worker",
                    "kind": "function",
                    "config": {"queueId": {"ref": "q2", "attribute": "arn"}},
                },
            ]
        )

        with pytest.raises(UnknownResourceError) as exc_info:
            build_graph(registry)

        assert exc_info.value.resource_id == "q2"
        assert exc_info.value.referenced_by == "worker"
        assert provider.calls == []

    def test_unknown_depends_on(self):
        registry = ResourceRegistry.from_declarations(
            [{"id": "listener", "kind": "listener", "depends_on": ["alb"]}]
        )

        with pytest.raises(UnknownResourceError, match="alb"):
            build_graph(registry)

    def test_unknown_output_target(self):
        registry = ResourceRegistry.from_declarations(
            [{"id": "q1", "kind": "queue"}],
            outputs={"Url": {"ref": "missing", "attribute": "queueUrl"}},
        )

        with pytest.raises(UnknownResourceError) as exc_info:
            build_graph(registry)
        assert exc_info.value.referenced_by == "output:Url"

    def test_duplicate_reference_counted_once(self):
        registry = ResourceRegistry.from_declarations(
            [
                {"id": "vpc", "kind": "network"},
                {
                    "id": "asg",
                    "kind": "fleet",
                    "depends_on": ["vpc"],
                    "config": {
                        "vpcId": {"ref": "vpc", "attribute": "vpcId"},
                        "subnets": {"ref": "vpc", "attribute": "subnetIds"},
                    },
                },
            ]
        )

        assert build_graph(registry).get_edge_count() == 1


class TestPlan:
    """Tests for plan ordering."""

    def test_web_topology_order(self, web_registry):
        graph = build_graph(web_registry)
        result = plan(graph)

        assert result.order[0] == "vpc"
        assert result.order.index("listener") < result.order.index("targets")
        assert result.order.index("asg") < result.order.index("targets")
        assert sorted(result.order) == sorted(web_registry.ids())
        _assert_respects_edges(result.order, graph)

    def test_declaration_order_breaks_ties(self, web_registry):
        result = plan(build_graph(web_registry))
        assert result.order == ("vpc", "alb", "listener", "asg", "targets")

    def test_plan_is_deterministic(self, web_registry):
        graph = build_graph(web_registry)
        assert plan(graph).order == plan(graph).order

    def test_independent_nodes_keep_declaration_order(self):
        registry = ResourceRegistry.from_declarations(
            [
                {"id": "queue", "kind": "queue"},
                {"id": "bucket", "kind": "storage-bucket"},
                {"id": "handler", "kind": "function"},
            ]
        )
        assert plan(build_graph(registry)).order == ("queue", "bucket", "handler")

    def test_later_dependency_is_pulled_ahead_of_earlier_independent(self):
        registry = ResourceRegistry.from_declarations(
            [
                {"id": "x", "kind": "queue", "depends_on": ["z"]},
                {"id": "y", "kind": "queue"},
                {"id": "z", "kind": "queue"},
            ]
        )
        assert plan(build_graph(registry)).order == ("z", "x", "y")

    @pytest.mark.parametrize("shape", ["random", "chain", "fan_in"])
    @pytest.mark.parametrize("seed", range(8))
    def test_random_acyclic_graphs(self, seed, shape):
        declarations, deps = _random_declarations(seed, shape)
        registry = ResourceRegistry.from_declarations(declarations)
        graph = build_graph(registry)

        result = plan(graph)

        assert len(result.order) == len(registry)
        assert sorted(result.order) == sorted(registry.ids())
        assert set(graph.edges()) == {(dep, node_id) for node_id in deps for dep in deps[node_id]}
        _assert_respects_edges(result.order, graph)

    def test_planning_does_not_change_state(self, web_registry):
        plan(build_graph(web_registry))
        assert all(node.state is ResourceState.DECLARED for node in web_registry)

    def test_empty_graph(self):
        result = plan(DependencyGraph())
        assert result.order == ()
        assert result.waves() == []

    def test_teardown_order_is_reversed(self, web_registry):
        result = plan(build_graph(web_registry))
        assert result.teardown_order == tuple(reversed(result.order))

    def test_waves(self, web_registry):
        result = plan(build_graph(web_registry))
        assert result.waves() == [["vpc"], ["alb", "asg"], ["listener"], ["targets"]]

    def test_dependency_accessors(self, web_registry):
        result = plan(build_graph(web_registry))
        assert result.dependencies_of("targets") == ["listener", "asg"]
        assert result.dependents_of("vpc") == ["alb", "asg"]

    def test_to_dict(self, web_registry):
        d = plan(build_graph(web_registry)).to_dict()
        assert d["order"][0] == "vpc"
        assert {"source": "alb", "target": "listener"} in d["edges"]


class TestCycleDetection:
    """Tests for CyclicDependencyError reporting."""

    def test_two_node_cycle(self):
        registry = ResourceRegistry.from_declarations(
            [
                {"id": "a", "kind": "queue", "config": {"peer": {"ref": "b", "attribute": "arn"}}},
                {"id": "b", "kind": "queue", "config": {"peer": {"ref": "a", "attribute": "arn"}}},
            ]
        )

        with pytest.raises(CyclicDependencyError) as exc_info:
            plan(build_graph(registry))

        assert exc_info.value.cycle == ["a", "b", "a"]

    def test_cycle_listed_in_edge_direction(self):
        # x needs z, z needs y, y needs x
        registry = ResourceRegistry.from_declarations(
            [
                {"id": "x", "kind": "queue", "depends_on": ["z"]},
                {"id": "y", "kind": "queue", "depends_on": ["x"]},
                {"id": "z", "kind": "queue", "depends_on": ["y"]},
            ]
        )
        graph = build_graph(registry)

        with pytest.raises(CyclicDependencyError) as exc_info:
            plan(graph)

        cycle = exc_info.value.cycle
        assert cycle == ["x", "y", "z", "x"]
        for before, after in zip(cycle, cycle[1:]):
            assert (before, after) in set(graph.edges())

    def test_self_reference(self):
        registry = ResourceRegistry.from_declarations(
            [{"id": "a", "kind": "queue", "config": {"dlq": {"ref": "a", "attribute": "arn"}}}]
        )

        with pytest.raises(CyclicDependencyError) as exc_info:
            plan(build_graph(registry))

        assert exc_info.value.cycle == ["a", "a"]

    def test_cycle_behind_acyclic_prefix(self):
        registry = ResourceRegistry.from_declarations(
            [
                {"id": "vpc", "kind": "network"},
                {"id": "a", "kind": "queue", "depends_on": ["vpc", "b"]},
                {"id": "b", "kind": "queue", "depends_on": ["a"]},
            ]
        )

        with pytest.raises(CyclicDependencyError) as exc_info:
            plan(build_graph(registry))

        assert "vpc" not in exc_info.value.cycle

    @pytest.mark.asyncio
    async def test_cycle_rejected_before_any_provider_call(self, provider):
        stack = Stack(name="cyclic")
        stack.declare("queue", "a", {"peer": Stack.ref("b", "arn")})
        stack.declare("queue", "b", {"peer": Stack.ref("a", "arn")})

        with pytest.raises(CyclicDependencyError):
            await stack.apply(provider)

        assert provider.calls == []
        assert set(stack.states().values()) == {ResourceState.DECLARED}

    @pytest.mark.asyncio
    @pytest.mark.parametrize("seed", range(8))
    async def test_random_cyclic_graphs(self, seed, provider):
        declarations, deps = _random_declarations(seed, cyclic=True)
        stack = Stack(name="cyclic", registry=ResourceRegistry.from_declarations(declarations))

        with pytest.raises(CyclicDependencyError) as exc_info:
            await stack.apply(provider)

        cycle = exc_info.value.cycle
        assert cycle[0] == cycle[-1]
        assert len(cycle) >= 3
        for before, after in zip(cycle, cycle[1:]):
            assert before in deps[after]
        assert provider.calls == []
