"""
Cycle detection and topological planning.

The planner is pure: it reads the dependency graph and returns an
ordering. It never changes node state and never talks to a provider.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any

import structlog

from stackgraph.core.errors import CyclicDependencyError
from stackgraph.graph.models import DependencyGraph

logger = structlog.get_logger()


class _Mark(Enum):
    UNVISITED = 0
    IN_PROGRESS = 1
    DONE = 2


@dataclass(frozen=True)
class Plan:
    """A validated provisioning order over a dependency graph."""

    order: tuple[str, ...]
    graph: DependencyGraph

    @property
    def teardown_order(self) -> tuple[str, ...]:
        return tuple(reversed(self.order))

    def dependencies_of(self, node_id: str) -> list[str]:
        return self.graph.dependencies(node_id)

    def dependents_of(self, node_id: str) -> list[str]:
        return self.graph.dependents(node_id)

    def waves(self) -> list[list[str]]:
        """Group ids into waves of mutually independent resources.

        A node sits one wave after the latest of its dependencies, so every
        wave can be provisioned at once once the previous waves are done.
        """
        level: dict[str, int] = {}
        for node_id in self.order:
            deps = self.graph.dependencies(node_id)
            level[node_id] = 1 + max((level[d] for d in deps), default=-1)

        waves: list[list[str]] = []
        for node_id in self.order:
            while len(waves) <= level[node_id]:
                waves.append([])
            waves[level[node_id]].append(node_id)
        return waves

    def __len__(self) -> int:
        return len(self.order)

    def to_dict(self) -> dict[str, Any]:
        """Serialize to dictionary."""
        return {
            "order": list(self.order),
            "waves": self.waves(),
            "edges": [{"source": a, "target": b} for a, b in self.graph.edges()],
        }


def plan(graph: DependencyGraph) -> Plan:
    """
    Linearise the graph so every edge ``a -> b`` has ``a`` before ``b``.

    Depth-first over each node's dependencies with three-colour marking.
    Roots and dependencies are visited in declaration order, so the same
    graph always yields the same plan.

    A node is emitted right after its dependencies, which pulls those
    dependencies ahead of anything declared between them and the node:
    for ``x{depends_on z}, y, z`` the plan is ``z, x, y``. Nodes without
    edges keep their declaration order relative to one another.

    Raises:
        CyclicDependencyError: on the first back edge, carrying the cycle
            in edge direction with its first id repeated at the end
    """
    marks = {node_id: _Mark.UNVISITED for node_id in graph.nodes}
    order: list[str] = []
    path: list[str] = []

    def visit(node_id: str) -> None:
        marks[node_id] = _Mark.IN_PROGRESS
        path.append(node_id)
        for dep in graph.dependencies(node_id):
            if marks[dep] is _Mark.IN_PROGRESS:
                # path[start:] walks dependents -> dependencies; flip it
                start = path.index(dep)
                cycle = [dep, *reversed(path[start + 1 :]), dep]
                raise CyclicDependencyError(cycle)
            if marks[dep] is _Mark.UNVISITED:
                visit(dep)
        path.pop()
        marks[node_id] = _Mark.DONE
        order.append(node_id)

    for node_id in graph.nodes:
        if marks[node_id] is _Mark.UNVISITED:
            visit(node_id)

    result = Plan(order=tuple(order), graph=graph)
    logger.debug("plan_built", order=list(result.order))
    return result
