"""Dependency graph builder."""

from __future__ import annotations

import structlog

from stackgraph.core.errors import UnknownResourceError
from stackgraph.graph.models import DependencyGraph
from stackgraph.graph.registry import ResourceRegistry
from stackgraph.graph.resolver import iter_references

logger = structlog.get_logger()


class GraphBuilder:
    """Derives the dependency graph from declared references.

    Every Reference in a node's config adds ``target -> node``; every
    ``depends_on`` entry adds the same edge for structural containment
    that has no config value behind it (a listener inside its load
    balancer, a container inside its task definition).
    """

    def build(self, registry: ResourceRegistry) -> DependencyGraph:
        graph = DependencyGraph()
        for node in registry:
            graph.add_node(node.id)

        for node in registry:
            for reference in iter_references(node.config):
                if reference.target not in registry:
                    raise UnknownResourceError(reference.target, referenced_by=node.id)
                graph.add_edge(reference.target, node.id)
            for parent in node.depends_on:
                if parent not in registry:
                    raise UnknownResourceError(parent, referenced_by=node.id)
                graph.add_edge(parent, node.id)

        for output in registry.outputs:
            if output.reference.target not in registry:
                raise UnknownResourceError(
                    output.reference.target, referenced_by=f"output:{output.name}"
                )

        logger.debug(
            "graph_built",
            node_count=len(graph),
            edge_count=graph.get_edge_count(),
        )
        return graph


def build_graph(registry: ResourceRegistry) -> DependencyGraph:
    """Build the dependency graph for ``registry``."""
    return GraphBuilder().build(registry)
