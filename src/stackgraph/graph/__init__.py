"""Resource graph: declarations, dependency edges, plans and deferred values."""

from stackgraph.graph.builder import GraphBuilder, build_graph
from stackgraph.graph.models import (
    DependencyGraph,
    Output,
    Reference,
    ResourceNode,
    ResourceState,
)
from stackgraph.graph.planner import Plan, plan
from stackgraph.graph.registry import ResourceRegistry, parse_markers
from stackgraph.graph.resolver import (
    iter_references,
    render_placeholders,
    resolve,
    resolve_config,
)

__all__ = [
    "DependencyGraph",
    "GraphBuilder",
    "Output",
    "Plan",
    "Reference",
    "ResourceNode",
    "ResourceRegistry",
    "ResourceState",
    "build_graph",
    "iter_references",
    "parse_markers",
    "plan",
    "render_placeholders",
    "resolve",
    "resolve_config",
]
