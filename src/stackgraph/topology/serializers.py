"""
Topology serializers: JSON, Mermaid, and DOT output formats.

Pure functions that convert a stack's dependency graph to string output.
Edges point from a resource to the resources that need it first.
"""

from __future__ import annotations

import json
import re
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from stackgraph.graph.models import DependencyGraph
    from stackgraph.graph.registry import ResourceRegistry

# Nord palette mapped to resource states
STATE_COLORS = {
    "declared": "#4C566A",
    "planned": "#5E81AC",
    "provisioning": "#EBCB8B",
    "provisioned": "#A3BE8C",
    "failed": "#BF616A",
    "torn_down": "#434C5E",
}

KIND_SHAPES = {
    "storage-bucket": "cylinder",
    "queue": "parallelogram",
    "cdn": "hexagon",
    "load-balancer": "diamond",
    "network": "box3d",
}


def serialize_json(graph: DependencyGraph, registry: ResourceRegistry) -> str:
    """Serialize the graph with node kinds and states as JSON."""
    payload = graph.to_dict()
    payload["nodes"] = [
        {
            "id": node_id,
            "kind": registry.get(node_id).kind,
            "state": registry.get(node_id).state.value,
        }
        for node_id in graph.nodes
    ]
    return json.dumps(payload, indent=2)


def serialize_mermaid(graph: DependencyGraph, registry: ResourceRegistry) -> str:
    """
    Serialize the graph as a Mermaid flowchart.

    Uses graph LR layout with the resource kind in each label, cylinder
    shape for buckets and Nord-themed classDef styles per state.
    """
    lines: list[str] = ["graph LR"]

    for node_id in graph.nodes:
        node = registry.get(node_id)
        mid = _mermaid_id(node_id)
        label = f"{node_id}<br/>{node.kind}"
        if node.kind == "storage-bucket":
            lines.append(f"    {mid}[({label})]")
        else:
            lines.append(f"    {mid}[{label}]")

    lines.append("")

    for source, target in graph.edges():
        lines.append(f"    {_mermaid_id(source)} --> {_mermaid_id(target)}")

    lines.append("")

    for state, color in STATE_COLORS.items():
        lines.append(f"    classDef {state} fill:{color},stroke:#2E3440,color:#ECEFF4")

    for node_id in graph.nodes:
        lines.append(f"    class {_mermaid_id(node_id)} {registry.get(node_id).state.value}")

    return "\n".join(lines)


def serialize_dot(graph: DependencyGraph, registry: ResourceRegistry) -> str:
    """Serialize the graph as a Graphviz DOT digraph, coloured by state."""
    lines: list[str] = [
        "digraph stack {",
        "    rankdir=LR;",
        '    node [style=filled, fontname="sans-serif", fontcolor="#ECEFF4"];',
        '    edge [fontname="sans-serif", fontsize=10];',
        "",
    ]

    for node_id in graph.nodes:
        node = registry.get(node_id)
        attrs: list[str] = [f'label="{node_id}\\n{node.kind}"']
        attrs.append(f'fillcolor="{STATE_COLORS.get(node.state.value, "#4C566A")}"')
        attrs.append(f"shape={KIND_SHAPES.get(node.kind, 'box')}")
        lines.append(f"    {_dot_id(node_id)} [{', '.join(attrs)}];")

    lines.append("")

    for source, target in graph.edges():
        lines.append(f"    {_dot_id(source)} -> {_dot_id(target)};")

    lines.append("}")

    return "\n".join(lines)


def _mermaid_id(name: str) -> str:
    """Convert resource id to valid Mermaid node ID."""
    return re.sub(r"[^a-zA-Z0-9]", "_", name)


def _dot_id(name: str) -> str:
    """Convert resource id to valid DOT node ID."""
    return re.sub(r"[^a-zA-Z0-9]", "_", name)
