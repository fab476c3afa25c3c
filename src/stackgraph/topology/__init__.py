"""
Topology export for stack dependency graph visualization.
"""

from stackgraph.topology.serializers import (
    serialize_dot,
    serialize_json,
    serialize_mermaid,
)

__all__ = [
    "serialize_json",
    "serialize_mermaid",
    "serialize_dot",
]
