"""
CLI commands for stackgraph.
"""

from stackgraph.cli.apply import apply_command
from stackgraph.cli.destroy import destroy_command
from stackgraph.cli.graph import graph_command
from stackgraph.cli.plan import plan_command

__all__ = [
    "apply_command",
    "destroy_command",
    "graph_command",
    "plan_command",
]
