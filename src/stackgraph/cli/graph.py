"""
CLI command for dependency graph export.

Commands:
    stackgraph graph <stack.yaml>                  - Export as JSON
    stackgraph graph <stack.yaml> --format mermaid - Export as Mermaid
    stackgraph graph <stack.yaml> --format dot     - Export as DOT
"""

from __future__ import annotations

from typing import Optional

from stackgraph.cli.ux import console, error
from stackgraph.core.errors import ExitCode, main_with_error_handling
from stackgraph.specs.loader import load_stack
from stackgraph.topology.serializers import serialize_dot, serialize_json, serialize_mermaid

SERIALIZERS = {
    "json": serialize_json,
    "mermaid": serialize_mermaid,
    "dot": serialize_dot,
}


@main_with_error_handling()
def graph_command(
    stack_yaml: str,
    output_format: str = "json",
    output_file: Optional[str] = None,
) -> int:
    """
    Export a stack's dependency graph.

    Args:
        stack_yaml: Path to stack YAML file
        output_format: Output format (json, mermaid, dot)
        output_file: Optional file path for output

    Returns:
        Exit code (0 on success)
    """
    serializer = SERIALIZERS.get(output_format)
    if serializer is None:
        error(f"Unknown format: {output_format}")
        return ExitCode.CONFIG_ERROR

    stack = load_stack(stack_yaml)
    output = serializer(stack.build_graph(), stack.registry)

    if output_file:
        with open(output_file, "w") as f:
            f.write(output)
            f.write("\n")
        console.print(f"[green]Wrote {output_format} output to {output_file}[/green]")
    else:
        # Machine-readable output; rich would treat brackets as markup
        print(output)

    return ExitCode.SUCCESS
