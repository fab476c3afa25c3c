"""
CLI command for planning (dry-run) a stack deployment.
"""

import json

from rich.markup import escape

from stackgraph.cli.ux import console, error, header, print_outputs, warning
from stackgraph.core.errors import ExitCode, main_with_error_handling
from stackgraph.orchestration.results import PlanResult
from stackgraph.specs.loader import load_stack


def print_plan_summary(plan: PlanResult, verbose: bool = False) -> None:
    """Print plan summary."""
    console.print()
    header(f"Plan: {plan.stack_name}")
    console.print()

    if plan.errors:
        error("Errors:")
        for err in plan.errors:
            console.print(f"   [error]•[/error] {escape(err)}")
        console.print()
        return

    if not plan.resources:
        warning("No resources declared in stack")
        console.print()
        return

    console.print("[bold]Resources will be created in this order:[/bold]")
    console.print()

    for step, node_id in enumerate(plan.order, 1):
        resource = plan.resources[node_id]
        console.print(
            f"  [muted]{step:>2}.[/muted] [success]+[/success] {node_id} "
            f"[frost]({resource['kind']})[/frost]"
        )
        if resource["depends_on"]:
            console.print(f"      [muted]└ after {', '.join(resource['depends_on'])}[/muted]")
        if verbose:
            for key, value in resource["config"].items():
                console.print(f"      [muted]{key}:[/muted] {escape(str(value))}")
    console.print()

    if len(plan.waves) > 1:
        console.print("[bold]Parallel waves:[/bold]")
        for index, wave in enumerate(plan.waves, 1):
            console.print(f"  [muted]{index}.[/muted] {', '.join(wave)}")
        console.print()

    print_outputs(plan.outputs, title="Outputs (known after apply):")

    for warn in plan.warnings:
        warning(warn)

    console.print(f"[bold]Total:[/bold] {plan.total_resources} resources")
    console.print()
    console.print("[muted]To apply these changes, run:[/muted]")
    console.print(f"  [info]stackgraph apply {plan.source or '<stack.yaml>'}[/info]")
    console.print()


def print_plan_json(plan: PlanResult) -> None:
    """Print plan in JSON format."""
    print(json.dumps(plan.to_dict(), indent=2))


@main_with_error_handling()
def plan_command(stack_yaml: str, output_format: str = "text", verbose: bool = False) -> int:
    """
    Preview the deployment order of a stack (dry-run).

    Args:
        stack_yaml: Path to stack YAML file
        output_format: Output format (text, json)
        verbose: Show resource configs with reference placeholders

    Returns:
        Exit code (0 for success, 12 for invalid declarations)
    """
    stack = load_stack(stack_yaml)
    result = stack.preview()

    if output_format == "json":
        print_plan_json(result)
    else:
        print_plan_summary(result, verbose=verbose)

    return ExitCode.SUCCESS if result.success else ExitCode.VALIDATION_ERROR
