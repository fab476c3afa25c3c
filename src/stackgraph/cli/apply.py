"""
CLI command for deploying a stack.
"""

import asyncio
import json
from pathlib import Path
from typing import Optional

from rich.markup import escape

from stackgraph.cli.ux import console, print_outputs, resource_line, spinner
from stackgraph.config.settings import Settings, get_settings
from stackgraph.core.errors import ExitCode, main_with_error_handling
from stackgraph.graph.models import ResourceState
from stackgraph.logging import bind_context
from stackgraph.orchestration.results import ApplyResult
from stackgraph.orchestration.stack import Stack
from stackgraph.providers import create_provider
from stackgraph.specs.loader import load_stack
from stackgraph.state import apply_state, capture_state, load_state, save_state


def open_stack(stack_yaml: str, state_file: Optional[str], settings: Settings) -> tuple[Stack, Path]:
    """Load a stack and restore what the state file says is provisioned."""
    stack = load_stack(stack_yaml)
    state_path = Path(state_file or settings.state_file)
    previous = load_state(state_path)
    log = bind_context(stack=stack.name, state_file=str(state_path))
    if previous is not None and previous.stack == stack.name:
        restored = apply_state(stack.registry, previous)
        log.info("state_restored", resources=len(restored))
    elif previous is not None:
        log.warning("state_stack_mismatch", recorded=previous.stack)
    return stack, state_path


def record_state(stack: Stack, state_path: Path) -> None:
    """Write the state file once any resource has left DECLARED."""
    if all(node.state is ResourceState.DECLARED for node in stack.registry):
        return
    save_state(capture_state(stack.name, stack.registry), state_path)


def print_apply_summary(result: ApplyResult, stack: Stack, verbose: bool = False) -> None:
    """Print apply/destroy summary with rich formatting."""
    console.print()
    destroying = result.action == "destroy"
    verb = "Destroyed" if destroying else "Provisioned"
    done_style = "torn_down" if destroying else "provisioned"

    for node_id in result.completed:
        resource_line("✓", node_id, stack.registry.get(node_id).kind, done_style)
    if verbose:
        for node_id in result.skipped:
            node = stack.registry.get(node_id)
            resource_line("-", node_id, node.kind, "muted", note=node.state.value)
    if result.failed_resource:
        node = stack.registry.get(result.failed_resource)
        resource_line("✗", node.id, node.kind, "failed")

    console.print()
    duration = f" in {result.duration_seconds:.1f}s" if result.duration_seconds > 0 else ""
    if result.success:
        console.print(f"[success]{verb} {result.total_resources} resources{duration}[/success]")
    else:
        console.print(
            f"[error]{verb} {result.total_resources} resources before failing{duration}[/error]"
        )
        for err in result.errors:
            console.print(f"  [muted]•[/muted] {escape(err)}")
    console.print()

    print_outputs(result.outputs)


def print_apply_json(result: ApplyResult) -> None:
    """Print apply result in JSON format."""
    print(json.dumps(result.to_dict(), indent=2, default=str))


@main_with_error_handling()
def apply_command(
    stack_yaml: str,
    provider_name: Optional[str] = None,
    concurrency: Optional[int] = None,
    state_file: Optional[str] = None,
    output_format: str = "text",
    verbose: bool = False,
) -> int:
    """
    Deploy every resource of a stack and print its outputs.

    Args:
        stack_yaml: Path to stack YAML file
        provider_name: Registered provider to deploy with
        concurrency: Maximum provider calls in flight
        state_file: Where provisioned attributes are recorded
        output_format: Output format (text, json)
        verbose: Also list unchanged resources

    Returns:
        Exit code (0 for success, 11 when a provider call failed, 12 when
        an output could not be resolved)
    """
    settings = get_settings()
    stack, state_path = open_stack(stack_yaml, state_file, settings)
    provider = create_provider(provider_name or settings.provider)

    try:
        with spinner(f"Applying {stack.name}..."):
            result = asyncio.run(
                stack.apply(
                    provider,
                    max_concurrency=concurrency or settings.max_concurrency,
                    provider_timeout=settings.provider_timeout,
                )
            )
    finally:
        record_state(stack, state_path)

    if output_format == "json":
        print_apply_json(result)
    else:
        print_apply_summary(result, stack, verbose=verbose)

    if result.success:
        return ExitCode.SUCCESS
    # Without a failed resource the only errors are unresolved outputs
    return ExitCode.PROVIDER_ERROR if result.failed_resource else ExitCode.VALIDATION_ERROR
