"""
CLI command for tearing a stack down.
"""

import asyncio
from typing import Optional

from stackgraph.cli.apply import (
    open_stack,
    print_apply_json,
    print_apply_summary,
    record_state,
)
from stackgraph.cli.ux import spinner, warning
from stackgraph.config.settings import get_settings
from stackgraph.core.errors import ExitCode, main_with_error_handling
from stackgraph.providers import create_provider


@main_with_error_handling()
def destroy_command(
    stack_yaml: str,
    provider_name: Optional[str] = None,
    concurrency: Optional[int] = None,
    state_file: Optional[str] = None,
    output_format: str = "text",
    verbose: bool = False,
) -> int:
    """
    Destroy the provisioned resources of a stack in reverse order.

    Resources the provider no longer has are treated as already gone.

    Returns:
        Exit code (0 for success, 11 when a provider call failed)
    """
    settings = get_settings()
    stack, state_path = open_stack(stack_yaml, state_file, settings)

    if not any(node.is_provisioned for node in stack.registry):
        warning(f"Nothing to destroy: no provisioned resources recorded in {state_path}")
        return ExitCode.SUCCESS

    provider = create_provider(provider_name or settings.provider)
    try:
        with spinner(f"Destroying {stack.name}..."):
            result = asyncio.run(
                stack.destroy(
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

    return ExitCode.SUCCESS if result.success else ExitCode.PROVIDER_ERROR
