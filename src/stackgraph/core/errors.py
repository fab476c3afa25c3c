"""
Unified error handling for stackgraph.

Every error raised by the declaration, planning and execution pipeline
derives from StackGraphError and carries an exit code plus a details
mapping with enough context (node id, kind, cycle) to act on it without
inspecting the graph.

Exit Codes:
- 0: Success
- 10: Configuration error
- 11: Provider error (resource creation or destruction failed)
- 12: Validation error (bad declarations, unknown references, cycles)
- 127: Internal error (contract violations such as resolving too early)
"""

from __future__ import annotations

import functools
import sys
import traceback
from enum import IntEnum
from typing import Any, Callable, Sequence, TypeVar

import structlog

logger = structlog.get_logger()


class ExitCode(IntEnum):
    """Standardized exit codes for CLI commands."""

    SUCCESS = 0
    CONFIG_ERROR = 10
    PROVIDER_ERROR = 11
    VALIDATION_ERROR = 12
    UNKNOWN_ERROR = 127


class StackGraphError(Exception):
    """Base exception for stackgraph errors with exit code support."""

    exit_code: ExitCode = ExitCode.UNKNOWN_ERROR
    show_traceback: bool = False

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class ConfigurationError(StackGraphError):
    """Raised for configuration-related errors."""

    exit_code = ExitCode.CONFIG_ERROR


class ValidationError(StackGraphError):
    """Raised for declaration and planning failures."""

    exit_code = ExitCode.VALIDATION_ERROR


class DuplicateIdError(ValidationError):
    """Raised when a resource id (or output name) is declared twice."""

    def __init__(self, resource_id: str, what: str = "resource"):
        super().__init__(
            f"Duplicate {what} id: {resource_id!r}",
            {"resource_id": resource_id},
        )
        self.resource_id = resource_id


class UnknownResourceError(ValidationError):
    """Raised when a resource id is not present in the registry."""

    def __init__(self, resource_id: str, referenced_by: str | None = None):
        message = f"Unknown resource: {resource_id!r}"
        details: dict[str, Any] = {"resource_id": resource_id}
        if referenced_by is not None:
            message = f"{message} (referenced by {referenced_by!r})"
            details["referenced_by"] = referenced_by
        super().__init__(message, details)
        self.resource_id = resource_id
        self.referenced_by = referenced_by


class CyclicDependencyError(ValidationError):
    """Raised when the dependency graph contains a cycle."""

    def __init__(self, cycle: Sequence[str]):
        self.cycle = list(cycle)
        super().__init__(
            f"Cyclic dependency: {' -> '.join(self.cycle)}",
            {"cycle": self.cycle},
        )


class AttributeNotFoundError(ValidationError):
    """Raised when a reference points at an attribute the provider never returned."""

    def __init__(self, resource_id: str, attribute: str):
        super().__init__(
            f"Resource {resource_id!r} has no attribute {attribute!r}",
            {"resource_id": resource_id, "attribute": attribute},
        )
        self.resource_id = resource_id
        self.attribute = attribute


class NotYetProvisionedError(StackGraphError):
    """Raised when a reference is resolved before its target is provisioned.

    Seeing this outside of tests means the executor was driven without a
    valid plan.
    """

    def __init__(self, resource_id: str, state: str):
        super().__init__(
            f"Resource {resource_id!r} is not provisioned (state={state})",
            {"resource_id": resource_id, "state": state},
        )
        self.resource_id = resource_id
        self.state = state


class InvalidStateTransitionError(StackGraphError):
    """Raised when a node is moved along an edge its lifecycle does not allow."""

    def __init__(self, resource_id: str, current: str, requested: str):
        super().__init__(
            f"Resource {resource_id!r} cannot move from {current} to {requested}",
            {"resource_id": resource_id, "from_state": current, "to_state": requested},
        )
        self.resource_id = resource_id


class ProviderError(StackGraphError):
    """Raised when the provider fails to create or destroy a resource."""

    exit_code = ExitCode.PROVIDER_ERROR

    def __init__(self, resource_id: str, kind: str, reason: str):
        super().__init__(
            f"Provider failed on {resource_id!r} ({kind}): {reason}",
            {"resource_id": resource_id, "kind": kind},
        )
        self.resource_id = resource_id
        self.kind = kind
        self.reason = reason


F = TypeVar("F", bound=Callable[..., int])

SIGINT_EXIT = 130


def format_error_message(error: StackGraphError) -> str:
    """Render an error and its details on one line for the terminal."""
    if not error.details:
        return error.message
    detail_str = ", ".join(f"{k}={v}" for k, v in error.details.items())
    return f"{error.message} ({detail_str})"


def main_with_error_handling(
    *,
    show_traceback: bool = False,
    log_errors: bool = True,
) -> Callable[[F], F]:
    """
    Turn exceptions escaping a CLI command into its exit code.

    StackGraphError subclasses exit with their own code and print a one-line
    message to stderr; Ctrl-C exits with 130; anything else is an internal
    error (127).

    Args:
        show_traceback: Always print the traceback to stderr
        log_errors: Also emit a structured ``command_error`` event
    """

    def decorator(func: F) -> F:
        @functools.wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> int:
            try:
                return func(*args, **kwargs)
            except StackGraphError as e:
                _report(type(e).__name__, e.message, e.exit_code, e.details, log_errors)
                print(f"Error: {format_error_message(e)}", file=sys.stderr)
                if e.show_traceback or show_traceback:
                    traceback.print_exc(file=sys.stderr)
                return e.exit_code
            except KeyboardInterrupt:
                if log_errors:
                    logger.info("command_interrupted", command=func.__name__)
                return SIGINT_EXIT
            except Exception as e:
                _report(type(e).__name__, str(e), ExitCode.UNKNOWN_ERROR, {}, log_errors)
                print(f"Internal error: {e}", file=sys.stderr)
                if show_traceback:
                    traceback.print_exc(file=sys.stderr)
                return ExitCode.UNKNOWN_ERROR

        return wrapper  # type: ignore[return-value]

    return decorator


def _report(
    error_type: str,
    message: str,
    exit_code: int,
    details: dict[str, Any],
    enabled: bool,
) -> None:
    if enabled:
        logger.error(
            "command_error",
            error_type=error_type,
            message=message,
            exit_code=int(exit_code),
            **details,
        )
