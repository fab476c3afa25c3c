"""Core modules for stackgraph - centralized error definitions."""

from stackgraph.core.errors import (
    AttributeNotFoundError,
    ConfigurationError,
    CyclicDependencyError,
    DuplicateIdError,
    ExitCode,
    InvalidStateTransitionError,
    NotYetProvisionedError,
    ProviderError,
    StackGraphError,
    UnknownResourceError,
    ValidationError,
    format_error_message,
    main_with_error_handling,
)

__all__ = [
    "ExitCode",
    "StackGraphError",
    "ConfigurationError",
    "ValidationError",
    "DuplicateIdError",
    "UnknownResourceError",
    "CyclicDependencyError",
    "AttributeNotFoundError",
    "NotYetProvisionedError",
    "InvalidStateTransitionError",
    "ProviderError",
    "main_with_error_handling",
    "format_error_message",
]
