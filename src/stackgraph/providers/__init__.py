"""Provider utilities and built-in registrations."""

# Import built-in providers for side effects (registration)
from stackgraph.providers import memory as _memory  # noqa: F401
from stackgraph.providers.base import ProviderHealth, ResourceNotFoundError, ResourceProvider
from stackgraph.providers.registry import (
    create_provider,
    list_providers,
    register_provider,
)

__all__ = [
    "ProviderHealth",
    "ResourceNotFoundError",
    "ResourceProvider",
    "create_provider",
    "list_providers",
    "register_provider",
]
