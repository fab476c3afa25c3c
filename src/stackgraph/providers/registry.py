"""Named provider factories.

Providers register a factory under a name (``memory`` is built in); the CLI
and settings refer to providers only by that name.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Dict, List

from stackgraph.core.errors import ConfigurationError
from stackgraph.providers.base import ResourceProvider

ProviderFactory = Callable[..., ResourceProvider]


@dataclass(frozen=True)
class ProviderSpec:
    """A registered provider factory and how to describe it."""

    name: str
    factory: ProviderFactory
    version: str | None = None
    description: str | None = None

    def row(self) -> List[str]:
        return [self.name, self.version or "-", self.description or ""]


class ProviderRegistry:
    """Maps provider names to factories."""

    def __init__(self) -> None:
        self._specs: Dict[str, ProviderSpec] = {}

    def register(
        self,
        name: str,
        factory: ProviderFactory,
        *,
        version: str | None = None,
        description: str | None = None,
        replace: bool = False,
    ) -> ProviderSpec:
        if not name:
            raise ValueError("Provider name is required")
        if name in self._specs and not replace:
            raise ConfigurationError(
                f"Provider '{name}' is already registered", {"provider": name}
            )
        spec = ProviderSpec(name=name, factory=factory, version=version, description=description)
        self._specs[name] = spec
        return spec

    def get(self, name: str) -> ProviderSpec:
        try:
            return self._specs[name]
        except KeyError:
            known = ", ".join(sorted(self._specs)) or "none"
            raise ConfigurationError(
                f"Provider '{name}' is not registered (available: {known})",
                {"provider": name},
            ) from None

    def create(self, name: str, **options: Any) -> ResourceProvider:
        """Instantiate the provider registered as ``name``."""
        return self.get(name).factory(**options)

    def specs(self) -> List[ProviderSpec]:
        return sorted(self._specs.values(), key=lambda spec: spec.name)

    def __contains__(self, name: object) -> bool:
        return name in self._specs


provider_registry = ProviderRegistry()


def register_provider(
    name: str,
    factory: ProviderFactory,
    *,
    version: str | None = None,
    description: str | None = None,
    replace: bool = False,
) -> ProviderSpec:
    return provider_registry.register(
        name, factory, version=version, description=description, replace=replace
    )


def create_provider(name: str, **options: Any) -> ResourceProvider:
    return provider_registry.create(name, **options)


def list_providers() -> List[ProviderSpec]:
    return provider_registry.specs()
