from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Literal, Mapping, Protocol, runtime_checkable


class ResourceNotFoundError(LookupError):
    """Raised by ``destroy`` when the resource is already gone."""


@dataclass(frozen=True)
class ProviderHealth:
    status: Literal["healthy", "degraded", "unreachable"]
    details: str | None = None


@runtime_checkable
class ResourceProvider(Protocol):
    """Contract for whatever actually creates and destroys infrastructure.

    Any exception from ``create`` or ``destroy`` is a failure of that
    resource. ``destroy`` signals an already-absent resource with
    ResourceNotFoundError so teardown can stay idempotent.
    """

    name: str

    async def create(self, kind: str, config: Mapping[str, Any]) -> Mapping[str, Any]:
        """Provision a resource and return its attributes."""
        ...

    async def destroy(self, kind: str, attributes: Mapping[str, Any]) -> None:
        """Remove a previously provisioned resource."""
        ...

    async def health_check(self) -> ProviderHealth:
        ...
