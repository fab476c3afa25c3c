"""Deferred value resolution.

A Reference stands in for an attribute that only exists once its
producing resource is provisioned. Resolution is refused until then, so a
config can never carry an identifier of infrastructure that does not
exist yet.
"""

from __future__ import annotations

from typing import Any, Iterator, Mapping

from stackgraph.core.errors import AttributeNotFoundError, NotYetProvisionedError
from stackgraph.graph.models import Reference, ResourceState
from stackgraph.graph.registry import ResourceRegistry


def iter_references(value: Any) -> Iterator[Reference]:
    """Yield every Reference inside a (nested) config value."""
    if isinstance(value, Reference):
        yield value
    elif isinstance(value, Mapping):
        for item in value.values():
            yield from iter_references(item)
    elif isinstance(value, (list, tuple)):
        for item in value:
            yield from iter_references(item)


def resolve(reference: Reference, registry: ResourceRegistry) -> Any:
    """Return the concrete value behind ``reference``.

    Raises:
        UnknownResourceError: target is not declared
        NotYetProvisionedError: target is not PROVISIONED
        AttributeNotFoundError: the attribute path is missing
    """
    node = registry.get(reference.target)
    if node.state is not ResourceState.PROVISIONED:
        raise NotYetProvisionedError(node.id, node.state.name)

    value: Any = node.attributes
    for part in reference.attribute.split("."):
        if isinstance(value, Mapping) and part in value:
            value = value[part]
        elif isinstance(value, (list, tuple)) and part.isdigit() and int(part) < len(value):
            value = value[int(part)]
        else:
            raise AttributeNotFoundError(node.id, reference.attribute)
    return value


def resolve_config(config: Any, registry: ResourceRegistry) -> Any:
    """Return a copy of ``config`` with every Reference resolved."""
    if isinstance(config, Reference):
        return resolve(config, registry)
    if isinstance(config, Mapping):
        return {k: resolve_config(v, registry) for k, v in config.items()}
    if isinstance(config, list):
        return [resolve_config(item, registry) for item in config]
    if isinstance(config, tuple):
        return tuple(resolve_config(item, registry) for item in config)
    return config


def render_placeholders(config: Any) -> Any:
    """Return a copy of ``config`` with References shown as ``${id.attr}``."""
    if isinstance(config, Reference):
        return config.placeholder
    if isinstance(config, Mapping):
        return {k: render_placeholders(v) for k, v in config.items()}
    if isinstance(config, (list, tuple)):
        return [render_placeholders(item) for item in config]
    return config
