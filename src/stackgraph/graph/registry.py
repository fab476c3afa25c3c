"""Resource node registry: declared resources and stack outputs."""

from __future__ import annotations

from typing import Any, Dict, Iterable, Iterator, List, Mapping

import structlog

from stackgraph.core.errors import DuplicateIdError, UnknownResourceError, ValidationError
from stackgraph.graph.models import Output, Reference, ResourceNode

logger = structlog.get_logger()

REF_KEY = "ref"
ATTRIBUTE_KEY = "attribute"


class ResourceRegistry:
    """Append-only registry of resource declarations.

    Nodes iterate in declaration order, which the planner uses to break
    ties between independent resources.
    """

    def __init__(self) -> None:
        self._nodes: Dict[str, ResourceNode] = {}
        self._outputs: Dict[str, Output] = {}

    def declare(
        self,
        kind: str,
        id: str,
        config: Mapping[str, Any] | None = None,
        depends_on: Iterable[str] = (),
    ) -> ResourceNode:
        """Declare a resource. Raises DuplicateIdError if ``id`` is taken."""
        if not isinstance(id, str) or not id:
            raise ValidationError("Resource id must be a non-empty string", {"resource_id": id})
        if not isinstance(kind, str) or not kind:
            raise ValidationError(f"Resource {id!r} has no kind", {"resource_id": id})
        if id in self._nodes:
            raise DuplicateIdError(id)

        node = ResourceNode(
            id=id,
            kind=kind,
            config=dict(config or {}),
            depends_on=tuple(depends_on),
        )
        self._nodes[id] = node
        logger.debug("resource_declared", resource_id=id, kind=kind)
        return node

    def get(self, id: str) -> ResourceNode:
        """Get a node by id. Raises UnknownResourceError if absent."""
        try:
            return self._nodes[id]
        except KeyError:
            raise UnknownResourceError(id) from None

    def output(self, name: str, reference: Reference, description: str = "") -> Output:
        """Declare a stack output resolved after deployment."""
        if name in self._outputs:
            raise DuplicateIdError(name, what="output")
        output = Output(name=name, reference=reference, description=description)
        self._outputs[name] = output
        return output

    @property
    def outputs(self) -> List[Output]:
        return list(self._outputs.values())

    def ids(self) -> List[str]:
        """List all declared ids in declaration order."""
        return list(self._nodes.keys())

    def __iter__(self) -> Iterator[ResourceNode]:
        return iter(list(self._nodes.values()))

    def __len__(self) -> int:
        return len(self._nodes)

    def __contains__(self, id: object) -> bool:
        return id in self._nodes

    @classmethod
    def from_declarations(
        cls,
        resources: Iterable[Mapping[str, Any]],
        outputs: Mapping[str, Any] | None = None,
    ) -> "ResourceRegistry":
        """Build a registry from ``{id, kind, config, depends_on}`` mappings.

        ``{ref: <id>, attribute: <path>}`` markers anywhere inside a config
        become References. Outputs map a name to either a bare marker or
        ``{value: <marker>, description: <text>}``.
        """
        registry = cls()
        for item in resources:
            if not isinstance(item, Mapping):
                raise ValidationError(f"Resource declaration must be a mapping, got {item!r}")
            missing = [key for key in ("id", "kind") if not item.get(key)]
            if missing:
                raise ValidationError(
                    f"Resource declaration is missing {', '.join(missing)}",
                    {"declaration": dict(item)},
                )
            config = item.get("config") or {}
            if not isinstance(config, Mapping):
                raise ValidationError(
                    f"Config of {item['id']!r} must be a mapping",
                    {"resource_id": item["id"]},
                )
            depends_on = item.get("depends_on") or []
            if isinstance(depends_on, str):
                depends_on = [depends_on]
            registry.declare(
                item["kind"],
                item["id"],
                parse_markers(config),
                depends_on=depends_on,
            )

        for name, spec in (outputs or {}).items():
            description = ""
            if isinstance(spec, Mapping) and "value" in spec:
                description = spec.get("description", "")
                spec = spec["value"]
            reference = parse_markers(spec)
            if not isinstance(reference, Reference):
                raise ValidationError(
                    f"Output {name!r} must reference a resource attribute",
                    {"output": name},
                )
            registry.output(name, reference, description)

        return registry


def is_marker(value: Any) -> bool:
    """Whether ``value`` is a ``{ref, attribute}`` declaration marker."""
    return isinstance(value, Mapping) and set(value.keys()) == {REF_KEY, ATTRIBUTE_KEY}


def parse_markers(value: Any) -> Any:
    """Recursively replace declaration markers with References."""
    if is_marker(value):
        target, attribute = value[REF_KEY], value[ATTRIBUTE_KEY]
        if not isinstance(target, str) or not isinstance(attribute, str) or not attribute:
            raise ValidationError(f"Malformed reference marker: {dict(value)!r}")
        return Reference(target=target, attribute=attribute)
    if isinstance(value, Mapping):
        return {k: parse_markers(v) for k, v in value.items()}
    if isinstance(value, list):
        return [parse_markers(item) for item in value]
    return value
