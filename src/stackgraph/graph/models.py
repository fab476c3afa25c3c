"""
Resource graph models.

Data models for declared resources, the references between them, stack
outputs, and the dependency graph the planner walks.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Any, Iterator, Mapping

from stackgraph.core.errors import InvalidStateTransitionError


class ResourceState(Enum):
    """Lifecycle state of a declared resource."""

    DECLARED = "declared"
    PLANNED = "planned"
    PROVISIONING = "provisioning"
    PROVISIONED = "provisioned"
    FAILED = "failed"
    TORN_DOWN = "torn_down"


_TRANSITIONS: dict[ResourceState, frozenset[ResourceState]] = {
    ResourceState.DECLARED: frozenset({ResourceState.PLANNED}),
    ResourceState.PLANNED: frozenset({ResourceState.PLANNED, ResourceState.PROVISIONING}),
    ResourceState.PROVISIONING: frozenset({ResourceState.PROVISIONED, ResourceState.FAILED}),
    ResourceState.PROVISIONED: frozenset({ResourceState.TORN_DOWN}),
    ResourceState.FAILED: frozenset({ResourceState.PLANNED}),
    ResourceState.TORN_DOWN: frozenset(),
}


@dataclass(frozen=True)
class Reference:
    """Pointer to an attribute another resource only has after provisioning."""

    target: str
    attribute: str

    @property
    def placeholder(self) -> str:
        return "${" + f"{self.target}.{self.attribute}" + "}"

    def __str__(self) -> str:
        return self.placeholder

    def to_dict(self) -> dict[str, str]:
        """Serialize to the declaration marker form."""
        return {"ref": self.target, "attribute": self.attribute}


@dataclass(frozen=True)
class Output:
    """A named stack output bound to a resource attribute."""

    name: str
    reference: Reference
    description: str = ""


@dataclass(eq=False)
class ResourceNode:
    """A declared unit of infrastructure."""

    id: str
    kind: str
    config: dict[str, Any] = field(default_factory=dict)
    depends_on: tuple[str, ...] = ()
    state: ResourceState = ResourceState.DECLARED
    error: str | None = None
    _attributes: Mapping[str, Any] | None = field(default=None, repr=False)

    @property
    def attributes(self) -> Mapping[str, Any]:
        """Provider-assigned attributes; empty until provisioned."""
        if self._attributes is None:
            return MappingProxyType({})
        return self._attributes

    @property
    def is_provisioned(self) -> bool:
        return self.state is ResourceState.PROVISIONED

    def transition(self, new_state: ResourceState) -> None:
        """Move to ``new_state``, rejecting edges the lifecycle does not allow."""
        if new_state not in _TRANSITIONS[self.state]:
            raise InvalidStateTransitionError(self.id, self.state.name, new_state.name)
        self.state = new_state

    def mark_planned(self) -> None:
        self.transition(ResourceState.PLANNED)
        self.error = None

    def mark_provisioning(self) -> None:
        self.transition(ResourceState.PROVISIONING)

    def mark_provisioned(self, attributes: Mapping[str, Any]) -> None:
        """Store provider attributes and enter PROVISIONED.

        Attributes are written once; a node that already holds attributes
        cannot be provisioned again.
        """
        if self._attributes is not None:
            raise InvalidStateTransitionError(
                self.id, self.state.name, ResourceState.PROVISIONED.name
            )
        self.transition(ResourceState.PROVISIONED)
        self._attributes = MappingProxyType(dict(attributes))

    def mark_failed(self, reason: str) -> None:
        self.transition(ResourceState.FAILED)
        self.error = reason

    def mark_torn_down(self) -> None:
        self.transition(ResourceState.TORN_DOWN)

    def restore(self, state: ResourceState, attributes: Mapping[str, Any] | None) -> None:
        """Load a previously recorded state, bypassing the transition table.

        Only valid on a freshly declared node.
        """
        if self.state is not ResourceState.DECLARED or self._attributes is not None:
            raise InvalidStateTransitionError(self.id, self.state.name, state.name)
        self.state = state
        if attributes is not None:
            self._attributes = MappingProxyType(dict(attributes))

    def to_dict(self) -> dict[str, Any]:
        """Serialize to dictionary."""
        return {
            "id": self.id,
            "kind": self.kind,
            "state": self.state.value,
            "depends_on": list(self.depends_on),
            "attributes": dict(self.attributes),
            "error": self.error,
        }


@dataclass
class DependencyGraph:
    """Directed graph over resource ids.

    An edge ``a -> b`` means ``a`` must be provisioned before ``b``.
    """

    nodes: list[str] = field(default_factory=list)
    _dependents: dict[str, list[str]] = field(default_factory=dict, repr=False)
    _dependencies: dict[str, list[str]] = field(default_factory=dict, repr=False)
    _position: dict[str, int] = field(default_factory=dict, repr=False)

    def add_node(self, node_id: str) -> None:
        """Add a node; nodes keep the order they were added in."""
        if node_id in self._dependents:
            return
        self._position[node_id] = len(self.nodes)
        self.nodes.append(node_id)
        self._dependents[node_id] = []
        self._dependencies[node_id] = []

    def add_edge(self, before: str, after: str) -> None:
        """Add ``before -> after``. Duplicate edges are ignored."""
        self.add_node(before)
        self.add_node(after)
        if after not in self._dependents[before]:
            self._dependents[before].append(after)
            self._dependencies[after].append(before)

    def dependencies(self, node_id: str) -> list[str]:
        """Ids that must be provisioned before ``node_id``, in declaration order."""
        return self._sorted(self._dependencies[node_id])

    def dependents(self, node_id: str) -> list[str]:
        """Ids that wait on ``node_id``, in declaration order."""
        return self._sorted(self._dependents[node_id])

    def edges(self) -> Iterator[tuple[str, str]]:
        for node_id in self.nodes:
            for dependent in self.dependents(node_id):
                yield node_id, dependent

    def get_edge_count(self) -> int:
        return sum(len(targets) for targets in self._dependents.values())

    def __contains__(self, node_id: object) -> bool:
        return node_id in self._dependents

    def __len__(self) -> int:
        return len(self.nodes)

    def _sorted(self, ids: list[str]) -> list[str]:
        return sorted(ids, key=self._position.__getitem__)

    def to_dict(self) -> dict[str, Any]:
        """Serialize to dictionary."""
        return {
            "nodes": list(self.nodes),
            "edges": [{"source": a, "target": b} for a, b in self.edges()],
            "stats": {
                "node_count": len(self.nodes),
                "edge_count": self.get_edge_count(),
            },
        }
