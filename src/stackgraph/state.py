"""
Stack state file.

Records what each resource looked like after the last apply or destroy
so a later process can tear the stack down (or re-apply it as a no-op)
without asking the provider what exists.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict

import structlog

from stackgraph.core.errors import ConfigurationError
from stackgraph.graph.models import ResourceState
from stackgraph.graph.registry import ResourceRegistry

logger = structlog.get_logger()

DEFAULT_STATE_PATH = Path("stackgraph.state.json")
STATE_VERSION = 1


@dataclass
class ResourceRecord:
    kind: str
    state: str
    attributes: Dict[str, Any] = field(default_factory=dict)
    error: str | None = None


@dataclass
class StackState:
    stack: str
    resources: Dict[str, ResourceRecord] = field(default_factory=dict)

    def get(self, resource_id: str) -> ResourceRecord | None:
        return self.resources.get(resource_id)


def capture_state(stack_name: str, registry: ResourceRegistry) -> StackState:
    """Snapshot the registry's node states and attributes."""
    state = StackState(stack=stack_name)
    for node in registry:
        state.resources[node.id] = ResourceRecord(
            kind=node.kind,
            state=node.state.value,
            attributes=dict(node.attributes),
            error=node.error,
        )
    return state


def apply_state(registry: ResourceRegistry, state: StackState) -> list[str]:
    """Restore the provisioned resources recorded in ``state``.

    Records for resources that are no longer declared, or whose kind
    changed, are ignored, as are resources recorded in any other state;
    those start over as freshly declared. Returns the ids that were restored.
    """
    restored: list[str] = []
    for resource_id, record in state.resources.items():
        if resource_id not in registry:
            logger.warning("state_resource_undeclared", resource_id=resource_id)
            continue
        node = registry.get(resource_id)
        if node.kind != record.kind:
            logger.warning(
                "state_kind_mismatch",
                resource_id=resource_id,
                declared=node.kind,
                recorded=record.kind,
            )
            continue
        try:
            recorded = ResourceState(record.state)
        except ValueError:
            raise ConfigurationError(
                f"Unknown state {record.state!r} recorded for {resource_id!r}",
                {"resource_id": resource_id},
            ) from None
        if recorded is ResourceState.PROVISIONED:
            node.restore(recorded, record.attributes)
            restored.append(resource_id)
    return restored


def load_state(path: Path | None = None) -> StackState | None:
    """Read a state file; returns None when it does not exist."""
    state_path = path or DEFAULT_STATE_PATH
    if not state_path.exists():
        return None
    try:
        data = json.loads(state_path.read_text())
        resources = {
            resource_id: ResourceRecord(
                kind=record["kind"],
                state=record["state"],
                attributes=dict(record.get("attributes") or {}),
                error=record.get("error"),
            )
            for resource_id, record in data.get("resources", {}).items()
        }
        return StackState(stack=data["stack"], resources=resources)
    except (json.JSONDecodeError, KeyError, TypeError, AttributeError) as e:
        raise ConfigurationError(
            f"Invalid state file {state_path}: {e}", {"path": str(state_path)}
        ) from e


def save_state(state: StackState, path: Path | None = None) -> None:
    state_path = path or DEFAULT_STATE_PATH
    payload = {
        "version": STATE_VERSION,
        "stack": state.stack,
        "resources": {
            resource_id: {
                "kind": record.kind,
                "state": record.state,
                "attributes": record.attributes,
                "error": record.error,
            }
            for resource_id, record in state.resources.items()
        },
    }
    state_path.write_text(json.dumps(payload, indent=2, sort_keys=True, default=str) + "\n")
