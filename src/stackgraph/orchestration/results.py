"""Result types for stack orchestration."""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional


@dataclass
class ApplyResult:
    """Result of deploying (or tearing down) a stack."""

    stack_name: str
    action: str = "apply"
    completed: List[str] = field(default_factory=list)
    skipped: List[str] = field(default_factory=list)
    outputs: Dict[str, Any] = field(default_factory=dict)
    duration_seconds: float = 0.0
    errors: List[str] = field(default_factory=list)
    failed_resource: Optional[str] = None

    @property
    def total_resources(self) -> int:
        """Number of resources the provider acted on."""
        return len(self.completed)

    @property
    def success(self) -> bool:
        """Whether the run finished without errors."""
        return len(self.errors) == 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "stack_name": self.stack_name,
            "action": self.action,
            "completed": self.completed,
            "skipped": self.skipped,
            "outputs": self.outputs,
            "total_resources": self.total_resources,
            "duration_seconds": self.duration_seconds,
            "errors": self.errors,
            "failed_resource": self.failed_resource,
            "success": self.success,
        }


@dataclass
class PlanResult:
    """Result of planning (dry-run) a stack."""

    stack_name: str
    source: Optional[Path] = None
    order: List[str] = field(default_factory=list)
    waves: List[List[str]] = field(default_factory=list)
    resources: Dict[str, Dict[str, Any]] = field(default_factory=dict)
    outputs: Dict[str, str] = field(default_factory=dict)
    errors: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)

    @property
    def total_resources(self) -> int:
        """Total number of resources that would be created."""
        return len(self.order)

    @property
    def success(self) -> bool:
        """Whether plan succeeded without errors."""
        return len(self.errors) == 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "stack_name": self.stack_name,
            "source": str(self.source) if self.source else None,
            "order": self.order,
            "waves": self.waves,
            "resources": self.resources,
            "outputs": self.outputs,
            "total_resources": self.total_resources,
            "errors": self.errors,
            "warnings": self.warnings,
            "success": self.success,
        }


class ResultCollector:
    """Aggregates per-resource outcomes during execution."""

    def __init__(self, stack_name: str, action: str = "apply") -> None:
        self._result = ApplyResult(stack_name=stack_name, action=action)

    def record(self, resource_id: str) -> None:
        """Record a resource the provider acted on."""
        self._result.completed.append(resource_id)

    def record_skip(self, resource_id: str) -> None:
        """Record a resource left alone (already in the target state)."""
        self._result.skipped.append(resource_id)

    def record_error(self, resource_id: Optional[str], error: Exception) -> None:
        """Record the failure that halted execution."""
        self._result.failed_resource = resource_id
        self._result.errors.append(str(error))

    def record_output_error(self, name: str, error: Exception) -> None:
        """Record an output that could not be resolved."""
        self._result.errors.append(f"output {name}: {error}")

    def finalize(self, duration: float, outputs: Optional[Dict[str, Any]] = None) -> ApplyResult:
        """Return the final result with duration and outputs set."""
        self._result.duration_seconds = duration
        if outputs is not None:
            self._result.outputs = outputs
        return self._result
