"""
Stack orchestrator.

Wires the declare -> build graph -> plan -> execute pipeline behind one
object so callers can describe a topology as data and then validate,
preview, deploy or tear it down.
"""

from __future__ import annotations

import time
from pathlib import Path
from typing import Any, Iterable, Mapping, Optional

import structlog

from stackgraph.core.errors import ProviderError, ValidationError
from stackgraph.graph.builder import build_graph
from stackgraph.graph.models import DependencyGraph, Output, Reference, ResourceNode, ResourceState
from stackgraph.graph.planner import Plan, plan
from stackgraph.graph.registry import ResourceRegistry
from stackgraph.graph.resolver import render_placeholders
from stackgraph.orchestration.executor import DeploymentExecutor
from stackgraph.orchestration.results import ApplyResult, PlanResult, ResultCollector
from stackgraph.providers.base import ResourceProvider

logger = structlog.get_logger()


class Stack:
    """A named set of resource declarations and outputs."""

    def __init__(
        self,
        name: str = "stack",
        registry: Optional[ResourceRegistry] = None,
        source: Optional[Path] = None,
    ) -> None:
        self.name = name
        self.registry = registry if registry is not None else ResourceRegistry()
        self.source = source

    @classmethod
    def from_file(cls, path: str | Path, environ: Optional[Mapping[str, str]] = None) -> "Stack":
        """Load a stack from a YAML declaration file."""
        from stackgraph.specs.loader import load_stack

        return load_stack(path, environ=environ)

    # === Declaration ===

    def declare(
        self,
        kind: str,
        id: str,
        config: Optional[Mapping[str, Any]] = None,
        depends_on: Iterable[str] = (),
    ) -> ResourceNode:
        return self.registry.declare(kind, id, config, depends_on=depends_on)

    def output(self, name: str, reference: Reference, description: str = "") -> Output:
        return self.registry.output(name, reference, description)

    @staticmethod
    def ref(resource_id: str, attribute: str) -> Reference:
        return Reference(target=resource_id, attribute=attribute)

    # === Planning ===

    def build_graph(self) -> DependencyGraph:
        return build_graph(self.registry)

    def plan(self) -> Plan:
        """Validate the declarations and mark every pending node PLANNED.

        Raises:
            UnknownResourceError, CyclicDependencyError: before any node
                changes state
            ValidationError: a node was already torn down
        """
        result = plan(self.build_graph())

        torn_down = [
            node.id for node in self.registry if node.state is ResourceState.TORN_DOWN
        ]
        if torn_down:
            raise ValidationError(
                f"Stack {self.name!r} has torn-down resources; declare a new stack to redeploy",
                {"resources": torn_down},
            )

        for node_id in result.order:
            node = self.registry.get(node_id)
            if node.state is not ResourceState.PROVISIONED:
                node.mark_planned()
        logger.info("plan_built", stack=self.name, resources=len(result))
        return result

    def preview(self) -> PlanResult:
        """Dry-run: describe what ``apply`` would do without changing state."""
        result = PlanResult(stack_name=self.name, source=self.source)
        if not len(self.registry):
            result.warnings.append("No resources declared.")
            return result

        try:
            planned = plan(self.build_graph())
        except ValidationError as e:
            result.errors.append(e.message)
            return result

        result.order = list(planned.order)
        result.waves = planned.waves()
        for node_id in planned.order:
            node = self.registry.get(node_id)
            result.resources[node_id] = {
                "kind": node.kind,
                "state": node.state.value,
                "depends_on": planned.dependencies_of(node_id),
                "config": render_placeholders(node.config),
            }
        result.outputs = {o.name: o.reference.placeholder for o in self.registry.outputs}
        if not result.outputs:
            result.warnings.append("No outputs declared.")
        return result

    # === Execution ===

    async def apply(
        self,
        provider: ResourceProvider,
        *,
        max_concurrency: int = 1,
        provider_timeout: Optional[float] = None,
    ) -> ApplyResult:
        """Plan and deploy the stack.

        Declaration and planning errors propagate. A provider failure
        (including a reference that cannot be resolved for a resource's
        config) halts deployment and is reported in the returned result, as
        are outputs that cannot be resolved; resources already provisioned
        stay provisioned.
        """
        planned = self.plan()
        executor = DeploymentExecutor(
            max_concurrency=max_concurrency,
            provider_timeout=provider_timeout,
            stack_name=self.name,
        )
        collector = ResultCollector(self.name, action="apply")
        started = time.monotonic()
        try:
            return await executor.execute(planned, self.registry, provider, collector)
        except ProviderError as e:
            collector.record_error(e.resource_id, e)
            return collector.finalize(time.monotonic() - started)

    async def destroy(
        self,
        provider: ResourceProvider,
        *,
        max_concurrency: int = 1,
        provider_timeout: Optional[float] = None,
    ) -> ApplyResult:
        """Tear the stack down in reverse dependency order."""
        planned = plan(self.build_graph())
        executor = DeploymentExecutor(
            max_concurrency=max_concurrency,
            provider_timeout=provider_timeout,
            stack_name=self.name,
        )
        collector = ResultCollector(self.name, action="destroy")
        started = time.monotonic()
        try:
            return await executor.teardown(planned, self.registry, provider, collector)
        except ProviderError as e:
            collector.record_error(e.resource_id, e)
            return collector.finalize(time.monotonic() - started)

    def states(self) -> dict[str, ResourceState]:
        return {node.id: node.state for node in self.registry}
