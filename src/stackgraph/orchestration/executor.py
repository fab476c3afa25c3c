"""
Deployment executor.

Walks a plan, calling the provider for each resource and moving nodes
through PLANNED -> PROVISIONING -> PROVISIONED | FAILED. Teardown walks
the same plan backwards.

Provider calls are the only suspension points. With ``max_concurrency``
above one, every resource whose dependencies are done is dispatched at
once (up to the limit) and dependents are released as each call
completes. The first failure cancels the calls still in flight and
nothing new is started.
"""

from __future__ import annotations

import asyncio
import time
from typing import Any, Awaitable, Callable, Dict, Iterable, Mapping, Optional

import structlog

from stackgraph.core.errors import InvalidStateTransitionError, ProviderError, StackGraphError
from stackgraph.graph.models import ResourceState
from stackgraph.graph.planner import Plan
from stackgraph.graph.registry import ResourceRegistry
from stackgraph.graph.resolver import resolve, resolve_config
from stackgraph.orchestration.results import ApplyResult, ResultCollector
from stackgraph.providers.base import ResourceNotFoundError, ResourceProvider

logger = structlog.get_logger()

CANCELLED = "cancelled"


class DeploymentExecutor:
    """Runs provider calls for a plan."""

    def __init__(
        self,
        *,
        max_concurrency: int = 1,
        provider_timeout: Optional[float] = None,
        stack_name: str = "stack",
    ) -> None:
        if max_concurrency < 1:
            raise ValueError("max_concurrency must be at least 1")
        self.max_concurrency = max_concurrency
        self.provider_timeout = provider_timeout
        self.stack_name = stack_name

    async def execute(
        self,
        plan: Plan,
        registry: ResourceRegistry,
        provider: ResourceProvider,
        collector: Optional[ResultCollector] = None,
    ) -> ApplyResult:
        """
        Provision every planned resource, then resolve the stack outputs.

        Resources already PROVISIONED are skipped, so re-running on a
        deployed stack is a no-op that returns the same outputs. An output
        naming an attribute the provider never returned is reported in the
        result's errors and left out of its outputs.

        Raises:
            InvalidStateTransitionError: a resource is neither PLANNED nor
                PROVISIONED (re-plan first)
            ProviderError: the first provider failure; provisioning stops
        """
        collector = collector or ResultCollector(self.stack_name, action="apply")
        started = time.monotonic()

        pending: set[str] = set()
        for node_id in plan.order:
            node = registry.get(node_id)
            if node.state is ResourceState.PROVISIONED:
                collector.record_skip(node_id)
                logger.info("node_skipped", resource_id=node_id, reason="already provisioned")
            elif node.state is ResourceState.PLANNED:
                pending.add(node_id)
            else:
                raise InvalidStateTransitionError(
                    node_id, node.state.name, ResourceState.PROVISIONING.name
                )

        async def provision(node_id: str) -> None:
            await self._provision(node_id, registry, provider)
            collector.record(node_id)

        await self._run(plan.order, plan.dependencies_of, pending, provision)

        outputs: Dict[str, Any] = {}
        for output in registry.outputs:
            try:
                outputs[output.name] = resolve(output.reference, registry)
            except StackGraphError as exc:
                collector.record_output_error(output.name, exc)
                logger.error("output_unresolved", output=output.name, error=exc.message)
        duration = time.monotonic() - started
        logger.info(
            "deploy_finished",
            stack=self.stack_name,
            provisioned=len(pending),
            duration_seconds=round(duration, 3),
        )
        return collector.finalize(duration, outputs)

    async def teardown(
        self,
        plan: Plan,
        registry: ResourceRegistry,
        provider: ResourceProvider,
        collector: Optional[ResultCollector] = None,
    ) -> ApplyResult:
        """
        Destroy provisioned resources in reverse dependency order.

        Resources the provider reports as already gone are still marked
        TORN_DOWN. Resources that never reached PROVISIONED are skipped.

        Raises:
            ProviderError: the first other provider failure; teardown stops
        """
        collector = collector or ResultCollector(self.stack_name, action="destroy")
        started = time.monotonic()

        pending: set[str] = set()
        for node_id in plan.teardown_order:
            node = registry.get(node_id)
            if node.state is ResourceState.PROVISIONED:
                pending.add(node_id)
            else:
                collector.record_skip(node_id)
                logger.debug("node_skipped", resource_id=node_id, state=node.state.name)

        async def destroy(node_id: str) -> None:
            await self._destroy(node_id, registry, provider)
            collector.record(node_id)

        await self._run(plan.teardown_order, plan.dependents_of, pending, destroy)

        duration = time.monotonic() - started
        logger.info(
            "teardown_finished",
            stack=self.stack_name,
            torn_down=len(pending),
            duration_seconds=round(duration, 3),
        )
        return collector.finalize(duration, {})

    async def _provision(
        self, node_id: str, registry: ResourceRegistry, provider: ResourceProvider
    ) -> None:
        node = registry.get(node_id)
        node.mark_provisioning()
        logger.info("node_provisioning", resource_id=node_id, kind=node.kind)

        try:
            config = resolve_config(node.config, registry)
            attributes = await self._call(provider.create(node.kind, config))
            if not isinstance(attributes, Mapping):
                raise TypeError(
                    f"provider returned {type(attributes).__name__}, expected a mapping"
                )
        except asyncio.CancelledError:
            node.mark_failed(CANCELLED)
            logger.warning("node_cancelled", resource_id=node_id, kind=node.kind)
            raise
        except Exception as exc:
            reason = self._describe(exc)
            node.mark_failed(reason)
            logger.error("node_failed", resource_id=node_id, kind=node.kind, error=reason)
            raise ProviderError(node_id, node.kind, reason) from exc

        node.mark_provisioned(attributes)
        logger.info("node_provisioned", resource_id=node_id, kind=node.kind)

    async def _destroy(
        self, node_id: str, registry: ResourceRegistry, provider: ResourceProvider
    ) -> None:
        node = registry.get(node_id)
        logger.info("node_destroying", resource_id=node_id, kind=node.kind)

        try:
            await self._call(provider.destroy(node.kind, node.attributes))
        except ResourceNotFoundError:
            logger.info("node_already_absent", resource_id=node_id, kind=node.kind)
        except asyncio.CancelledError:
            logger.warning("node_cancelled", resource_id=node_id, kind=node.kind)
            raise
        except Exception as exc:
            reason = self._describe(exc)
            node.error = reason
            logger.error("node_destroy_failed", resource_id=node_id, kind=node.kind, error=reason)
            raise ProviderError(node_id, node.kind, reason) from exc

        node.mark_torn_down()
        logger.info("node_torn_down", resource_id=node_id, kind=node.kind)

    async def _call(self, call: Awaitable[Any]) -> Any:
        if self.provider_timeout is None:
            return await call
        return await asyncio.wait_for(call, timeout=self.provider_timeout)

    def _describe(self, exc: Exception) -> str:
        if isinstance(exc, asyncio.TimeoutError):
            return f"timed out after {self.provider_timeout}s"
        return str(exc) or type(exc).__name__

    async def _run(
        self,
        order: Iterable[str],
        prerequisites: Callable[[str], Iterable[str]],
        pending: set[str],
        work: Callable[[str], Awaitable[None]],
    ) -> None:
        """Run ``work`` for each pending id once its prerequisites are done.

        Ids outside ``pending`` count as already done.
        """
        order = [node_id for node_id in order if node_id in pending]
        if self.max_concurrency == 1:
            for node_id in order:
                await work(node_id)
            return

        waiting = list(order)
        finished: set[str] = set()
        running: Dict[asyncio.Task[None], str] = {}

        def ready(node_id: str) -> bool:
            return all(
                dep not in pending or dep in finished for dep in prerequisites(node_id)
            )

        try:
            while waiting or running:
                for node_id in list(waiting):
                    if len(running) >= self.max_concurrency:
                        break
                    if ready(node_id):
                        waiting.remove(node_id)
                        running[asyncio.create_task(work(node_id))] = node_id

                if not running:
                    # Only reachable with a plan that does not match its graph
                    raise RuntimeError(f"Unschedulable resources: {', '.join(waiting)}")

                done, _ = await asyncio.wait(running, return_when=asyncio.FIRST_COMPLETED)
                failure: Optional[BaseException] = None
                for task in done:
                    node_id = running.pop(task)
                    exc = task.exception()
                    if exc is None:
                        finished.add(node_id)
                    elif failure is None:
                        failure = exc

                if failure is not None:
                    raise failure
        finally:
            for task in running:
                task.cancel()
            if running:
                await asyncio.gather(*running, return_exceptions=True)
