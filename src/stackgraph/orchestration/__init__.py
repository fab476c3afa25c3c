"""Orchestration package - deploying and tearing down resource stacks."""

from stackgraph.orchestration.executor import DeploymentExecutor
from stackgraph.orchestration.results import ApplyResult, PlanResult, ResultCollector
from stackgraph.orchestration.stack import Stack

__all__ = [
    "ApplyResult",
    "DeploymentExecutor",
    "PlanResult",
    "ResultCollector",
    "Stack",
]
