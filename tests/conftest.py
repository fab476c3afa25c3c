"""Root test configuration."""

import logging

import pytest
import structlog

from stackgraph.graph.registry import ResourceRegistry
from stackgraph.providers.memory import InMemoryProvider


def pytest_configure(config):
    """Configure structlog for tests to suppress debug/info output."""
    logging.basicConfig(level=logging.WARNING, force=True)
    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.processors.add_log_level,
            structlog.processors.format_exc_info,
            structlog.dev.ConsoleRenderer(),
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=False,
    )


@pytest.fixture
def provider():
    """Fresh in-memory provider."""
    return InMemoryProvider()


@pytest.fixture
def web_registry():
    """vpc -> alb -> listener -> targets <- asg <- vpc."""
    registry = ResourceRegistry.from_declarations(
        [
            {"id": "vpc", "kind": "network", "config": {"name": "main"}},
            {
                "id": "alb",
                "kind": "load-balancer",
                "config": {"name": "web", "vpcId": {"ref": "vpc", "attribute": "vpcId"}},
            },
            {
                "id": "listener",
                "kind": "listener",
                "depends_on": ["alb"],
                "config": {"port": 80},
            },
            {
                "id": "targets",
                "kind": "target-group",
                "config": {
                    "listenerArn": {"ref": "listener", "attribute": "arn"},
                    "targets": [{"ref": "asg", "attribute": "name"}],
                },
            },
            {
                "id": "asg",
                "kind": "fleet",
                "config": {"name": "web-asg", "vpcId": {"ref": "vpc", "attribute": "vpcId"}},
            },
        ],
        outputs={"LoadBalancerDNS": {"ref": "alb", "attribute": "dnsName"}},
    )
    return registry
