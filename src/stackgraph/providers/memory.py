"""
In-memory resource provider.

A deterministic stand-in for a cloud account: it hands out attributes
shaped like the real ones (bucket website URLs, distribution domains,
queue URLs, load balancer DNS names, API endpoints) without any network
access. Used for local dry runs and tests.
"""

from __future__ import annotations

import asyncio
import hashlib
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterable, List, Mapping

import structlog

from stackgraph.providers.base import ProviderHealth, ResourceNotFoundError
from stackgraph.providers.registry import register_provider

logger = structlog.get_logger()

DEFAULT_REGION = "us-east-1"
DEFAULT_ACCOUNT = "000000000000"


class MemoryProviderError(RuntimeError):
    """Raised for injected failures."""


@dataclass(frozen=True)
class ProviderCall:
    """A single create/destroy call seen by the provider."""

    action: str
    kind: str
    name: str


def _short_id(name: str, length: int = 12) -> str:
    return hashlib.sha1(name.encode("utf-8")).hexdigest()[:length]


AttributeBuilder = Callable[[str, str, str], Dict[str, Any]]


def _bucket(name: str, region: str, account: str) -> Dict[str, Any]:
    return {
        "bucketName": name,
        "arn": f"arn:aws:s3:::{name}",
        "websiteUrl": f"http://{name}.s3-website-{region}.amazonaws.com",
    }


def _cdn(name: str, region: str, account: str) -> Dict[str, Any]:
    distribution_id = "E" + _short_id(name).upper()
    return {
        "distributionId": distribution_id,
        "arn": f"arn:aws:cloudfront::{account}:distribution/{distribution_id}",
        "domainName": f"d{_short_id(name, 13)}.cloudfront.net",
    }


def _queue(name: str, region: str, account: str) -> Dict[str, Any]:
    return {
        "queueName": name,
        "arn": f"arn:aws:sqs:{region}:{account}:{name}",
        "queueUrl": f"https://sqs.{region}.amazonaws.com/{account}/{name}",
    }


def _network(name: str, region: str, account: str) -> Dict[str, Any]:
    vpc_id = f"vpc-{_short_id(name, 17)}"
    return {
        "vpcId": vpc_id,
        "arn": f"arn:aws:ec2:{region}:{account}:vpc/{vpc_id}",
        "subnetIds": [f"subnet-{_short_id(name + str(az), 17)}" for az in range(2)],
    }


def _load_balancer(name: str, region: str, account: str) -> Dict[str, Any]:
    suffix = _short_id(name, 16)
    return {
        "arn": f"arn:aws:elasticloadbalancing:{region}:{account}:loadbalancer/app/{name}/{suffix}",
        "dnsName": f"{name}-{suffix[:9]}.{region}.elb.amazonaws.com",
    }


def _api_gateway(name: str, region: str, account: str) -> Dict[str, Any]:
    api_id = _short_id(name, 10)
    return {
        "restApiId": api_id,
        "arn": f"arn:aws:apigateway:{region}::/restapis/{api_id}",
        "url": f"https://{api_id}.execute-api.{region}.amazonaws.com/prod/",
    }


def _generic(kind: str) -> AttributeBuilder:
    def build(name: str, region: str, account: str) -> Dict[str, Any]:
        resource_id = f"{kind}-{_short_id(name)}"
        return {
            "id": resource_id,
            "name": name,
            "arn": f"arn:aws:{kind}:{region}:{account}:{resource_id}",
        }

    return build


ATTRIBUTE_BUILDERS: Dict[str, AttributeBuilder] = {
    "storage-bucket": _bucket,
    "cdn": _cdn,
    "queue": _queue,
    "network": _network,
    "load-balancer": _load_balancer,
    "api-gateway": _api_gateway,
}


@dataclass
class InMemoryProvider:
    """Provider that keeps created resources in a dict.

    ``create`` is idempotent per (kind, name): asking for an existing
    resource returns the attributes it was created with.
    """

    region: str = DEFAULT_REGION
    account: str = DEFAULT_ACCOUNT
    latency: float = 0.0
    fail_kinds: set[str] = field(default_factory=set)
    fail_names: set[str] = field(default_factory=set)
    calls: List[ProviderCall] = field(default_factory=list)

    name = "memory"

    def __post_init__(self) -> None:
        self._resources: Dict[tuple[str, str], Dict[str, Any]] = {}
        self._counters: Dict[str, int] = {}

    async def create(self, kind: str, config: Mapping[str, Any]) -> Mapping[str, Any]:
        name = str(config.get("name") or self._generate_name(kind))
        self.calls.append(ProviderCall("create", kind, name))
        if self.latency:
            await asyncio.sleep(self.latency)
        if kind in self.fail_kinds or name in self.fail_names:
            raise MemoryProviderError(f"injected failure creating {kind} {name!r}")

        key = (kind, name)
        if key not in self._resources:
            builder = ATTRIBUTE_BUILDERS.get(kind) or _generic(kind)
            self._resources[key] = builder(name, self.region, self.account)
            logger.debug("memory_resource_created", kind=kind, name=name)
        return dict(self._resources[key])

    async def destroy(self, kind: str, attributes: Mapping[str, Any]) -> None:
        key = self._find(kind, attributes)
        name = key[1] if key else str(attributes.get("arn", "?"))
        self.calls.append(ProviderCall("destroy", kind, name))
        if self.latency:
            await asyncio.sleep(self.latency)
        if kind in self.fail_kinds or name in self.fail_names:
            raise MemoryProviderError(f"injected failure destroying {kind} {name!r}")
        if key is None:
            raise ResourceNotFoundError(f"{kind} {name} does not exist")
        del self._resources[key]
        logger.debug("memory_resource_destroyed", kind=kind, name=name)

    async def health_check(self) -> ProviderHealth:
        return ProviderHealth(status="healthy", details=f"{len(self._resources)} resources")

    def resources(self) -> Dict[tuple[str, str], Dict[str, Any]]:
        """Snapshot of live resources keyed by (kind, name)."""
        return {key: dict(attrs) for key, attrs in self._resources.items()}

    def seed(self, kind: str, name: str, attributes: Mapping[str, Any]) -> None:
        """Register a resource that exists outside this process."""
        self._resources[(kind, name)] = dict(attributes)

    def calls_for(self, action: str) -> List[ProviderCall]:
        return [call for call in self.calls if call.action == action]

    def _find(self, kind: str, attributes: Mapping[str, Any]) -> tuple[str, str] | None:
        arn = attributes.get("arn")
        for key, attrs in self._resources.items():
            if key[0] == kind and attrs.get("arn") == arn:
                return key
        return None

    def _generate_name(self, kind: str) -> str:
        self._counters[kind] = self._counters.get(kind, 0) + 1
        return f"{kind}-{self._counters[kind]}"


def _factory(
    *,
    region: str = DEFAULT_REGION,
    latency: float = 0.0,
    fail_kinds: Iterable[str] = (),
    fail_names: Iterable[str] = (),
    **_: Any,
) -> InMemoryProvider:
    return InMemoryProvider(
        region=region,
        latency=latency,
        fail_kinds=set(fail_kinds),
        fail_names=set(fail_names),
    )


register_provider(
    InMemoryProvider.name,
    _factory,
    version="builtin",
    description="In-memory provider (no cloud access, deterministic attributes)",
)

__all__ = [
    "ATTRIBUTE_BUILDERS",
    "InMemoryProvider",
    "MemoryProviderError",
    "ProviderCall",
]
