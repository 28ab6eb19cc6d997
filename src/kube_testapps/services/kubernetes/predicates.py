"""Resource state predicates.

Each predicate looks at one fetched snapshot together with the error of the
fetch that produced it and answers "has the desired state been reached".
The set of states is closed and enumerated by :class:`ResourceState`;
:func:`evaluate` dispatches a state to its predicate.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from enum import StrEnum
from typing import Any

from kube_testapps.integrations.kubernetes.exceptions import KubernetesNotFoundError
from kube_testapps.integrations.kubernetes.models.base import _safe_get


class ResourceKind(StrEnum):
    """Kinds of resources whose state can be awaited."""

    DEPLOYMENT = "Deployment"
    SERVICE = "Service"


class ResourceState(StrEnum):
    """Desired observable states."""

    DEPLOYMENT_READY = "deployment-ready"
    DEPLOYMENT_DELETED = "deployment-deleted"
    SERVICE_INGRESS_READY = "service-ingress-ready"
    SERVICE_DELETED = "service-deleted"

    @property
    def kind(self) -> ResourceKind:
        """Resource kind this state applies to."""
        if self in (ResourceState.DEPLOYMENT_READY, ResourceState.DEPLOYMENT_DELETED):
            return ResourceKind.DEPLOYMENT
        return ResourceKind.SERVICE


@dataclass(frozen=True)
class PredicateContext:
    """Values the predicates compare snapshots against."""

    desired_replicas: int = 0
    node_ip_override: str | None = None


def is_deployment_ready(deployment: Any, error: Exception | None, desired_replicas: int) -> bool:
    """Return True if the deployment is fully rolled out.

    The spec must be reconciled (observed generation equals generation) and
    both ready and available replicas must equal ``desired_replicas``.
    """
    if error is not None or deployment is None:
        return False
    generation = _safe_get(deployment, "metadata", "generation", default=0)
    observed = _safe_get(deployment, "status", "observed_generation", default=0)
    ready = _safe_get(deployment, "status", "ready_replicas", default=0)
    available = _safe_get(deployment, "status", "available_replicas", default=0)
    return generation == observed and ready == desired_replicas and available == desired_replicas


def is_resource_deleted(resource: Any, error: Exception | None) -> bool:
    """Return True only if the fetch failed because the resource is gone."""
    return isinstance(error, KubernetesNotFoundError)


def is_service_ingress_ready(
    service: Any, error: Exception | None, node_ip_override: str | None
) -> bool:
    """Return True if the service can be reached from outside the cluster.

    Either a load balancer reports ingress, or a node address override is
    configured and the service declares at least one port.
    """
    if error is not None or service is None:
        return False

    if _safe_get(service, "status", "load_balancer", "ingress"):
        return True

    # Local clusters have no load balancer; reach the node port instead.
    if node_ip_override and _safe_get(service, "spec", "ports"):
        return True

    return False


_PREDICATES: dict[ResourceState, Callable[[Any, Exception | None, PredicateContext], bool]] = {
    ResourceState.DEPLOYMENT_READY: lambda obj, err, ctx: is_deployment_ready(
        obj, err, ctx.desired_replicas
    ),
    ResourceState.DEPLOYMENT_DELETED: lambda obj, err, ctx: is_resource_deleted(obj, err),
    ResourceState.SERVICE_INGRESS_READY: lambda obj, err, ctx: is_service_ingress_ready(
        obj, err, ctx.node_ip_override
    ),
    ResourceState.SERVICE_DELETED: lambda obj, err, ctx: is_resource_deleted(obj, err),
}


def evaluate(
    state: ResourceState,
    resource: Any,
    error: Exception | None,
    context: PredicateContext,
) -> bool:
    """Evaluate the predicate of ``state`` against one fetch result."""
    return _PREDICATES[state](resource, error, context)
