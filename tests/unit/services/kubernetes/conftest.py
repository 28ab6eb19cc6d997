"""Shared fixtures for test app service tests."""

from __future__ import annotations

from collections.abc import Callable, Sequence
from typing import Any
from unittest.mock import MagicMock

import pytest
from kubernetes.client import (
    V1Container,
    V1ContainerStatus,
    V1Deployment,
    V1DeploymentSpec,
    V1DeploymentStatus,
    V1LabelSelector,
    V1LoadBalancerIngress,
    V1LoadBalancerStatus,
    V1ObjectMeta,
    V1Pod,
    V1PodSpec,
    V1PodStatus,
    V1PodTemplateSpec,
    V1Service,
    V1ServicePort,
    V1ServiceSpec,
    V1ServiceStatus,
)

from kube_testapps.integrations.kubernetes.client import KubernetesClient
from kube_testapps.integrations.kubernetes.config import AppManagerConfig
from kube_testapps.integrations.kubernetes.models.app import AppDescription


@pytest.fixture
def mock_k8s_client(fast_config: AppManagerConfig) -> MagicMock:
    """Create a mock Kubernetes client with real error translation."""
    mock_client = MagicMock()
    mock_client.config = fast_config
    mock_client.translate_api_exception.side_effect = KubernetesClient.translate_api_exception
    return mock_client


@pytest.fixture
def app_description() -> AppDescription:
    """A sidecar-enabled, externally exposed app with three replicas."""
    return AppDescription(
        app_name="hello",
        image_name="e2e-hello:latest",
        replicas=3,
        sidecar_enabled=True,
        ingress_enabled=True,
    )


@pytest.fixture
def make_pod() -> Callable[..., V1Pod]:
    """Factory for pods of the `hello` app."""

    def _make(
        name: str,
        containers: Sequence[str] = ("hello", "daprd"),
        ip: str = "10.0.0.1",
        restarts: int = 0,
    ) -> V1Pod:
        return V1Pod(
            metadata=V1ObjectMeta(name=name, labels={"testapp": "hello"}),
            spec=V1PodSpec(containers=[V1Container(name=c) for c in containers]),
            status=V1PodStatus(
                pod_ip=ip,
                container_statuses=[
                    V1ContainerStatus(
                        name=c,
                        image="img",
                        image_id="img-id",
                        ready=True,
                        restart_count=restarts,
                    )
                    for c in containers
                ],
            ),
        )

    return _make


@pytest.fixture
def make_deployment() -> Callable[..., V1Deployment]:
    """Factory for deployments with a given rollout status."""

    def _make(
        generation: int = 2,
        observed_generation: int = 2,
        ready: int | None = 3,
        available: int | None = 3,
    ) -> V1Deployment:
        return V1Deployment(
            metadata=V1ObjectMeta(name="hello", generation=generation),
            spec=V1DeploymentSpec(selector=V1LabelSelector(), template=V1PodTemplateSpec()),
            status=V1DeploymentStatus(
                observed_generation=observed_generation,
                ready_replicas=ready,
                available_replicas=available,
            ),
        )

    return _make


@pytest.fixture
def make_service() -> Callable[..., V1Service]:
    """Factory for services with optional load balancer ingress."""

    def _make(
        ingress: list[dict[str, Any]] | None = None,
        ports: Sequence[int] = (80,),
        node_port: int = 30080,
    ) -> V1Service:
        return V1Service(
            metadata=V1ObjectMeta(name="hello"),
            spec=V1ServiceSpec(
                ports=[V1ServicePort(port=p, node_port=node_port) for p in ports] or None
            ),
            status=V1ServiceStatus(
                load_balancer=V1LoadBalancerStatus(
                    ingress=[V1LoadBalancerIngress(**i) for i in ingress] if ingress else None
                )
            ),
        )

    return _make

