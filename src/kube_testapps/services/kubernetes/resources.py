"""Builders for the namespace, deployment and service bodies of a test app."""

from __future__ import annotations

from typing import TYPE_CHECKING

from kube_testapps.services.kubernetes.base import TEST_APP_LABEL_KEY

if TYPE_CHECKING:
    from kubernetes.client import V1Deployment, V1Namespace, V1Service

    from kube_testapps.integrations.kubernetes.models.app import AppDescription

# Port the service exposes in front of the app container port.
SERVICE_PORT = 80

SIDECAR_ANNOTATION_PREFIX = "dapr.io"


def _sidecar_annotations(app: AppDescription) -> dict[str, str]:
    if not app.sidecar_enabled:
        return {}
    return {
        f"{SIDECAR_ANNOTATION_PREFIX}/enabled": "true",
        f"{SIDECAR_ANNOTATION_PREFIX}/app-id": app.app_name,
        f"{SIDECAR_ANNOTATION_PREFIX}/app-port": str(app.app_port),
    }


def build_namespace_object(namespace: str) -> V1Namespace:
    """Build the namespace body for a test run."""
    from kubernetes.client import V1Namespace, V1ObjectMeta

    return V1Namespace(metadata=V1ObjectMeta(name=namespace))


def build_deployment_object(namespace: str, app: AppDescription) -> V1Deployment:
    """Build the deployment body for a test app.

    Pods are labelled ``testapp=<app_name>`` and carry the sidecar injection
    annotations when the app expects a sidecar.
    """
    from kubernetes.client import (
        V1Container,
        V1ContainerPort,
        V1Deployment,
        V1DeploymentSpec,
        V1EnvVar,
        V1LabelSelector,
        V1ObjectMeta,
        V1PodSpec,
        V1PodTemplateSpec,
    )

    labels = {TEST_APP_LABEL_KEY: app.app_name}
    container = V1Container(
        name=app.app_name,
        image=app.image,
        image_pull_policy=app.image_pull_policy,
        ports=[V1ContainerPort(container_port=app.app_port)],
        env=[V1EnvVar(name=k, value=v) for k, v in sorted(app.app_env.items())] or None,
    )

    return V1Deployment(
        api_version="apps/v1",
        kind="Deployment",
        metadata=V1ObjectMeta(name=app.app_name, namespace=namespace, labels=labels),
        spec=V1DeploymentSpec(
            replicas=app.replicas,
            selector=V1LabelSelector(match_labels=labels),
            template=V1PodTemplateSpec(
                metadata=V1ObjectMeta(
                    labels=labels,
                    annotations=_sidecar_annotations(app) or None,
                ),
                spec=V1PodSpec(containers=[container]),
            ),
        ),
    )


def build_service_object(namespace: str, app: AppDescription) -> V1Service:
    """Build the service body exposing a test app.

    Apps that need an external endpoint get a LoadBalancer service, whose
    node port is also what local clusters without a load balancer use.
    """
    from kubernetes.client import V1ObjectMeta, V1Service, V1ServicePort, V1ServiceSpec

    service_type = "LoadBalancer" if app.ingress_enabled else "ClusterIP"
    labels = {TEST_APP_LABEL_KEY: app.app_name}

    return V1Service(
        api_version="v1",
        kind="Service",
        metadata=V1ObjectMeta(name=app.app_name, namespace=namespace, labels=labels),
        spec=V1ServiceSpec(
            type=service_type,
            selector=labels,
            ports=[
                V1ServicePort(
                    protocol="TCP",
                    port=SERVICE_PORT,
                    target_port=app.app_port,
                )
            ],
        ),
    )
