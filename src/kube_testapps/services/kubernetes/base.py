"""Base manager for test app service managers.

Provides shared infrastructure: client access, namespace binding, pod
discovery by app label, and error translation.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, NoReturn

import structlog

from kube_testapps.integrations.kubernetes.exceptions import (
    KubernetesError,
    ReplicaCountMismatchError,
)
from kube_testapps.integrations.kubernetes.models.workloads import PodRecord

if TYPE_CHECKING:
    from kube_testapps.integrations.kubernetes.client import KubernetesClient
    from kube_testapps.integrations.kubernetes.models.app import AppDescription

logger = structlog.get_logger()

# Pods of a test app carry `testapp=<app name>`.
TEST_APP_LABEL_KEY = "testapp"

# Name of the injected sidecar container in every sidecar-enabled pod.
SIDECAR_CONTAINER_NAME = "daprd"


def app_label_selector(app_name: str) -> str:
    """Label selector matching the pods of one test app."""
    return f"{TEST_APP_LABEL_KEY}={app_name}"


class K8sBaseManager:
    """Base class for managers scoped to one namespace.

    Subclasses set ``_entity_name`` for structured log context.
    """

    _entity_name: str = ""

    def __init__(self, client: KubernetesClient, namespace: str) -> None:
        """Initialize the manager.

        Args:
            client: Kubernetes API client instance.
            namespace: Namespace every operation of this manager targets.
        """
        self._client = client
        self._namespace = namespace
        self._log = logger.bind(entity=self._entity_name, namespace=namespace)

    @property
    def namespace(self) -> str:
        """Namespace this manager operates in."""
        return self._namespace

    def _translate(
        self,
        e: Exception,
        resource_type: str | None = None,
        resource_name: str | None = None,
    ) -> KubernetesError:
        """Translate a Kubernetes API exception without raising it."""
        return self._client.translate_api_exception(
            e,
            resource_type=resource_type,
            resource_name=resource_name,
            namespace=self._namespace,
        )

    def _handle_api_error(
        self,
        e: Exception,
        resource_type: str | None = None,
        resource_name: str | None = None,
    ) -> NoReturn:
        """Translate a Kubernetes API exception and re-raise.

        Raises:
            KubernetesError: Always raises an appropriate subclass.
        """
        raise self._translate(e, resource_type, resource_name) from e

    def _list_app_pods(self, app_name: str) -> list[Any]:
        """List the raw pods labelled with the app name."""
        try:
            result = self._client.core_v1.list_namespaced_pod(
                namespace=self._namespace,
                label_selector=app_label_selector(app_name),
            )
        except Exception as e:
            self._handle_api_error(e, "Pod", app_name)
        return list(result.items or [])

    def _list_app_pod_records(self, app: AppDescription) -> list[PodRecord]:
        """List pod records for an app, enforcing the declared replica count.

        Raises:
            ReplicaCountMismatchError: If the number of matching pods differs
                from ``app.replicas``.
        """
        pods = [PodRecord.from_k8s_object(p) for p in self._list_app_pods(app.app_name)]
        if len(pods) != app.replicas:
            raise ReplicaCountMismatchError(
                app.app_name, app.replicas, len(pods), namespace=self._namespace
            )
        return pods
