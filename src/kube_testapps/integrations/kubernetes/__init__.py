"""Kubernetes integration - API client, configuration and exceptions."""

from kube_testapps.integrations.kubernetes.client import KubernetesClient
from kube_testapps.integrations.kubernetes.config import (
    AppManagerConfig,
    ClusterConfig,
    PollingConfig,
)
from kube_testapps.integrations.kubernetes.exceptions import (
    AppLifecycleError,
    KubernetesAuthError,
    KubernetesConflictError,
    KubernetesConnectionError,
    KubernetesError,
    KubernetesNotFoundError,
    KubernetesTimeoutError,
    KubernetesValidationError,
    MetricsContainerNotFoundError,
    ReplicaCountMismatchError,
    ReplicaRangeError,
    SidecarNotFoundError,
)

__all__ = [
    "AppLifecycleError",
    "AppManagerConfig",
    "ClusterConfig",
    "KubernetesAuthError",
    "KubernetesClient",
    "KubernetesConflictError",
    "KubernetesConnectionError",
    "KubernetesError",
    "KubernetesNotFoundError",
    "KubernetesTimeoutError",
    "KubernetesValidationError",
    "MetricsContainerNotFoundError",
    "PollingConfig",
    "ReplicaCountMismatchError",
    "ReplicaRangeError",
    "SidecarNotFoundError",
]
