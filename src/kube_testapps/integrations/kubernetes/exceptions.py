"""Kubernetes integration custom exceptions."""

from __future__ import annotations

from typing import Any


class KubernetesError(Exception):
    """Base exception for Kubernetes operations.

    Attributes:
        message: Human-readable error message.
        status_code: HTTP status code from Kubernetes API (if applicable).
        resource_type: Type of resource involved (e.g., "Pod", "Deployment").
        resource_name: Name of the resource involved.
        namespace: Namespace of the resource (if applicable).
    """

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        resource_type: str | None = None,
        resource_name: str | None = None,
        namespace: str | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.resource_type = resource_type
        self.resource_name = resource_name
        self.namespace = namespace

    def __str__(self) -> str:
        """Return string representation of the error."""
        parts = [self.message]
        if self.status_code:
            parts.append(f"(status: {self.status_code})")
        if self.resource_type and self.resource_name:
            loc = f"[{self.resource_type}/{self.resource_name}"
            if self.namespace:
                loc += f" in {self.namespace}"
            loc += "]"
            parts.append(loc)
        return " ".join(parts)


class KubernetesConnectionError(KubernetesError):
    """Raised when the cluster cannot be reached or kubeconfig cannot be loaded."""

    def __init__(
        self,
        message: str = "Failed to connect to Kubernetes cluster",
        original_error: Exception | None = None,
    ) -> None:
        super().__init__(message=message)
        self.original_error = original_error


class KubernetesAuthError(KubernetesError):
    """Raised on 401/403 responses from the API server."""

    def __init__(
        self,
        message: str = "Kubernetes authentication/authorization failed",
        status_code: int | None = 401,
        reason: str | None = None,
    ) -> None:
        super().__init__(message=message, status_code=status_code)
        self.reason = reason


class KubernetesNotFoundError(KubernetesError):
    """Raised when a requested resource does not exist (404).

    Deletion waits rely on this classification: it is the only error that
    means "gone" rather than "broken".
    """

    def __init__(
        self,
        message: str = "Kubernetes resource not found",
        resource_type: str | None = None,
        resource_name: str | None = None,
        namespace: str | None = None,
    ) -> None:
        if resource_type and resource_name:
            message = f"{resource_type} '{resource_name}' not found"
            if namespace:
                message += f" in namespace '{namespace}'"
        super().__init__(
            message=message,
            status_code=404,
            resource_type=resource_type,
            resource_name=resource_name,
            namespace=namespace,
        )


class KubernetesValidationError(KubernetesError):
    """Raised when a request is rejected as invalid (400/422)."""

    def __init__(
        self,
        message: str = "Invalid resource specification",
        validation_errors: dict[str, Any] | None = None,
        status_code: int | None = 422,
    ) -> None:
        super().__init__(message=message, status_code=status_code)
        self.validation_errors = validation_errors or {}


class KubernetesConflictError(KubernetesError):
    """Raised when a resource already exists or was modified concurrently (409)."""

    def __init__(
        self,
        message: str = "Resource conflict",
        resource_type: str | None = None,
        resource_name: str | None = None,
        namespace: str | None = None,
    ) -> None:
        if resource_type and resource_name:
            message = f"{resource_type} '{resource_name}' already exists"
            if namespace:
                message += f" in namespace '{namespace}'"
        super().__init__(
            message=message,
            status_code=409,
            resource_type=resource_type,
            resource_name=resource_name,
            namespace=namespace,
        )


class KubernetesTimeoutError(KubernetesError):
    """Raised when a polled condition is not met before its deadline.

    Attributes:
        timeout_seconds: The deadline that was exceeded.
        last_observed: The last object seen by the poll, kept for diagnostics.
    """

    def __init__(
        self,
        message: str = "Kubernetes operation timed out",
        timeout_seconds: float | None = None,
        last_observed: Any = None,
    ) -> None:
        if timeout_seconds is not None:
            message = f"{message} (after {timeout_seconds:g}s)"
        super().__init__(message=message)
        self.timeout_seconds = timeout_seconds
        self.last_observed = last_observed


class ReplicaCountMismatchError(KubernetesError):
    """Raised when the pods matching an app differ in number from its replicas."""

    def __init__(self, app_name: str, expected: int, actual: int, namespace: str | None = None):
        super().__init__(
            message=f"expected number of pods for {app_name}: {expected}, received: {actual}",
            resource_type="Pod",
            namespace=namespace,
        )
        self.app_name = app_name
        self.expected = expected
        self.actual = actual


class ReplicaRangeError(KubernetesValidationError):
    """Raised when a requested replica count falls outside the allowed range."""

    def __init__(self, replicas: int, maximum: int) -> None:
        super().__init__(message=f"{replicas} is out of range [0, {maximum}]", status_code=None)
        self.replicas = replicas
        self.maximum = maximum


class SidecarNotFoundError(KubernetesError):
    """Raised when a pod of a sidecar-enabled app has no sidecar container."""

    def __init__(self, pod_name: str, sidecar_name: str, namespace: str | None = None) -> None:
        super().__init__(
            message=f"cannot find sidecar '{sidecar_name}' in pod {pod_name}",
            resource_type="Pod",
            resource_name=pod_name,
            namespace=namespace,
        )
        self.pod_name = pod_name
        self.sidecar_name = sidecar_name


class MetricsContainerNotFoundError(KubernetesError):
    """Raised when no pod reports usage for the requested container class."""

    def __init__(self, app_name: str, *, sidecar: bool, namespace: str | None = None) -> None:
        super().__init__(
            message=f"container (sidecar={sidecar}) not found in pods for app {app_name}",
            resource_type="PodMetrics",
            namespace=namespace,
        )
        self.app_name = app_name
        self.sidecar = sidecar


class AppLifecycleError(KubernetesError):
    """Raised when an operation is attempted in the wrong lifecycle state."""
