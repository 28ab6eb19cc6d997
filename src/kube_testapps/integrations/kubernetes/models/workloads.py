"""Pod and resource usage models."""

from __future__ import annotations

from typing import Any

from pydantic import Field

from kube_testapps.integrations.kubernetes.models.base import K8sEntityBase, _safe_get


class PodRecord(K8sEntityBase):
    """A pod backing a test app, as seen by one query.

    Pod identity churns across restarts and rescheduling, so records are
    rebuilt from a fresh list call every time and never cached.
    """

    name: str = Field(description="Pod name")
    ip: str | None = Field(default=None, description="Pod IP address")
    containers: list[str] = Field(default_factory=list, description="Spec container names")
    restarts: int = Field(default=0, description="Sum of container restart counts")

    @classmethod
    def from_k8s_object(cls, obj: Any) -> PodRecord:
        """Create from a kubernetes V1Pod object."""
        spec_containers = _safe_get(obj, "spec", "containers") or []
        statuses = _safe_get(obj, "status", "container_statuses") or []
        return cls(
            name=_safe_get(obj, "metadata", "name", default=""),
            ip=_safe_get(obj, "status", "pod_ip"),
            containers=[c.name for c in spec_containers],
            restarts=sum(getattr(s, "restart_count", 0) or 0 for s in statuses),
        )

    def has_container(self, name: str) -> bool:
        """Return True if the pod spec declares a container with this name."""
        return name in self.containers


class ResourceUsage(K8sEntityBase):
    """Peak usage across the pods of an app."""

    cpu_millicores: int = Field(description="Maximum CPU usage in millicores")
    memory_mb: float = Field(description="Maximum memory usage in decimal megabytes")
