"""Unit tests for pod and resource usage models."""

from __future__ import annotations

from unittest.mock import MagicMock

import pytest

from kube_testapps.integrations.kubernetes.models.workloads import PodRecord, ResourceUsage


def _container(name: str) -> MagicMock:
    obj = MagicMock()
    obj.name = name
    return obj


@pytest.mark.unit
@pytest.mark.kubernetes
class TestPodRecord:
    """Test PodRecord model."""

    def test_from_k8s_object(self) -> None:
        """Test from_k8s_object with a running pod."""
        obj = MagicMock()
        obj.metadata.name = "hello-7d9c-x2k"
        obj.status.pod_ip = "10.244.0.12"
        obj.spec.containers = [_container("hello"), _container("daprd")]
        obj.status.container_statuses = [
            MagicMock(restart_count=2),
            MagicMock(restart_count=1),
        ]

        pod = PodRecord.from_k8s_object(obj)

        assert pod.name == "hello-7d9c-x2k"
        assert pod.ip == "10.244.0.12"
        assert pod.containers == ["hello", "daprd"]
        assert pod.restarts == 3

    def test_from_k8s_object_pending(self) -> None:
        """Test a pending pod without IP or statuses."""
        obj = MagicMock()
        obj.metadata.name = "hello-pending"
        obj.status.pod_ip = None
        obj.spec.containers = [_container("hello")]
        obj.status.container_statuses = None

        pod = PodRecord.from_k8s_object(obj)

        assert pod.ip is None
        assert pod.restarts == 0

    def test_missing_restart_count(self) -> None:
        """Test statuses without a restart count count as zero."""
        obj = MagicMock()
        obj.metadata.name = "hello-0"
        obj.status.pod_ip = None
        obj.spec.containers = []
        obj.status.container_statuses = [MagicMock(restart_count=None)]

        assert PodRecord.from_k8s_object(obj).restarts == 0

    def test_has_container(self) -> None:
        """Test container lookup by exact name."""
        pod = PodRecord(name="hello-0", containers=["hello", "daprd"])

        assert pod.has_container("daprd")
        assert not pod.has_container("dapr")


@pytest.mark.unit
@pytest.mark.kubernetes
class TestResourceUsage:
    """Test ResourceUsage model."""

    def test_values(self) -> None:
        """Test fields are kept as given."""
        usage = ResourceUsage(cpu_millicores=250, memory_mb=10.48576)

        assert usage.cpu_millicores == 250
        assert usage.memory_mb == pytest.approx(10.48576)
