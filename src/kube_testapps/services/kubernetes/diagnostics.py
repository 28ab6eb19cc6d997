"""Diagnostics collection for test apps.

Restart counts, peak CPU/memory usage and container log capture. Every
pod-scoped query re-lists the app pods and refuses to proceed when their
number differs from the declared replica count.
"""

from __future__ import annotations

import math
from pathlib import Path
from typing import TYPE_CHECKING, Any

import urllib3.exceptions
from kubernetes.client import ApiException
from kubernetes.utils import parse_quantity

from kube_testapps.integrations.kubernetes.exceptions import MetricsContainerNotFoundError
from kube_testapps.integrations.kubernetes.models.workloads import PodRecord, ResourceUsage
from kube_testapps.services.kubernetes.base import SIDECAR_CONTAINER_NAME, K8sBaseManager

if TYPE_CHECKING:
    from kube_testapps.integrations.kubernetes.models.app import AppDescription

METRICS_API_GROUP = "metrics.k8s.io"
METRICS_API_VERSION = "v1beta1"

LOG_CHUNK_SIZE = 64 * 1024


class DiagnosticsCollector(K8sBaseManager):
    """Collects runtime diagnostics for the pods of a test app."""

    _entity_name = "diagnostics"

    def get_host_details(self, app: AppDescription) -> list[PodRecord]:
        """Return name and IP of every pod running the app.

        Raises:
            ReplicaCountMismatchError: If pod count differs from ``app.replicas``.
        """
        pods = self._list_app_pod_records(app)
        self._log.debug("listed_app_pods", app=app.app_name, count=len(pods))
        return pods

    def get_total_restarts(self, app: AppDescription) -> int:
        """Return the sum of container restarts across the app pods.

        Raises:
            ReplicaCountMismatchError: If pod count differs from ``app.replicas``.
        """
        pods = self._list_app_pod_records(app)
        total = sum(pod.restarts for pod in pods)
        self._log.debug("counted_restarts", app=app.app_name, restarts=total)
        return total

    def get_cpu_and_memory(self, app: AppDescription, *, sidecar: bool) -> ResourceUsage:
        """Return peak CPU and memory of the app or sidecar containers.

        Args:
            app: The test app.
            sidecar: Measure sidecar containers instead of app containers.

        Raises:
            ReplicaCountMismatchError: If pod count differs from ``app.replicas``.
            MetricsContainerNotFoundError: If no pod reports the requested
                container class.
        """
        max_cpu = -1
        max_memory = -1.0
        for pod in self._list_app_pod_records(app):
            for container in self._fetch_pod_metrics(pod.name).get("containers") or []:
                if (container.get("name") == SIDECAR_CONTAINER_NAME) != sidecar:
                    continue
                usage = container.get("usage") or {}
                max_cpu = max(max_cpu, _cpu_millicores(usage.get("cpu", "0")))
                max_memory = max(max_memory, _memory_mb(usage.get("memory", "0")))

        if max_cpu < 0 or max_memory < 0:
            raise MetricsContainerNotFoundError(
                app.app_name, sidecar=sidecar, namespace=self._namespace
            )

        self._log.debug(
            "collected_usage",
            app=app.app_name,
            sidecar=sidecar,
            cpu_millicores=max_cpu,
            memory_mb=max_memory,
        )
        return ResourceUsage(cpu_millicores=max_cpu, memory_mb=max_memory)

    def _fetch_pod_metrics(self, pod_name: str) -> dict[str, Any]:
        try:
            result: dict[str, Any] = self._client.custom_objects.get_namespaced_custom_object(
                group=METRICS_API_GROUP,
                version=METRICS_API_VERSION,
                namespace=self._namespace,
                plural="pods",
                name=pod_name,
            )
        except Exception as e:
            self._handle_api_error(e, "PodMetrics", pod_name)
        return result

    def save_container_logs(self, app: AppDescription, log_dir: Path) -> list[Path]:
        """Stream the logs of every container of every app pod to disk.

        Files are named ``<pod>.<container>.log``. The first failure stops
        the capture and is raised; files already written are kept.

        Returns:
            Paths of the written log files.

        Raises:
            ReplicaCountMismatchError: If pod count differs from ``app.replicas``.
        """
        saved: list[Path] = []
        for pod in self._list_app_pod_records(app):
            for container in pod.containers:
                path = log_dir / f"{pod.name}.{container}.log"
                self._save_container_log(pod.name, container, path)
                self._log.info("saved_container_logs", path=str(path))
                saved.append(path)
        return saved

    def _save_container_log(self, pod_name: str, container: str, path: Path) -> None:
        try:
            response = self._client.core_v1.read_namespaced_pod_log(
                name=pod_name,
                namespace=self._namespace,
                container=container,
                _preload_content=False,
            )
        except Exception as e:
            self._handle_api_error(e, "Pod", pod_name)

        try:
            with path.open("wb") as fh:
                for chunk in response.stream(LOG_CHUNK_SIZE):
                    fh.write(chunk)
        except (ApiException, urllib3.exceptions.HTTPError) as e:
            self._handle_api_error(e, "Pod", pod_name)
        finally:
            response.release_conn()


def _cpu_millicores(value: str) -> int:
    """Convert a CPU quantity to millicores, rounding up."""
    return math.ceil(parse_quantity(value) * 1000)


def _memory_mb(value: str) -> float:
    """Convert a memory quantity in bytes to approximate decimal megabytes."""
    kib = int(parse_quantity(value)) // 1024
    return float(kib) * 0.001024
