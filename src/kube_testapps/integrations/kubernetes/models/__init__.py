"""Models for test app descriptions and observed pod state."""

from kube_testapps.integrations.kubernetes.models.app import (
    DEFAULT_APP_PORT,
    MAX_REPLICAS,
    AppDescription,
)
from kube_testapps.integrations.kubernetes.models.workloads import PodRecord, ResourceUsage

__all__ = [
    "DEFAULT_APP_PORT",
    "MAX_REPLICAS",
    "AppDescription",
    "PodRecord",
    "ResourceUsage",
]
