"""Kubernetes test app services.

Lifecycle coordination, state polling, port forwarding and diagnostics for
apps deployed onto a cluster by end-to-end tests.
"""

from kube_testapps.services.kubernetes.app_manager import AppManager, LifecycleState
from kube_testapps.services.kubernetes.diagnostics import DiagnosticsCollector
from kube_testapps.services.kubernetes.polling import poll_until
from kube_testapps.services.kubernetes.port_forward import PodPortForwarder, Tunnel
from kube_testapps.services.kubernetes.predicates import (
    PredicateContext,
    ResourceKind,
    ResourceState,
    evaluate,
)

__all__ = [
    "AppManager",
    "DiagnosticsCollector",
    "LifecycleState",
    "PodPortForwarder",
    "PredicateContext",
    "ResourceKind",
    "ResourceState",
    "Tunnel",
    "evaluate",
    "poll_until",
]
