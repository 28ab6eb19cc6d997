"""Lifecycle coordinator for one test app.

:class:`AppManager` drives a test app through a linear state machine::

    NEW -> NAMESPACE_ENSURED -> STALE_RESOURCES_CLEARED -> CREATED
        -> READINESS_CONFIRMED -> SIDECAR_VALIDATED -> INGRESS_EXPOSED

There are no backward transitions. The first failing step moves the manager
to ``FAILED``; ``dispose`` moves it to ``DISPOSED`` from any state.
"""

from __future__ import annotations

from collections.abc import Callable
from enum import StrEnum
from pathlib import Path
from typing import TYPE_CHECKING, Any

from kube_testapps.integrations.kubernetes.exceptions import (
    AppLifecycleError,
    KubernetesConflictError,
    KubernetesError,
    KubernetesNotFoundError,
    ReplicaRangeError,
    SidecarNotFoundError,
)
from kube_testapps.integrations.kubernetes.models.app import MAX_REPLICAS, AppDescription
from kube_testapps.integrations.kubernetes.models.base import _safe_get
from kube_testapps.services.kubernetes.base import SIDECAR_CONTAINER_NAME, K8sBaseManager
from kube_testapps.services.kubernetes.diagnostics import DiagnosticsCollector
from kube_testapps.services.kubernetes.polling import poll_until
from kube_testapps.services.kubernetes.port_forward import PodPortForwarder
from kube_testapps.services.kubernetes.predicates import (
    PredicateContext,
    ResourceKind,
    ResourceState,
    evaluate,
)
from kube_testapps.services.kubernetes.resources import (
    build_deployment_object,
    build_namespace_object,
    build_service_object,
)

if TYPE_CHECKING:
    from kube_testapps.integrations.kubernetes.client import KubernetesClient
    from kube_testapps.integrations.kubernetes.config import AppManagerConfig
    from kube_testapps.integrations.kubernetes.models.workloads import PodRecord, ResourceUsage


class LifecycleState(StrEnum):
    """States of an AppManager."""

    NEW = "new"
    NAMESPACE_ENSURED = "namespace-ensured"
    STALE_RESOURCES_CLEARED = "stale-resources-cleared"
    CREATED = "created"
    READINESS_CONFIRMED = "readiness-confirmed"
    SIDECAR_VALIDATED = "sidecar-validated"
    INGRESS_EXPOSED = "ingress-exposed"
    FAILED = "failed"
    DISPOSED = "disposed"


_SETUP_SEQUENCE = (
    LifecycleState.NEW,
    LifecycleState.NAMESPACE_ENSURED,
    LifecycleState.STALE_RESOURCES_CLEARED,
    LifecycleState.CREATED,
    LifecycleState.READINESS_CONFIRMED,
    LifecycleState.SIDECAR_VALIDATED,
    LifecycleState.INGRESS_EXPOSED,
)

_DELETE_PROPAGATION = "Foreground"


class AppManager(K8sBaseManager):
    """Installs, observes and tears down one test app.

    Example:
        ```python
        app = AppDescription(app_name="hellobluegreen", image_name="e2e-hello:latest")
        manager = AppManager(client, "e2e-tests", app, config)
        manager.init()
        try:
            url = manager.acquire_external_url()
        finally:
            manager.dispose()
        ```
    """

    _entity_name = "app"

    def __init__(
        self,
        client: KubernetesClient,
        namespace: str,
        app: AppDescription,
        config: AppManagerConfig | None = None,
    ) -> None:
        """Initialize the manager.

        Args:
            client: Kubernetes API client instance.
            namespace: Namespace holding every resource of the test run.
            app: Description of the test app.
            config: Run configuration; the client's configuration when omitted.
        """
        super().__init__(client, namespace)
        self._app = app
        self._config = config or client.config
        self._state = LifecycleState.NEW
        self._diagnostics = DiagnosticsCollector(client, namespace)
        self._forwarder: PodPortForwarder | None = None
        self._log_dir: Path | None = None
        self._log = self._log.bind(app=app.app_name)

    # =========================================================================
    # Properties
    # =========================================================================

    @property
    def name(self) -> str:
        """App name."""
        return self._app.app_name

    @property
    def app(self) -> AppDescription:
        """Current app description, including the latest replica count."""
        return self._app

    @property
    def state(self) -> LifecycleState:
        """Current lifecycle state."""
        return self._state

    @property
    def log_dir(self) -> Path | None:
        """Directory receiving container logs, None when logs are discarded."""
        return self._log_dir

    # =========================================================================
    # Setup
    # =========================================================================

    def init(self) -> None:
        """Install the app and wait until it is usable.

        Runs every setup step in order. The first failure leaves the
        manager in ``FAILED`` and is re-raised.

        Raises:
            AppLifecycleError: If the manager is not in ``NEW``.
            KubernetesError: If any step fails.
        """
        if self._state is not LifecycleState.NEW:
            raise AppLifecycleError(
                f"cannot init app {self.name} in state {self._state}",
                namespace=self._namespace,
            )

        steps: list[tuple[LifecycleState, Callable[[], Any] | None]] = [
            (LifecycleState.NAMESPACE_ENSURED, self.get_or_create_namespace),
            (LifecycleState.STALE_RESOURCES_CLEARED, lambda: self._delete_resources(wait=True)),
            (LifecycleState.CREATED, self.deploy),
            (
                LifecycleState.READINESS_CONFIRMED,
                lambda: self.wait_until_deployment_state(ResourceState.DEPLOYMENT_READY),
            ),
            (
                LifecycleState.SIDECAR_VALIDATED,
                self.validate_sidecar if self._app.sidecar_enabled else None,
            ),
            (
                LifecycleState.INGRESS_EXPOSED,
                self.create_ingress_service if self._app.ingress_enabled else None,
            ),
        ]

        for target, step in steps:
            if step is not None:
                try:
                    step()
                except KubernetesError as e:
                    self._state = LifecycleState.FAILED
                    self._log.error("app_setup_failed", step=str(target), error=str(e))
                    raise
            self._advance(target)

        self._forwarder = PodPortForwarder(self._client, self._namespace)
        self._log_dir = self._prepare_log_dir()
        self._log.info("app_initialized", replicas=self._app.replicas)

    def _advance(self, target: LifecycleState) -> None:
        expected = _SETUP_SEQUENCE[_SETUP_SEQUENCE.index(target) - 1]
        if self._state is not expected:
            raise AppLifecycleError(
                f"cannot move app {self.name} from {self._state} to {target}",
                namespace=self._namespace,
            )
        self._state = target
        self._log.debug("app_state_changed", state=str(target))

    def _prepare_log_dir(self) -> Path | None:
        log_dir = Path(self._config.container_log_path)
        try:
            log_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            self._log.warning(
                "container_log_dir_unavailable",
                path=str(log_dir),
                error=str(e),
                detail="container logs will be discarded",
            )
            return None
        return log_dir

    def get_or_create_namespace(self) -> Any:
        """Get the namespace, creating it when it does not exist.

        A concurrent create by another manager is tolerated: on conflict the
        namespace is read again and returned.
        """
        core_v1 = self._client.core_v1
        try:
            return core_v1.read_namespace(name=self._namespace)
        except Exception as e:
            error = self._translate(e, "Namespace", self._namespace)
            if not isinstance(error, KubernetesNotFoundError):
                raise error from e

        self._log.info("creating_namespace")
        try:
            return core_v1.create_namespace(body=build_namespace_object(self._namespace))
        except Exception as e:
            error = self._translate(e, "Namespace", self._namespace)
            if not isinstance(error, KubernetesConflictError):
                raise error from e

        self._log.debug("namespace_created_concurrently")
        try:
            return core_v1.read_namespace(name=self._namespace)
        except Exception as e:
            self._handle_api_error(e, "Namespace", self._namespace)

    def deploy(self) -> Any:
        """Create the deployment.

        Creation is not idempotent, so it is only allowed right after stale
        resources were cleared.

        Raises:
            AppLifecycleError: If called in any other state.
        """
        if self._state is not LifecycleState.STALE_RESOURCES_CLEARED:
            raise AppLifecycleError(
                f"cannot deploy app {self.name} in state {self._state}",
                namespace=self._namespace,
            )

        self._log.info("creating_deployment", replicas=self._app.replicas)
        try:
            return self._client.apps_v1.create_namespaced_deployment(
                namespace=self._namespace,
                body=build_deployment_object(self._namespace, self._app),
            )
        except Exception as e:
            self._handle_api_error(e, "Deployment", self.name)

    def validate_sidecar(self) -> None:
        """Check that every app pod runs the sidecar container.

        Raises:
            ReplicaCountMismatchError: If pod count differs from the replicas.
            SidecarNotFoundError: Naming the first pod without a sidecar.
        """
        for pod in self._list_app_pod_records(self._app):
            if not pod.has_container(SIDECAR_CONTAINER_NAME):
                raise SidecarNotFoundError(
                    pod.name, SIDECAR_CONTAINER_NAME, namespace=self._namespace
                )
        self._log.debug("sidecar_validated")

    def create_ingress_service(self) -> Any:
        """Create the service exposing the app."""
        self._log.info("creating_service")
        try:
            return self._client.core_v1.create_namespaced_service(
                namespace=self._namespace,
                body=build_service_object(self._namespace, self._app),
            )
        except Exception as e:
            self._handle_api_error(e, "Service", self.name)

    # =========================================================================
    # State Waits
    # =========================================================================

    def _predicate_context(self) -> PredicateContext:
        return PredicateContext(
            desired_replicas=self._app.replicas,
            node_ip_override=self._config.node_ip_override,
        )

    def _wait_until_state(self, state: ResourceState, fetch: Callable[[], Any]) -> Any:
        context = self._predicate_context()

        def check() -> tuple[bool, Any]:
            resource = None
            error: KubernetesError | None = None
            try:
                resource = fetch()
            except Exception as e:
                error = self._translate(e, str(state.kind), self.name)
            done = evaluate(state, resource, error, context)
            if not done and error is not None:
                raise error
            return done, resource

        polling = self._config.polling
        self._log.debug("waiting_for_state", state=str(state))
        result = poll_until(
            check,
            interval=polling.interval,
            timeout=polling.timeout,
            description=f"{state.kind} {self.name!r} to reach {state}",
        )
        self._log.debug("state_reached", state=str(state))
        return result

    def wait_until_deployment_state(self, state: ResourceState) -> Any:
        """Poll the deployment until ``state`` holds.

        Returns:
            The last fetched deployment.

        Raises:
            KubernetesTimeoutError: If the state is not reached in time.
            KubernetesError: If a fetch fails and the state does not hold.
        """
        if state.kind is not ResourceKind.DEPLOYMENT:
            raise ValueError(f"{state} is not a deployment state")
        return self._wait_until_state(
            state,
            lambda: self._client.apps_v1.read_namespaced_deployment(
                name=self.name, namespace=self._namespace
            ),
        )

    def wait_until_service_state(self, state: ResourceState) -> Any:
        """Poll the service until ``state`` holds.

        Returns:
            The last fetched service.

        Raises:
            KubernetesTimeoutError: If the state is not reached in time.
            KubernetesError: If a fetch fails and the state does not hold.
        """
        if state.kind is not ResourceKind.SERVICE:
            raise ValueError(f"{state} is not a service state")
        return self._wait_until_state(
            state,
            lambda: self._client.core_v1.read_namespaced_service(
                name=self.name, namespace=self._namespace
            ),
        )

    # =========================================================================
    # External Access
    # =========================================================================

    def acquire_external_url(self) -> str:
        """Wait for the service ingress and return its ``host:port``.

        Raises:
            KubernetesTimeoutError: If the ingress never becomes ready.
            KubernetesError: If no address can be derived from the service.
        """
        self._log.info("waiting_for_ingress")
        service = self.wait_until_service_state(ResourceState.SERVICE_INGRESS_READY)
        url = self.external_url_from_service(service)
        if url is None:
            raise KubernetesError(
                f"no external address for service {self.name}",
                resource_type="Service",
                resource_name=self.name,
                namespace=self._namespace,
            )
        self._log.info("ingress_ready", url=url)
        return url

    def external_url_from_service(self, service: Any) -> str | None:
        """Derive ``host:port`` from a service, or None when not exposed."""
        ports = _safe_get(service, "spec", "ports") or []
        ingress = _safe_get(service, "status", "load_balancer", "ingress") or []
        if ingress and ports:
            address = ingress[0].hostname or ingress[0].ip
            return f"{address}:{ports[0].port}"

        node_ip = self._config.node_ip_override
        if node_ip and ports:
            return f"{node_ip}:{ports[0].node_port}"

        return None

    def do_port_forwarding(self, pod_name: str | None, *target_ports: int) -> list[int]:
        """Forward local ports to a pod of the app.

        Args:
            pod_name: Pod to reach; any pod of the app when empty.
            target_ports: Pod ports to forward.

        Returns:
            Local ports, in the order of ``target_ports``.
        """
        if self._forwarder is None:
            raise AppLifecycleError(
                f"app {self.name} is not initialized", namespace=self._namespace
            )

        if not pod_name:
            pods = self._list_app_pods(self.name)
            if not pods:
                raise KubernetesNotFoundError(
                    resource_type="Pod",
                    resource_name=f"(app '{self.name}')",
                    namespace=self._namespace,
                )
            pod_name = _safe_get(pods[0], "metadata", "name")

        return self._forwarder.connect(pod_name, *target_ports)

    # =========================================================================
    # Scaling
    # =========================================================================

    def scale_deployment_replica(self, replicas: int) -> None:
        """Scale the deployment and record the new replica count.

        Raises:
            ReplicaRangeError: If ``replicas`` is outside [0, MAX_REPLICAS];
                no cluster call is made in that case.
        """
        if replicas < 0 or replicas > MAX_REPLICAS:
            raise ReplicaRangeError(replicas, MAX_REPLICAS)

        apps_v1 = self._client.apps_v1
        try:
            scale = apps_v1.read_namespaced_deployment_scale(
                name=self.name, namespace=self._namespace
            )
        except Exception as e:
            self._handle_api_error(e, "Deployment", self.name)

        if scale.spec.replicas == replicas:
            return

        self._log.info("scaling_deployment", replicas=replicas)
        scale.spec.replicas = replicas
        try:
            apps_v1.replace_namespaced_deployment_scale(
                name=self.name, namespace=self._namespace, body=scale
            )
        except Exception as e:
            self._handle_api_error(e, "Deployment", self.name)

        self._app = self._app.model_copy(update={"replicas": replicas})

    # =========================================================================
    # Diagnostics
    # =========================================================================

    def get_host_details(self) -> list[PodRecord]:
        """Return name and IP of every pod running the app."""
        return self._diagnostics.get_host_details(self._app)

    def get_total_restarts(self) -> int:
        """Return the total number of container restarts of the app."""
        return self._diagnostics.get_total_restarts(self._app)

    def get_cpu_and_memory(self, *, sidecar: bool = False) -> ResourceUsage:
        """Return peak CPU and memory usage of the app or its sidecar."""
        return self._diagnostics.get_cpu_and_memory(self._app, sidecar=sidecar)

    def save_container_logs(self) -> list[Path]:
        """Write the logs of every app container to the log directory."""
        if self._log_dir is None:
            return []
        return self._diagnostics.save_container_logs(self._app, self._log_dir)

    # =========================================================================
    # Teardown
    # =========================================================================

    def delete_deployment(self, *, ignore_not_found: bool = True) -> None:
        """Delete the deployment with foreground propagation."""
        self._log.info("deleting_deployment")
        try:
            self._client.apps_v1.delete_namespaced_deployment(
                name=self.name,
                namespace=self._namespace,
                propagation_policy=_DELETE_PROPAGATION,
            )
        except Exception as e:
            error = self._translate(e, "Deployment", self.name)
            if not (ignore_not_found and isinstance(error, KubernetesNotFoundError)):
                raise error from e

    def delete_service(self, *, ignore_not_found: bool = True) -> None:
        """Delete the service with foreground propagation."""
        self._log.info("deleting_service")
        try:
            self._client.core_v1.delete_namespaced_service(
                name=self.name,
                namespace=self._namespace,
                propagation_policy=_DELETE_PROPAGATION,
            )
        except Exception as e:
            error = self._translate(e, "Service", self.name)
            if not (ignore_not_found and isinstance(error, KubernetesNotFoundError)):
                raise error from e

    def _delete_resources(self, *, wait: bool) -> None:
        self.delete_deployment()
        self.delete_service()
        if wait:
            self.wait_until_deployment_state(ResourceState.DEPLOYMENT_DELETED)
            self.wait_until_service_state(ResourceState.SERVICE_DELETED)

    def dispose(self, *, wait: bool = True) -> None:
        """Tear the app down.

        Container logs are captured first on a best-effort basis: a capture
        failure is logged and teardown continues. Missing resources are not
        an error, so dispose is safe after a partial init. Port tunnels are
        released even when a deletion step fails; that error is re-raised.

        Args:
            wait: Block until the deployment and service are gone.
        """
        if self._log_dir is not None:
            try:
                self.save_container_logs()
            except (KubernetesError, OSError) as e:
                self._log.warning("container_log_capture_failed", error=str(e))

        try:
            self._delete_resources(wait=wait)
        finally:
            if self._forwarder is not None:
                self._forwarder.close()
                self._forwarder = None
            self._state = LifecycleState.DISPOSED

        self._log.info("app_disposed")
