"""Local port forwarding to test app pods.

A :class:`PodPortForwarder` belongs to one namespace and holds, per pod, a
set of tunnels from ephemeral local ports to pod ports. Each accepted local
connection gets its own Kubernetes port-forward stream and is bridged both
ways until either side closes.

There is no shared multiplexed session per namespace: the socket returned
by ``kubernetes.stream.portforward`` carries a single connection.
"""

from __future__ import annotations

import contextlib
import select
import socket
import threading
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from kube_testapps.integrations.kubernetes.exceptions import AppLifecycleError
from kube_testapps.services.kubernetes.base import K8sBaseManager

if TYPE_CHECKING:
    from kube_testapps.integrations.kubernetes.client import KubernetesClient

DEFAULT_ADDRESS = "127.0.0.1"

# Seconds a blocked accept/select waits before re-checking the stop flag.
POLL_SECONDS = 0.2

BUFFER_SIZE = 4096


@dataclass(frozen=True)
class Tunnel:
    """A local port mapped to a port of a pod."""

    pod_name: str
    local_port: int
    remote_port: int


@dataclass
class _PodSession:
    pod_name: str
    stop: threading.Event = field(default_factory=threading.Event)
    servers: list[socket.socket] = field(default_factory=list)
    tunnels: list[Tunnel] = field(default_factory=list)

    def close(self) -> None:
        self.stop.set()
        for server in self.servers:
            with contextlib.suppress(OSError):
                server.close()
        self.servers.clear()
        self.tunnels.clear()


class PodPortForwarder(K8sBaseManager):
    """Forwards local ports to pods of one namespace.

    Example:
        >>> with PodPortForwarder(client, "e2e") as forwarder:
        ...     (local_port,) = forwarder.connect("app-7d9c-x2k", 3000)
    """

    _entity_name = "port_forward"

    def __init__(
        self,
        client: KubernetesClient,
        namespace: str,
        *,
        address: str = DEFAULT_ADDRESS,
    ) -> None:
        super().__init__(client, namespace)
        self._address = address
        self._lock = threading.Lock()
        self._sessions: dict[str, _PodSession] = {}
        self._closed = False

    @property
    def closed(self) -> bool:
        """Whether the forwarder has been closed."""
        return self._closed

    def connect(self, pod_name: str, *target_ports: int) -> list[int]:
        """Open tunnels to ``target_ports`` of a pod.

        Tunnels are added to the pod's existing session, if any.

        Returns:
            The local ports, in the order of ``target_ports``.

        Raises:
            AppLifecycleError: If the forwarder is closed.
            KubernetesNotFoundError: If the pod does not exist.
        """
        if self._closed:
            raise AppLifecycleError("port forwarder is closed", namespace=self._namespace)
        if not target_ports:
            return []

        try:
            self._client.core_v1.read_namespaced_pod(name=pod_name, namespace=self._namespace)
        except Exception as e:
            self._handle_api_error(e, "Pod", pod_name)

        with self._lock:
            session = self._sessions.setdefault(pod_name, _PodSession(pod_name))
            local_ports = [self._listen(session, port) for port in target_ports]

        self._log.info("port_forward_established", pod=pod_name, ports=local_ports)
        return local_ports

    def _listen(self, session: _PodSession, remote_port: int) -> int:
        server = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        server.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        server.bind((self._address, 0))
        server.listen(5)
        server.settimeout(POLL_SECONDS)

        local_port: int = server.getsockname()[1]
        session.servers.append(server)
        session.tunnels.append(Tunnel(session.pod_name, local_port, remote_port))

        threading.Thread(
            target=self._accept_connections,
            args=(server, session, remote_port),
            name=f"port-forward-{session.pod_name}-{local_port}",
            daemon=True,
        ).start()
        return local_port

    def _accept_connections(
        self, server: socket.socket, session: _PodSession, remote_port: int
    ) -> None:
        while not session.stop.is_set():
            try:
                client_sock, _ = server.accept()
            except TimeoutError:
                continue
            except OSError:
                break

            threading.Thread(
                target=self._bridge_connection,
                args=(client_sock, session, remote_port),
                daemon=True,
            ).start()

    def _open_stream(self, pod_name: str, remote_port: int) -> Any:
        import kubernetes.stream

        return kubernetes.stream.portforward(
            self._client.core_v1.connect_get_namespaced_pod_portforward,
            name=pod_name,
            namespace=self._namespace,
            ports=str(remote_port),
        )

    def _bridge_connection(
        self, client_sock: socket.socket, session: _PodSession, remote_port: int
    ) -> None:
        pod_sock: socket.socket | None = None
        try:
            client_sock.settimeout(None)
            pod_sock = self._open_stream(session.pod_name, remote_port).socket(remote_port)
            pod_sock.setblocking(True)
            _pump(client_sock, pod_sock, session.stop)
        except Exception as e:
            self._log.warning(
                "port_forward_connection_failed",
                pod=session.pod_name,
                remote_port=remote_port,
                error=str(e),
            )
        finally:
            for sock in (client_sock, pod_sock):
                if sock is not None:
                    with contextlib.suppress(OSError):
                        sock.close()

    def tunnels(self) -> list[Tunnel]:
        """Return the live tunnels of every pod."""
        with self._lock:
            return [t for session in self._sessions.values() for t in session.tunnels]

    def disconnect(self, pod_name: str) -> None:
        """Close every tunnel of one pod, leaving other pods untouched."""
        with self._lock:
            session = self._sessions.pop(pod_name, None)
        if session is not None:
            session.close()
            self._log.info("port_forward_closed", pod=pod_name)

    def close(self) -> None:
        """Close all tunnels. The forwarder cannot be used afterwards."""
        with self._lock:
            sessions = list(self._sessions.values())
            self._sessions.clear()
            self._closed = True
        for session in sessions:
            session.close()
        self._log.debug("port_forwarder_closed", pods=len(sessions))

    def __enter__(self) -> PodPortForwarder:
        return self

    def __exit__(self, *args: Any) -> None:
        self.close()


def _pump(client_sock: socket.socket, pod_sock: socket.socket, stop: threading.Event) -> None:
    """Copy bytes between two sockets until one side closes or ``stop`` is set."""
    peers = {client_sock: pod_sock, pod_sock: client_sock}
    while not stop.is_set():
        readable, _, _ = select.select(list(peers), [], [], POLL_SECONDS)
        for sock in readable:
            data = sock.recv(BUFFER_SIZE)
            if not data:
                return
            peers[sock].sendall(data)
