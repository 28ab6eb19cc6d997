"""Test app lifecycle and diagnostics commands."""

from __future__ import annotations

from pathlib import Path

import typer
from rich.table import Table

from kube_testapps.cli.commands.common import (
    build_client,
    console,
    handle_errors,
    load_app_description,
    state_from,
)
from kube_testapps.services.kubernetes.app_manager import AppManager
from kube_testapps.services.kubernetes.diagnostics import DiagnosticsCollector

DEFAULT_NAMESPACE = "e2e-tests"

AppFileArgument = typer.Argument(
    ...,
    exists=True,
    dir_okay=False,
    help="YAML file describing the test app.",
)
NamespaceOption = typer.Option(
    DEFAULT_NAMESPACE,
    "--namespace",
    "-n",
    help="Namespace holding the test app.",
)


def _manager(ctx: typer.Context, app_file: Path, namespace: str) -> AppManager:
    config = state_from(ctx).load_config()
    app = load_app_description(app_file)
    return AppManager(build_client(config), namespace, app, config)


def up(
    ctx: typer.Context,
    app_file: Path = AppFileArgument,
    namespace: str = NamespaceOption,
) -> None:
    """Install a test app and wait until it is ready."""
    with handle_errors():
        manager = _manager(ctx, app_file, namespace)
        console.print(f"Installing [cyan]{manager.name}[/cyan] into [cyan]{namespace}[/cyan]...")
        manager.init()
        pods = manager.get_host_details()

    table = Table(title=f"{manager.name} ({manager.state})")
    table.add_column("Pod", style="cyan")
    table.add_column("IP")
    for pod in pods:
        table.add_row(pod.name, pod.ip or "-")
    console.print(table)


def down(
    ctx: typer.Context,
    app_file: Path = AppFileArgument,
    namespace: str = NamespaceOption,
    wait: bool = typer.Option(True, "--wait/--no-wait", help="Wait until resources are gone."),
) -> None:
    """Delete the deployment and service of a test app."""
    with handle_errors():
        manager = _manager(ctx, app_file, namespace)
        manager.dispose(wait=wait)
    console.print(f"[green]Removed[/green] {manager.name}")


def hosts(
    ctx: typer.Context,
    app_file: Path = AppFileArgument,
    namespace: str = NamespaceOption,
) -> None:
    """List the pods running a test app."""
    with handle_errors():
        pods = _manager(ctx, app_file, namespace).get_host_details()

    table = Table(title="Pods")
    table.add_column("Pod", style="cyan")
    table.add_column("IP")
    table.add_column("Containers", style="dim")
    table.add_column("Restarts", justify="right")
    for pod in pods:
        table.add_row(pod.name, pod.ip or "-", ", ".join(pod.containers), str(pod.restarts))
    console.print(table)


def restarts(
    ctx: typer.Context,
    app_file: Path = AppFileArgument,
    namespace: str = NamespaceOption,
) -> None:
    """Print the total container restarts of a test app."""
    with handle_errors():
        total = _manager(ctx, app_file, namespace).get_total_restarts()
    console.print(str(total))


def usage(
    ctx: typer.Context,
    app_file: Path = AppFileArgument,
    namespace: str = NamespaceOption,
    sidecar: bool = typer.Option(False, "--sidecar", help="Measure the sidecar containers."),
) -> None:
    """Print peak CPU and memory usage of a test app."""
    with handle_errors():
        result = _manager(ctx, app_file, namespace).get_cpu_and_memory(sidecar=sidecar)
    console.print(f"cpu: {result.cpu_millicores}m  memory: {result.memory_mb:.2f}MB")


def logs(
    ctx: typer.Context,
    app_file: Path = AppFileArgument,
    namespace: str = NamespaceOption,
    output: Path | None = typer.Option(
        None, "--output", "-o", file_okay=False, help="Directory for log files."
    ),
) -> None:
    """Save the logs of every container of a test app."""
    with handle_errors():
        config = state_from(ctx).load_config()
        app = load_app_description(app_file)
        log_dir = output or Path(config.container_log_path)
        log_dir.mkdir(parents=True, exist_ok=True)
        saved = DiagnosticsCollector(build_client(config), namespace).save_container_logs(
            app, log_dir
        )
    for path in saved:
        console.print(f"Saved {path}")


def url(
    ctx: typer.Context,
    app_file: Path = AppFileArgument,
    namespace: str = NamespaceOption,
) -> None:
    """Wait for the external endpoint of a test app and print it."""
    with handle_errors():
        address = _manager(ctx, app_file, namespace).acquire_external_url()
    console.print(address)


def scale(
    ctx: typer.Context,
    replicas: int = typer.Argument(..., help="Desired replica count."),
    app_file: Path = AppFileArgument,
    namespace: str = NamespaceOption,
) -> None:
    """Scale the deployment of a test app."""
    with handle_errors():
        manager = _manager(ctx, app_file, namespace)
        manager.scale_deployment_replica(replicas)
    console.print(f"Scaled {manager.name} to {replicas}")


def register_app_commands(app: typer.Typer) -> None:
    """Register the test app commands on the root app."""
    for command in (up, down, hosts, restarts, usage, logs, url, scale):
        app.command()(command)
