"""Status command for checking cluster connectivity."""

from __future__ import annotations

import platform

import structlog
import typer
from rich.table import Table

from kube_testapps import __version__
from kube_testapps.cli.commands.common import build_client, console, handle_errors, state_from

logger = structlog.get_logger()


def status(ctx: typer.Context) -> None:
    """Show cluster connectivity and run configuration."""
    logger.info("Checking cluster status")

    with handle_errors():
        config = state_from(ctx).load_config()
        client = build_client(config)

    table = Table(title="Test App Environment")
    table.add_column("Component", style="cyan", no_wrap=True)
    table.add_column("Status", style="green")
    table.add_column("Details", style="dim")

    table.add_row("CLI Version", __version__, "testapps")
    table.add_row("Python", platform.python_version(), platform.python_implementation())
    table.add_row("Context", client.get_current_context(), config.cluster.kubeconfig or "default")

    connected = client.check_connection()
    if connected:
        table.add_row("Cluster", "reachable", client.get_cluster_version())
    else:
        table.add_row("Cluster", "[red]unreachable[/red]", "")

    table.add_row("Node IP override", config.node_ip_override or "-", "")
    table.add_row("Container logs", config.container_log_path, "")
    table.add_row(
        "Polling",
        f"{config.polling.interval:g}s",
        f"timeout {config.polling.timeout:g}s",
    )
    console.print(table)

    if not connected:
        raise typer.Exit(1)
