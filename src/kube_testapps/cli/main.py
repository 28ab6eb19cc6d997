"""Main CLI entry point using Typer."""

from __future__ import annotations

from pathlib import Path

import typer
from rich.console import Console

from kube_testapps import __version__
from kube_testapps.cli.commands import apps, status
from kube_testapps.cli.commands.common import CliState
from kube_testapps.logging.config import configure_logging

app = typer.Typer(
    name="testapps",
    help="Deploy, observe and tear down end-to-end test apps on Kubernetes.",
    add_completion=True,
)

console = Console()


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        console.print(f"testapps version {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    ctx: typer.Context,
    version: bool | None = typer.Option(
        None,
        "--version",
        "-V",
        callback=version_callback,
        is_eager=True,
        help="Show version and exit.",
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable verbose output."),
    debug: bool = typer.Option(False, "--debug", help="Enable debug mode."),
    json_logs: bool = typer.Option(False, "--json-logs", help="Emit logs as JSON."),
    config: Path | None = typer.Option(
        None,
        "--config",
        "-c",
        exists=True,
        dir_okay=False,
        help="YAML run configuration.",
    ),
) -> None:
    """testapps - manage end-to-end test apps on Kubernetes."""
    configure_logging(verbose=verbose, debug=debug, json_output=json_logs)
    ctx.obj = CliState(config_path=config)


app.command()(status.status)
apps.register_app_commands(app)


if __name__ == "__main__":
    app()
