"""Helpers shared by CLI commands."""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path

import structlog
import typer
import yaml
from pydantic import ValidationError
from rich.console import Console
from rich.markup import escape

from kube_testapps.integrations.kubernetes.client import KubernetesClient
from kube_testapps.integrations.kubernetes.config import AppManagerConfig
from kube_testapps.integrations.kubernetes.exceptions import KubernetesError
from kube_testapps.integrations.kubernetes.models.app import AppDescription

console = Console()
logger = structlog.get_logger()


@dataclass
class CliState:
    """Global options carried on the Typer context."""

    config_path: Path | None = None

    def load_config(self) -> AppManagerConfig:
        """Load the run configuration."""
        if self.config_path is not None:
            return AppManagerConfig.from_file(self.config_path)
        return AppManagerConfig.from_env()


def state_from(ctx: typer.Context) -> CliState:
    """Return the CliState of a command context."""
    obj = ctx.find_root().obj
    return obj if isinstance(obj, CliState) else CliState()


def load_app_description(path: Path) -> AppDescription:
    """Load an app description from a YAML file."""
    data = yaml.safe_load(path.read_text()) or {}
    return AppDescription.model_validate(data)


def build_client(config: AppManagerConfig) -> KubernetesClient:
    """Create the Kubernetes client for a command."""
    return KubernetesClient(config)


@contextmanager
def handle_errors() -> Iterator[None]:
    """Turn known failures into a red message and exit code 1."""
    try:
        yield
    except (KubernetesError, ValidationError, yaml.YAMLError, ValueError, OSError) as e:
        logger.debug("command_failed", error=str(e))
        console.print(f"[red]Error:[/red] {escape(str(e))}")
        raise typer.Exit(1) from e

