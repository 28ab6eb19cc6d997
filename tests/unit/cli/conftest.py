"""Shared fixtures for CLI tests."""

from __future__ import annotations

from collections.abc import Iterator
from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest
from typer.testing import CliRunner


@pytest.fixture
def cli_runner() -> CliRunner:
    return CliRunner()


@pytest.fixture(autouse=True)
def mock_configure_logging() -> Iterator[MagicMock]:
    """Keep CLI invocations from installing root log handlers."""
    with patch("kube_testapps.cli.main.configure_logging") as mock:
        yield mock


@pytest.fixture
def app_file(tmp_path: Path) -> Path:
    """App description file for the `hello` app."""
    path = tmp_path / "hello.yaml"
    path.write_text(
        "app_name: hello\n"
        "image_name: e2e-hello:latest\n"
        "replicas: 3\n"
        "ingress_enabled: true\n"
    )
    return path
