"""Shared pytest fixtures for kube_testapps tests."""

from __future__ import annotations

import os
from pathlib import Path

import pytest

from kube_testapps.integrations.kubernetes.config import AppManagerConfig, PollingConfig


@pytest.fixture(autouse=True)
def reset_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    """Reset environment variables for each test."""
    for key in list(os.environ.keys()):
        if key.startswith("TESTAPPS_"):
            monkeypatch.delenv(key, raising=False)


@pytest.fixture
def fast_config(tmp_path: Path) -> AppManagerConfig:
    """Run configuration with short polling and a temporary log directory."""
    return AppManagerConfig(
        polling=PollingConfig(interval=0.01, timeout=0.2),
        container_log_path=str(tmp_path / "container_logs"),
    )
