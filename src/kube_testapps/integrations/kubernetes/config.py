"""Configuration models for test app management.

Everything that used to be looked up from the process environment at call
time (node address override, container log directory, polling tuning) is
collected here and handed to the managers at construction.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, ConfigDict, Field, field_validator

# Polling defaults: tolerate scheduler latency without hanging forever.
POLL_INTERVAL = 1.0
POLL_TIMEOUT = 10 * 60.0

CONTAINER_LOG_DEFAULT_PATH = "./container_logs"

ENV_PREFIX = "TESTAPPS_"


class ClusterConfig(BaseModel):
    """Which cluster to talk to."""

    model_config = ConfigDict(extra="forbid")

    context: str | None = None
    kubeconfig: str | None = None

    @field_validator("kubeconfig")
    @classmethod
    def validate_kubeconfig(cls, v: str | None) -> str | None:
        """Expand ~ in kubeconfig path."""
        if v is None:
            return None
        return str(Path(v).expanduser())


class PollingConfig(BaseModel):
    """Interval and deadline used by every state wait."""

    model_config = ConfigDict(extra="forbid")

    interval: float = POLL_INTERVAL
    timeout: float = POLL_TIMEOUT

    @field_validator("interval", "timeout")
    @classmethod
    def validate_positive(cls, v: float) -> float:
        """Validate durations are positive."""
        if v <= 0:
            raise ValueError("polling durations must be positive")
        return v


class AppManagerConfig(BaseModel):
    """Complete configuration for a test run."""

    model_config = ConfigDict(extra="forbid")

    cluster: ClusterConfig = Field(default_factory=ClusterConfig)
    polling: PollingConfig = Field(default_factory=PollingConfig)
    node_ip_override: str | None = Field(
        default=None,
        description="Node address used instead of a load balancer (e.g. `minikube ip`)",
    )
    container_log_path: str = Field(
        default=CONTAINER_LOG_DEFAULT_PATH,
        description="Directory receiving container logs on teardown",
    )

    @field_validator("node_ip_override")
    @classmethod
    def validate_node_ip(cls, v: str | None) -> str | None:
        """Treat an empty override as unset."""
        return v or None

    @classmethod
    def from_env(cls, base_config: dict[str, Any] | None = None) -> AppManagerConfig:
        """Create configuration with environment variable overrides.

        Environment variables take precedence over base_config values.

        Supported environment variables:
            TESTAPPS_MINIKUBE_IP: Node address for clusters without a load balancer
            TESTAPPS_CONTAINER_LOG_PATH: Directory for captured container logs
            TESTAPPS_POLL_INTERVAL: Seconds between state polls
            TESTAPPS_POLL_TIMEOUT: Seconds before a state wait gives up
            TESTAPPS_KUBECONFIG: Kubeconfig path
            TESTAPPS_K8S_CONTEXT: Kubeconfig context
        """
        config_dict = base_config.copy() if base_config else {}
        cluster = dict(config_dict.get("cluster") or {})
        polling = dict(config_dict.get("polling") or {})

        if node_ip := os.environ.get(f"{ENV_PREFIX}MINIKUBE_IP"):
            config_dict["node_ip_override"] = node_ip

        if log_path := os.environ.get(f"{ENV_PREFIX}CONTAINER_LOG_PATH"):
            config_dict["container_log_path"] = log_path

        if interval := os.environ.get(f"{ENV_PREFIX}POLL_INTERVAL"):
            polling["interval"] = float(interval)

        if timeout := os.environ.get(f"{ENV_PREFIX}POLL_TIMEOUT"):
            polling["timeout"] = float(timeout)

        if kubeconfig := os.environ.get(f"{ENV_PREFIX}KUBECONFIG"):
            cluster["kubeconfig"] = kubeconfig

        if context := os.environ.get(f"{ENV_PREFIX}K8S_CONTEXT"):
            cluster["context"] = context

        config_dict["cluster"] = cluster
        config_dict["polling"] = polling
        return cls.model_validate(config_dict)

    @classmethod
    def from_file(cls, path: Path) -> AppManagerConfig:
        """Load a YAML configuration file, then apply environment overrides."""
        data = yaml.safe_load(path.read_text()) or {}
        if not isinstance(data, dict):
            raise ValueError(f"{path} must contain a mapping")
        return cls.from_env(data)
