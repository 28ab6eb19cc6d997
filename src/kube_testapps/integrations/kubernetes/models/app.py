"""Test application description."""

from __future__ import annotations

import re

from pydantic import BaseModel, ConfigDict, Field, field_validator

# Upper bound for replicas of a test app deployment.
MAX_REPLICAS = 10

DEFAULT_APP_PORT = 3000

_DNS_LABEL_RE = re.compile(r"^[a-z0-9]([-a-z0-9]*[a-z0-9])?$")


class AppDescription(BaseModel):
    """Describes one logical test application.

    Instances are frozen. The replica count is the only value that changes
    after deployment, and the owning AppManager swaps in an updated copy
    when a scale request succeeds.
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    app_name: str = Field(description="Name shared by the deployment, service and pod label")
    image_name: str = Field(description="Container image, optionally with a tag")
    registry_name: str | None = Field(default=None, description="Image registry prefix")
    replicas: int = Field(default=1, description="Desired replica count")
    sidecar_enabled: bool = Field(default=True, description="Pods must carry the sidecar")
    ingress_enabled: bool = Field(default=False, description="Expose an external endpoint")
    app_port: int = Field(default=DEFAULT_APP_PORT, description="Container port of the app")
    app_env: dict[str, str] = Field(default_factory=dict, description="App container env")
    image_pull_policy: str = Field(default="IfNotPresent", description="Image pull policy")

    @field_validator("app_name")
    @classmethod
    def validate_app_name(cls, v: str) -> str:
        """Validate the name is usable as a resource name and label value."""
        if len(v) > 63 or not _DNS_LABEL_RE.match(v):
            raise ValueError("app_name must be a lowercase RFC 1123 label")
        return v

    @field_validator("replicas")
    @classmethod
    def validate_replicas(cls, v: int) -> int:
        """Validate replicas is within [0, MAX_REPLICAS]."""
        if v < 0 or v > MAX_REPLICAS:
            raise ValueError(f"replicas must be between 0 and {MAX_REPLICAS}")
        return v

    @field_validator("app_port")
    @classmethod
    def validate_app_port(cls, v: int) -> int:
        """Validate app_port is a TCP port."""
        if not 0 < v < 65536:
            raise ValueError("app_port must be between 1 and 65535")
        return v

    @property
    def image(self) -> str:
        """Fully qualified image reference."""
        if self.registry_name:
            return f"{self.registry_name}/{self.image_name}"
        return self.image_name
