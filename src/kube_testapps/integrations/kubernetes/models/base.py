"""Helpers for reading kubernetes SDK objects."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict


class K8sEntityBase(BaseModel):
    """Base class for models built from kubernetes SDK objects."""

    model_config = ConfigDict(
        extra="ignore",
        populate_by_name=True,
        str_strip_whitespace=True,
    )


def _safe_get(obj: Any, *attrs: str, default: Any = None) -> Any:
    """Safely traverse nested attributes on kubernetes SDK objects."""
    current = obj
    for attr in attrs:
        if current is None:
            return default
        current = getattr(current, attr, None)
    return current if current is not None else default
