"""Logging configuration for kube_testapps."""

from kube_testapps.logging.config import configure_logging, get_logger

__all__ = ["configure_logging", "get_logger"]
