"""Version information for kube_testapps."""

__version__ = "0.3.0"
