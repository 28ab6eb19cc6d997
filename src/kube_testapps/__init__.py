"""kube_testapps - lifecycle management of end-to-end test apps on Kubernetes."""

from kube_testapps.__version__ import __version__

__all__ = ["__version__"]
