"""Command line interface for kube_testapps."""
