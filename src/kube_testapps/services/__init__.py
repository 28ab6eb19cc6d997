"""Service layer for kube_testapps."""
