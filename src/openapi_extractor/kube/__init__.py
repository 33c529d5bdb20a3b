"""Kubernetes API access for the extractor."""

from ._client import KubeClient, RestConfig, create_http_client
from ._kubeconfig import build_kubeconfig, write_kubeconfig

__all__ = [
    "KubeClient",
    "RestConfig",
    "build_kubeconfig",
    "create_http_client",
    "write_kubeconfig",
]
