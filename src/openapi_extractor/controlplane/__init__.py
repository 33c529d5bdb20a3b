"""Ephemeral control plane (etcd + kube-apiserver)."""

from ._local import ASSETS_ENV_VAR, LocalControlPlane, find_binary, http_ready_check
from ._protocol import ControlPlane

__all__ = [
    "ASSETS_ENV_VAR",
    "ControlPlane",
    "LocalControlPlane",
    "find_binary",
    "http_ready_check",
]
