"""Kubeconfig file generation."""

from typing import TYPE_CHECKING

import yaml

if TYPE_CHECKING:
    from pathlib import Path

    from ._client import RestConfig

CONTEXT_NAME = "openapi-extractor"


def build_kubeconfig(config: "RestConfig") -> dict[str, object]:
    """Build a kubeconfig document for a single cluster, user and context."""
    cluster: dict[str, object] = {"server": config.host}
    if config.ca_file is not None:
        cluster["certificate-authority"] = str(config.ca_file)

    user: dict[str, object] = {}
    if config.bearer_token:
        user["token"] = config.bearer_token

    return {
        "apiVersion": "v1",
        "kind": "Config",
        "clusters": [{"name": CONTEXT_NAME, "cluster": cluster}],
        "users": [{"name": CONTEXT_NAME, "user": user}],
        "contexts": [
            {
                "name": CONTEXT_NAME,
                "context": {"cluster": CONTEXT_NAME, "user": CONTEXT_NAME},
            }
        ],
        "current-context": CONTEXT_NAME,
    }


def write_kubeconfig(path: "Path", config: "RestConfig") -> "Path":
    """Write a kubeconfig for ``config`` to ``path`` with mode 0600.

    Returns:
        The path that was written.
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    content = yaml.safe_dump(build_kubeconfig(config), default_flow_style=False)
    _ = path.write_text(content)
    path.chmod(0o600)
    return path
