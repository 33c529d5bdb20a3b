"""Control plane interface consumed by the orchestrator."""

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from openapi_extractor.kube import RestConfig


@runtime_checkable
class ControlPlane(Protocol):
    """An ephemeral data store plus primary API server.

    start() returns once the API server is ready to serve requests. stop()
    must be safe to call after a failed or partial start.
    """

    @property
    def name(self) -> str:
        """Return the resource name used in logs and teardown reports."""
        ...

    @property
    def etcd_servers(self) -> list[str]:
        """Return the client URLs of the data store."""
        ...

    @property
    def rest_config(self) -> "RestConfig":
        """Return connection parameters for the primary API server."""
        ...

    async def start(self) -> None:
        """Start the data store and the API server.

        Raises:
            StartupError: If either process fails to start.
        """
        ...

    async def stop(self) -> None:
        """Stop the API server, then the data store."""
        ...
