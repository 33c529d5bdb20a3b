"""Registrar interface consumed by the orchestrator."""

from collections.abc import Awaitable, Callable
from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from openapi_extractor.kube import KubeClient

    from ._models import GroupVersion, Registration


@runtime_checkable
class Registrar(Protocol):
    """Declares the aggregated server's APIServices to the control plane."""

    async def register(self, client: "KubeClient") -> "Registration":
        """Read the declared APIServices and install them.

        Raises:
            ConfigurationError: If the declarations are missing, empty or
                conflicting.
            KubeAPIError: If the control plane rejects an object.
        """
        ...

    def availability_probe(
        self, client: "KubeClient", registration: "Registration"
    ) -> "Callable[[GroupVersion], Awaitable[bool]]":
        """Return a probe reporting whether an APIService is Available."""
        ...
