"""Install APIServices into the control plane.

The aggregated server runs on the local host, outside any cluster network.
It is exposed to the aggregator through an ExternalName Service pointing at
the serving host, and every APIService is rewritten to reference that
Service and to trust a freshly generated serving CA.
"""

import base64
import copy
from collections.abc import Awaitable, Callable
from pathlib import Path
from typing import TYPE_CHECKING, Any, final

import httpx

from openapi_extractor.exceptions import KubeAPIError
from openapi_extractor.utils import CertificateAuthority, find_open_port

from ._manifests import read_apiservices
from ._models import APIServiceDescriptor, GroupVersion, Registration, ServingParameters

if TYPE_CHECKING:
    from structlog.typing import FilteringBoundLogger

    from openapi_extractor.kube import KubeClient

APISERVICES_PATH = "/apis/apiregistration.k8s.io/v1/apiservices"
APISERVICE_API_VERSION = "apiregistration.k8s.io/v1"
SERVICE_NAMESPACE = "default"
SERVICE_NAME = "openapi-extractor-apiserver"
SERVING_CERT_NAME = "apiserver"


def service_manifest(serving: ServingParameters) -> dict[str, Any]:  # pyright: ignore[reportExplicitAny]
    """Build the ExternalName Service that routes to the local server."""
    external_name = "localhost" if serving.host in {"127.0.0.1", "::1"} else serving.host
    return {
        "apiVersion": "v1",
        "kind": "Service",
        "metadata": {"name": SERVICE_NAME, "namespace": SERVICE_NAMESPACE},
        "spec": {
            "type": "ExternalName",
            "externalName": external_name,
            "ports": [{"port": serving.port, "protocol": "TCP"}],
        },
    }


def apiservice_manifest(
    descriptor: APIServiceDescriptor,
    serving: ServingParameters,
    ca_bundle: bytes,
) -> dict[str, Any]:  # pyright: ignore[reportExplicitAny]
    """Rewrite a declared APIService to target the local server.

    The declared manifest is copied, never mutated.
    """
    manifest = copy.deepcopy(descriptor.manifest)
    manifest["apiVersion"] = APISERVICE_API_VERSION
    manifest["kind"] = "APIService"
    _ = manifest.pop("status", None)

    metadata = manifest.setdefault("metadata", {})
    metadata["name"] = descriptor.name
    _ = metadata.pop("resourceVersion", None)

    spec = manifest.setdefault("spec", {})
    _ = spec.pop("insecureSkipTLSVerify", None)
    spec["service"] = {
        "namespace": SERVICE_NAMESPACE,
        "name": SERVICE_NAME,
        "port": serving.port,
    }
    spec["caBundle"] = base64.b64encode(ca_bundle).decode("ascii")
    _ = spec.setdefault("groupPriorityMinimum", 1000)
    _ = spec.setdefault("versionPriority", 15)
    return manifest


def is_available(apiservice: dict[str, Any]) -> bool:  # pyright: ignore[reportExplicitAny]
    """Report whether an APIService object carries ``Available=True``."""
    status = apiservice.get("status") or {}
    for condition in status.get("conditions") or []:
        if condition.get("type") == "Available":
            return condition.get("status") == "True"
    return False


@final
class ServiceRegistrar:
    """Reads APIService manifests and installs them for a local server.

    Attributes:
        paths: Manifest files or directories, in registration order.
        host: Address the aggregated server binds to.
    """

    __slots__ = ("_error_if_path_missing", "_logger", "_work_dir", "host", "paths")

    def __init__(
        self,
        paths: list[Path] | tuple[Path, ...],
        *,
        work_dir: Path,
        host: str = "127.0.0.1",
        error_if_path_missing: bool = True,
        logger: "FilteringBoundLogger | None" = None,
    ) -> None:
        self.paths = tuple(paths)
        self.host = host
        self._work_dir = work_dir
        self._error_if_path_missing = error_if_path_missing
        self._logger = logger

    def read(self) -> list[APIServiceDescriptor]:
        """Read the declared APIServices without installing anything."""
        return read_apiservices(
            self.paths, error_if_path_missing=self._error_if_path_missing
        )

    def _prepare_serving(self) -> tuple[ServingParameters, bytes]:
        cert_dir = self._work_dir / "apiserver-certs"
        port = find_open_port(self.host)
        ca = CertificateAuthority.generate("openapi-extractor-apiserver-ca")
        _ = ca.issue(
            SERVING_CERT_NAME,
            hosts=[
                self.host,
                "localhost",
                f"{SERVICE_NAME}.{SERVICE_NAMESPACE}.svc",
            ],
        ).write(cert_dir, SERVING_CERT_NAME)
        return ServingParameters(host=self.host, port=port, cert_dir=cert_dir), ca.cert_pem

    async def register(self, client: "KubeClient") -> Registration:
        descriptors = self.read()
        serving, ca_bundle = self._prepare_serving()

        _ = await client.create(
            f"/api/v1/namespaces/{SERVICE_NAMESPACE}/services",
            service_manifest(serving),
        )
        for descriptor in descriptors:
            _ = await client.create(
                APISERVICES_PATH, apiservice_manifest(descriptor, serving, ca_bundle)
            )
            if self._logger is not None:
                self._logger.info(
                    "apiservice_installed",
                    apiservice=descriptor.name,
                    group_version=str(descriptor.group_version),
                    source=str(descriptor.source_path),
                )

        return Registration(descriptors=tuple(descriptors), serving=serving)

    def availability_probe(
        self, client: "KubeClient", registration: Registration
    ) -> Callable[[GroupVersion], Awaitable[bool]]:
        async def probe(group_version: GroupVersion) -> bool:
            name = registration.descriptor_for(group_version).name
            try:
                apiservice = await client.get_json(f"{APISERVICES_PATH}/{name}")
            except (KubeAPIError, httpx.HTTPError):
                return False
            return is_available(apiservice)

        return probe
