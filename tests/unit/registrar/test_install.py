"""Unit tests for APIService installation."""

import base64
from collections.abc import Callable
from pathlib import Path

import httpx
import orjson
import pytest
from cryptography import x509

from openapi_extractor.kube import KubeClient, RestConfig
from openapi_extractor.registrar import (
    APISERVICES_PATH,
    SERVICE_NAME,
    SERVICE_NAMESPACE,
    APIServiceDescriptor,
    GroupVersion,
    Registration,
    ServiceRegistrar,
    ServingParameters,
    apiservice_manifest,
    is_available,
    service_manifest,
)

WriteAPIService = Callable[..., Path]

SERVING = ServingParameters(host="127.0.0.1", port=8443, cert_dir=Path("/certs"))


def _descriptor(group: str = "wardle.example.com", version: str = "v1alpha1") -> APIServiceDescriptor:
    return APIServiceDescriptor(
        name=f"{version}.{group}",
        group=group,
        version=version,
        source_path=Path("apiservices/wardle.yaml"),
        manifest={
            "apiVersion": "apiregistration.k8s.io/v1",
            "kind": "APIService",
            "metadata": {"name": f"{version}.{group}", "resourceVersion": "12"},
            "spec": {
                "group": group,
                "version": version,
                "insecureSkipTLSVerify": True,
                "groupPriorityMinimum": 2000,
            },
            "status": {"conditions": []},
        },
    )


class TestServiceManifest:
    def test_points_external_name_at_localhost(self) -> None:
        manifest = service_manifest(SERVING)

        assert manifest["metadata"] == {"name": SERVICE_NAME, "namespace": SERVICE_NAMESPACE}
        assert manifest["spec"]["type"] == "ExternalName"
        assert manifest["spec"]["externalName"] == "localhost"
        assert manifest["spec"]["ports"] == [{"port": 8443, "protocol": "TCP"}]

    def test_uses_hostname_as_is(self) -> None:
        serving = ServingParameters(host="apiserver.local", port=9443, cert_dir=Path())

        assert service_manifest(serving)["spec"]["externalName"] == "apiserver.local"


class TestAPIServiceManifest:
    def test_targets_local_service_with_ca_bundle(self) -> None:
        manifest = apiservice_manifest(_descriptor(), SERVING, b"CA PEM")

        spec = manifest["spec"]
        assert spec["service"] == {
            "namespace": SERVICE_NAMESPACE,
            "name": SERVICE_NAME,
            "port": 8443,
        }
        assert base64.b64decode(spec["caBundle"]) == b"CA PEM"
        assert "insecureSkipTLSVerify" not in spec
        assert spec["groupPriorityMinimum"] == 2000
        assert spec["versionPriority"] == 15

    def test_drops_server_populated_fields(self) -> None:
        manifest = apiservice_manifest(_descriptor(), SERVING, b"CA")

        assert "status" not in manifest
        assert "resourceVersion" not in manifest["metadata"]

    def test_does_not_mutate_declared_manifest(self) -> None:
        descriptor = _descriptor()

        _ = apiservice_manifest(descriptor, SERVING, b"CA")

        assert descriptor.manifest["spec"]["insecureSkipTLSVerify"] is True
        assert "service" not in descriptor.manifest["spec"]


class TestIsAvailable:
    def test_available_condition_true(self) -> None:
        apiservice = {"status": {"conditions": [{"type": "Available", "status": "True"}]}}

        assert is_available(apiservice)

    @pytest.mark.parametrize(
        "apiservice",
        [
            {},
            {"status": {}},
            {"status": {"conditions": [{"type": "Available", "status": "False"}]}},
            {"status": {"conditions": [{"type": "Other", "status": "True"}]}},
        ],
    )
    def test_not_available(self, apiservice: dict[str, object]) -> None:
        assert not is_available(apiservice)


class TestServiceRegistrar:
    @pytest.mark.anyio
    async def test_installs_service_then_apiservices(
        self, tmp_path: Path, write_apiservice: WriteAPIService
    ) -> None:
        manifests = tmp_path / "apiservices"
        _ = write_apiservice(
            manifests / "wardle.yaml",
            ("wardle.example.com", "v1alpha1"),
            ("wardle.example.com", "v1beta1"),
        )
        requests: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            requests.append(request)
            return httpx.Response(201, content=request.content)

        registrar = ServiceRegistrar([manifests], work_dir=tmp_path / "work")
        client = KubeClient.from_config(
            RestConfig(host="https://cp.test"), transport=httpx.MockTransport(handler)
        )
        async with client:
            registration = await registrar.register(client)

        assert [r.url.path for r in requests] == [
            f"/api/v1/namespaces/{SERVICE_NAMESPACE}/services",
            APISERVICES_PATH,
            APISERVICES_PATH,
        ]
        assert registration.group_versions == [
            GroupVersion("wardle.example.com", "v1alpha1"),
            GroupVersion("wardle.example.com", "v1beta1"),
        ]

        serving = registration.serving
        assert serving.host == "127.0.0.1"
        assert orjson.loads(requests[0].content)["spec"]["ports"][0]["port"] == serving.port

        cert = x509.load_pem_x509_certificate((serving.cert_dir / "apiserver.crt").read_bytes())
        ca_bundle = base64.b64decode(orjson.loads(requests[1].content)["spec"]["caBundle"])
        cert.verify_directly_issued_by(x509.load_pem_x509_certificate(ca_bundle))
        assert (serving.cert_dir / "apiserver.key").exists()

    @pytest.mark.anyio
    async def test_availability_probe_reads_apiservice_status(self) -> None:
        statuses = {
            "v1.ready.example.com": "True",
            "v1.pending.example.com": "False",
        }

        def handler(request: httpx.Request) -> httpx.Response:
            name = request.url.path.rsplit("/", 1)[-1]
            if name not in statuses:
                return httpx.Response(404)
            condition = {"type": "Available", "status": statuses[name]}
            return httpx.Response(200, json={"status": {"conditions": [condition]}})

        descriptors = tuple(
            _descriptor(group, "v1")
            for group in ("ready.example.com", "pending.example.com", "missing.example.com")
        )
        registration = Registration(descriptors=descriptors, serving=SERVING)
        registrar = ServiceRegistrar([], work_dir=Path("/unused"))
        client = KubeClient.from_config(
            RestConfig(host="https://cp.test"), transport=httpx.MockTransport(handler)
        )

        async with client:
            probe = registrar.availability_probe(client, registration)
            assert await probe(GroupVersion("ready.example.com", "v1"))
            assert not await probe(GroupVersion("pending.example.com", "v1"))
            assert not await probe(GroupVersion("missing.example.com", "v1"))


class TestRegistration:
    def test_descriptor_for_unknown_group_version(self) -> None:
        registration = Registration(descriptors=(_descriptor(),), serving=SERVING)

        with pytest.raises(KeyError):
            _ = registration.descriptor_for(GroupVersion("other.example.com", "v1"))
