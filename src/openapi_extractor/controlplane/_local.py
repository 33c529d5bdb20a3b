"""Local etcd + kube-apiserver control plane.

Binaries are taken from the configured assets directory, the
KUBEBUILDER_ASSETS environment variable, or PATH, in that order. All TLS
material, the admin token and etcd data live under the run's work
directory.
"""

import os
import secrets
import shutil
from pathlib import Path
from typing import TYPE_CHECKING, final

import anyio.abc
import httpx

from openapi_extractor.exceptions import ConfigurationError, Phase, ProcessStopError
from openapi_extractor.kube import RestConfig
from openapi_extractor.supervisor import ProcessConfig, ProcessManager, ReadyCheck
from openapi_extractor.utils import (
    CertificateAuthority,
    find_open_port,
    generate_private_key,
    private_key_pem,
    public_key_pem,
)

if TYPE_CHECKING:
    from structlog.typing import FilteringBoundLogger

    from openapi_extractor.config import ControlPlaneConfig
    from openapi_extractor.supervisor import OutputSink

ASSETS_ENV_VAR = "KUBEBUILDER_ASSETS"
LOCALHOST = "127.0.0.1"
ADMIN_USER = "openapi-extractor-admin"
FRONT_PROXY_CLIENT = "front-proxy-client"
SERVICE_CLUSTER_IP_RANGE = "10.0.0.0/24"


def find_binary(name: str, assets_dir: str = "") -> Path:
    """Locate a control plane binary.

    Args:
        name: Binary name (``etcd`` or ``kube-apiserver``).
        assets_dir: Explicit assets directory; takes precedence.

    Returns:
        Path to the executable.

    Raises:
        ConfigurationError: If the binary cannot be found.
    """
    for directory in (assets_dir, os.environ.get(ASSETS_ENV_VAR, "")):
        if directory:
            candidate = Path(directory) / name
            if candidate.is_file() and os.access(candidate, os.X_OK):
                return candidate

    found = shutil.which(name)
    if found is not None:
        return Path(found)

    msg = (
        f"Unable to find control plane binary '{name}'; "
        f"set {ASSETS_ENV_VAR} or control_plane.assets_dir"
    )
    raise ConfigurationError(msg, key="control_plane.assets_dir", phase=Phase.CONTROL_PLANE)


def http_ready_check(
    url: str,
    *,
    verify: object = True,
    token: str = "",
) -> ReadyCheck:
    """Build a ready check that passes once ``url`` answers 200."""
    headers = {"Authorization": f"Bearer {token}"} if token else {}

    async def check() -> bool:
        try:
            async with httpx.AsyncClient(verify=verify, timeout=2.0) as client:  # pyright: ignore[reportArgumentType]
                response = await client.get(url, headers=headers)
        except httpx.HTTPError:
            return False
        return response.status_code == httpx.codes.OK

    return check


@final
class LocalControlPlane:
    """Runs etcd and kube-apiserver as supervised subprocesses."""

    __slots__ = (
        "_apiserver",
        "_config",
        "_etcd",
        "_etcd_url",
        "_logger",
        "_output_sink",
        "_rest_config",
        "_task_group",
        "_work_dir",
    )

    def __init__(
        self,
        config: "ControlPlaneConfig",
        *,
        work_dir: Path,
        logger: "FilteringBoundLogger | None" = None,
        output_sink: "OutputSink | None" = None,
        task_group: anyio.abc.TaskGroup | None = None,
    ) -> None:
        self._config = config
        self._work_dir = work_dir / "control-plane"
        self._logger = logger
        self._output_sink = output_sink
        self._task_group = task_group
        self._etcd: ProcessManager | None = None
        self._apiserver: ProcessManager | None = None
        self._etcd_url = ""
        self._rest_config: RestConfig | None = None

    @property
    def name(self) -> str:
        return "control-plane"

    @property
    def etcd_servers(self) -> list[str]:
        return [self._etcd_url] if self._etcd_url else []

    @property
    def rest_config(self) -> RestConfig:
        if self._rest_config is None:
            msg = "control plane has not been started"
            raise RuntimeError(msg)
        return self._rest_config

    def _process(
        self, name: str, command: list[str], port: int, ready_check: ReadyCheck
    ) -> ProcessManager:
        return ProcessManager(
            ProcessConfig(
                name=name,
                command=tuple(command),
                host=LOCALHOST,
                port=port,
                startup_timeout=self._config.startup_timeout,
                shutdown_timeout=self._config.shutdown_timeout,
                attach_output=self._config.attach_output,
            ),
            phase=Phase.CONTROL_PLANE,
            logger=self._logger,
            output_sink=self._output_sink,
            task_group=self._task_group,
            ready_check=ready_check,
        )

    async def start(self) -> None:
        etcd_binary = find_binary("etcd", self._config.assets_dir)
        apiserver_binary = find_binary("kube-apiserver", self._config.assets_dir)

        self._work_dir.mkdir(parents=True, exist_ok=True)
        etcd_port = find_open_port(LOCALHOST)
        peer_port = find_open_port(LOCALHOST)
        self._etcd_url = f"http://{LOCALHOST}:{etcd_port}"

        self._etcd = self._process(
            "etcd",
            [
                str(etcd_binary),
                "--name=openapi-extractor",
                f"--data-dir={self._work_dir / 'etcd'}",
                f"--listen-client-urls={self._etcd_url}",
                f"--advertise-client-urls={self._etcd_url}",
                f"--listen-peer-urls=http://{LOCALHOST}:{peer_port}",
                f"--initial-advertise-peer-urls=http://{LOCALHOST}:{peer_port}",
                f"--initial-cluster=openapi-extractor=http://{LOCALHOST}:{peer_port}",
                "--unsafe-no-fsync=true",
            ],
            etcd_port,
            http_ready_check(f"{self._etcd_url}/health"),
        )
        await self._etcd.start()

        secure_port = find_open_port(LOCALHOST)
        token = secrets.token_urlsafe(32)
        args = self._prepare_apiserver_files(secure_port, token)
        ca_file = self._work_dir / "ca.crt"
        self._rest_config = RestConfig(
            host=f"https://{LOCALHOST}:{secure_port}",
            bearer_token=token,
            ca_file=ca_file,
        )

        self._apiserver = self._process(
            "kube-apiserver",
            [str(apiserver_binary), *args],
            secure_port,
            http_ready_check(
                f"{self._rest_config.host}/readyz",
                verify=self._rest_config.ssl_context(),
                token=token,
            ),
        )
        await self._apiserver.start()

    def _prepare_apiserver_files(self, secure_port: int, token: str) -> list[str]:
        """Write certificates, keys and the token file; return apiserver flags."""
        certs = self._work_dir
        ca = CertificateAuthority.generate("openapi-extractor-ca")
        ca_file = ca.write(certs, "ca")
        serving_cert, serving_key = ca.issue(
            "kube-apiserver", hosts=[LOCALHOST, "localhost"]
        ).write(certs, "apiserver")

        front_proxy_ca = CertificateAuthority.generate("openapi-extractor-front-proxy-ca")
        front_proxy_ca_file = front_proxy_ca.write(certs, "front-proxy-ca")
        proxy_cert, proxy_key = front_proxy_ca.issue(
            FRONT_PROXY_CLIENT, client=True
        ).write(certs, "front-proxy-client")

        sa_key = generate_private_key()
        sa_key_file = certs / "sa.key"
        sa_pub_file = certs / "sa.pub"
        _ = sa_key_file.write_bytes(private_key_pem(sa_key))
        sa_key_file.chmod(0o600)
        _ = sa_pub_file.write_bytes(public_key_pem(sa_key))

        token_file = certs / "token.csv"
        _ = token_file.write_text(f'{token},{ADMIN_USER},{ADMIN_USER},"system:masters"\n')
        token_file.chmod(0o600)

        return [
            f"--etcd-servers={self._etcd_url}",
            f"--bind-address={LOCALHOST}",
            f"--secure-port={secure_port}",
            f"--cert-dir={certs}",
            f"--tls-cert-file={serving_cert}",
            f"--tls-private-key-file={serving_key}",
            f"--client-ca-file={ca_file}",
            f"--token-auth-file={token_file}",
            "--authorization-mode=AlwaysAllow",
            f"--service-account-issuer=https://{LOCALHOST}:{secure_port}",
            f"--service-account-key-file={sa_pub_file}",
            f"--service-account-signing-key-file={sa_key_file}",
            f"--service-cluster-ip-range={SERVICE_CLUSTER_IP_RANGE}",
            "--allow-privileged=true",
            "--disable-admission-plugins=ServiceAccount",
            "--enable-priority-and-fairness=false",
            f"--requestheader-client-ca-file={front_proxy_ca_file}",
            f"--requestheader-allowed-names={FRONT_PROXY_CLIENT}",
            "--requestheader-username-headers=X-Remote-User",
            "--requestheader-group-headers=X-Remote-Group",
            "--requestheader-extra-headers-prefix=X-Remote-Extra-",
            f"--proxy-client-cert-file={proxy_cert}",
            f"--proxy-client-key-file={proxy_key}",
            "--enable-aggregator-routing=true",
        ]

    async def stop(self) -> None:
        """Stop kube-apiserver, then etcd.

        Both are attempted even if the first stop fails; the first failure
        is raised afterwards.
        """
        errors: list[ProcessStopError] = []
        for process in (self._apiserver, self._etcd):
            if process is None:
                continue
            try:
                await process.stop()
            except ProcessStopError as e:
                errors.append(e)
        if errors:
            raise errors[0]
