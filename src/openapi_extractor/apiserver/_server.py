"""Aggregated API server lifecycle."""

from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, final

import anyio.abc

from openapi_extractor.exceptions import ConfigurationError, Phase
from openapi_extractor.supervisor import ProcessConfig, ProcessManager

from ._build import GoBuilder

if TYPE_CHECKING:
    from structlog.typing import FilteringBoundLogger

    from openapi_extractor.registrar import ServingParameters
    from openapi_extractor.supervisor import OutputSink

BINARY_NAME = "apiserver"


@dataclass(frozen=True, slots=True)
class AggregatedServerOptions:
    """How to obtain, configure and run the aggregated API server.

    Attributes:
        serving: Host, port and certificate directory to serve on.
        etcd_servers: Data store client URLs.
        kubeconfig: Kubeconfig for the control plane, used for delegated
            authentication and authorization.
        work_dir: Directory for the built binary.
        command: Prebuilt command line. Mutually exclusive with ``package``.
        package: Go main package to build.
        build_opts: Module modes passed to the build.
        attach_output: Stream server output to the console.
        startup_timeout: Seconds allowed for the server to start listening.
        shutdown_timeout: Seconds allowed for graceful shutdown.
    """

    serving: "ServingParameters"
    etcd_servers: tuple[str, ...]
    kubeconfig: Path
    work_dir: Path
    command: tuple[str, ...] = ()
    package: str = ""
    build_opts: tuple[str, ...] = ()
    attach_output: bool = False
    startup_timeout: float = 60.0
    shutdown_timeout: float = 10.0

    def server_args(self) -> list[str]:
        """Standard generic-apiserver flags appended to the command."""
        return [
            f"--etcd-servers={','.join(self.etcd_servers)}",
            f"--bind-address={self.serving.host}",
            f"--secure-port={self.serving.port}",
            f"--cert-dir={self.serving.cert_dir}",
            f"--kubeconfig={self.kubeconfig}",
            f"--authentication-kubeconfig={self.kubeconfig}",
            f"--authorization-kubeconfig={self.kubeconfig}",
        ]


@final
class AggregatedServerSupervisor:
    """Builds (optionally), starts and stops the aggregated API server.

    start() returns once the server accepts TCP connections on its serving
    port. stop() is idempotent.
    """

    __slots__ = ("_builder", "_logger", "_options", "_output_sink", "_process", "_task_group")

    def __init__(
        self,
        options: AggregatedServerOptions,
        *,
        builder: GoBuilder | None = None,
        logger: "FilteringBoundLogger | None" = None,
        output_sink: "OutputSink | None" = None,
        task_group: anyio.abc.TaskGroup | None = None,
    ) -> None:
        if bool(options.command) == bool(options.package):
            msg = "Exactly one of the apiserver command and package must be set"
            raise ConfigurationError(msg, key="apiserver", phase=Phase.APISERVER)
        self._options = options
        self._builder = builder or GoBuilder(logger=logger)
        self._logger = logger
        self._output_sink = output_sink
        self._task_group = task_group
        self._process: ProcessManager | None = None

    @property
    def name(self) -> str:
        return "apiserver"

    @property
    def process(self) -> ProcessManager | None:
        return self._process

    async def _resolve_command(self) -> list[str]:
        if self._options.command:
            return list(self._options.command)
        binary = await self._builder.build(
            self._options.package,
            self._options.work_dir / BINARY_NAME,
            self._options.build_opts,
        )
        return [str(binary)]

    async def start(self) -> None:
        """Build if needed, then start the server.

        Raises:
            BuildError: If the package fails to build.
            ProcessStartError: If the server exits or fails to listen in time.
        """
        command = [*await self._resolve_command(), *self._options.server_args()]
        self._process = ProcessManager(
            ProcessConfig(
                name=self.name,
                command=tuple(command),
                host=self._options.serving.host,
                port=self._options.serving.port,
                startup_timeout=self._options.startup_timeout,
                shutdown_timeout=self._options.shutdown_timeout,
                attach_output=self._options.attach_output,
            ),
            phase=Phase.APISERVER,
            logger=self._logger,
            output_sink=self._output_sink,
            task_group=self._task_group,
        )
        await self._process.start()

    async def stop(self) -> None:
        if self._process is not None:
            await self._process.stop()
