"""Run sequencing.

A run moves through its phases strictly in order:

    configuration -> control-plane -> registration -> apiserver
        -> availability -> readiness -> extraction -> teardown

Every resource is pushed onto the run's teardown stack before it is
started, and teardown always runs, shielded from cancellation, in reverse
order. The first fatal error becomes the run's primary error; teardown
failures are collected separately and never replace it.
"""

import tempfile
from collections.abc import Awaitable, Callable
from pathlib import Path
from typing import TYPE_CHECKING, final

import anyio
import httpx

from openapi_extractor.apiserver import AggregatedServerOptions, AggregatedServerSupervisor
from openapi_extractor.controlplane import LocalControlPlane
from openapi_extractor.exceptions import (
    ConfigurationError,
    ExtractorError,
    KubeAPIError,
    Phase,
    RunCancelledError,
    StartupError,
    TeardownError,
)
from openapi_extractor.extraction import ReadinessPoller, SpecExtractor, openapi_v3_probe
from openapi_extractor.kube import KubeClient, RestConfig, write_kubeconfig
from openapi_extractor.registrar import ServiceRegistrar
from openapi_extractor.utils import open_logger

from ._context import Finalizer, RunContext, RunOutcome, remove_directory

if TYPE_CHECKING:
    from structlog.typing import FilteringBoundLogger

    from openapi_extractor.config import ExtractorConfig
    from openapi_extractor.controlplane import ControlPlane
    from openapi_extractor.registrar import Registrar, Registration
    from openapi_extractor.supervisor import Service

type ControlPlaneFactory = Callable[[RunContext], ControlPlane]
type RegistrarFactory = Callable[[RunContext], Registrar]
type ApiServerFactory = Callable[[RunContext, Registration], Service]
type ClientFactory = Callable[[RestConfig], KubeClient]


def default_control_plane(ctx: RunContext) -> "ControlPlane":
    return LocalControlPlane(
        ctx.config.control_plane,
        work_dir=ctx.work_dir,
        logger=ctx.logger,
        task_group=ctx.task_group,
    )


def default_registrar(ctx: RunContext) -> "Registrar":
    return ServiceRegistrar(
        ctx.config.apiservices,
        work_dir=ctx.work_dir,
        error_if_path_missing=ctx.config.error_if_path_missing,
        logger=ctx.logger,
    )


def default_apiserver(ctx: RunContext, registration: "Registration") -> "Service":
    assert ctx.control_plane is not None  # noqa: S101
    assert ctx.kubeconfig is not None  # noqa: S101
    config = ctx.config.apiserver
    options = AggregatedServerOptions(
        serving=registration.serving,
        etcd_servers=tuple(ctx.control_plane.etcd_servers),
        kubeconfig=ctx.kubeconfig,
        work_dir=ctx.work_dir,
        command=config.command,
        package=config.package,
        build_opts=config.build_opts,
        attach_output=config.attach_output,
        startup_timeout=config.startup_timeout,
        shutdown_timeout=config.shutdown_timeout,
    )
    return AggregatedServerSupervisor(
        options, logger=ctx.logger, task_group=ctx.task_group
    )


@final
class Orchestrator:
    """Drives one extraction run from configuration to teardown.

    Collaborators are created through factories so they can be replaced;
    the defaults run real etcd, kube-apiserver and aggregated server
    processes.
    """

    __slots__ = (
        "_apiserver_factory",
        "_cancel_event",
        "_client_factory",
        "_config",
        "_control_plane_factory",
        "_logger",
        "_registrar_factory",
        "_work_dir",
    )

    def __init__(
        self,
        config: "ExtractorConfig",
        *,
        logger: "FilteringBoundLogger | None" = None,
        cancel_event: anyio.Event | None = None,
        work_dir: Path | None = None,
        control_plane_factory: ControlPlaneFactory = default_control_plane,
        registrar_factory: RegistrarFactory = default_registrar,
        apiserver_factory: ApiServerFactory = default_apiserver,
        client_factory: ClientFactory = KubeClient.from_config,
    ) -> None:
        """Initialize the orchestrator.

        Args:
            config: Validated run configuration.
            logger: Run logger. Created from ``config.logging`` when omitted.
            cancel_event: Setting this event cancels the run.
            work_dir: Directory for certificates, kubeconfig and build
                output. A temporary directory, removed on teardown, is used
                when omitted.
            control_plane_factory: Creates the control plane.
            registrar_factory: Creates the APIService registrar.
            apiserver_factory: Creates the aggregated server supervisor.
            client_factory: Creates the API client for the control plane.
        """
        self._config = config
        self._logger = logger
        self._cancel_event = cancel_event or anyio.Event()
        self._work_dir = work_dir
        self._control_plane_factory = control_plane_factory
        self._registrar_factory = registrar_factory
        self._apiserver_factory = apiserver_factory
        self._client_factory = client_factory

    @property
    def cancel_event(self) -> anyio.Event:
        return self._cancel_event

    def cancel(self) -> None:
        """Request cancellation of the run."""
        self._cancel_event.set()

    def _new_context(self, logger: "FilteringBoundLogger") -> RunContext:
        return RunContext(
            config=self._config,
            logger=logger,
            cancel_event=self._cancel_event,
            work_dir=self._work_dir or Path(),
        )

    async def run(self) -> RunOutcome:
        """Execute the run.

        Never raises for failures of the run itself; they are reported on
        the returned outcome.
        """
        if self._logger is not None:
            return await self._run(self._new_context(self._logger))

        logging = self._config.logging
        with open_logger(
            level=logging.level.value,
            log_format=logging.format.value,
            log_file=logging.file,
        ) as logger:
            return await self._run(self._new_context(logger))

    async def _run(self, ctx: RunContext) -> RunOutcome:
        async with anyio.create_task_group() as tg:
            ctx.task_group = tg
            tg.start_soon(self._watch_cancellation, ctx)
            try:
                await self._run_phases(ctx)
            except ExtractorError as e:
                self._record_failure(ctx, e)
            except Exception as e:  # noqa: BLE001
                ctx.logger.exception("run_crashed", phase=ctx.phase.value)
                ctx.record_error(e)
            finally:
                with anyio.CancelScope(shield=True):
                    await self._teardown(ctx)
                tg.cancel_scope.cancel()

        outcome = ctx.outcome()
        ctx.logger.info(
            "run_finished",
            succeeded=outcome.succeeded,
            written_files=len(outcome.written_files),
            teardown_errors=len(outcome.teardown_errors),
        )
        return outcome

    def _record_failure(self, ctx: RunContext, error: ExtractorError) -> None:
        phase: object = getattr(error, "phase", ctx.phase)
        fields: dict[str, object] = {
            "phase": str(phase),
            "error": str(error),
            "error_type": type(error).__name__,
        }
        unready = getattr(error, "unready", None)
        if unready:
            fields["unready"] = [str(gv) for gv in unready]
        ctx.logger.error("run_failed", **fields)
        ctx.record_error(error)

    async def _watch_cancellation(self, ctx: RunContext) -> None:
        await ctx.cancel_event.wait()
        ctx.logger.warning("run_cancel_requested", phase=ctx.phase.value)
        if ctx.phase_scope is not None:
            ctx.phase_scope.cancel()

    async def _interruptible[T](
        self, ctx: RunContext, phase: Phase, func: Callable[[], Awaitable[T]]
    ) -> T:
        """Run ``func`` in a scope the cancellation watcher can cancel.

        Raises:
            RunCancelledError: If cancellation interrupted ``func``.
        """
        with anyio.CancelScope() as scope:
            ctx.phase_scope = scope
            try:
                return await func()
            finally:
                ctx.phase_scope = None
        msg = f"Run cancelled during {phase}"
        raise RunCancelledError(msg, phase=phase)

    def _validate(self, ctx: RunContext) -> None:
        _ = ctx.enter_phase(Phase.CONFIGURATION)
        config = ctx.config
        if not config.apiservices:
            msg = "At least one apiservices path is required"
            raise ConfigurationError(msg, key="apiservices")
        if config.error_if_path_missing:
            for path in config.apiservices:
                if not path.exists():
                    msg = f"APIService path does not exist: {path}"
                    raise ConfigurationError(msg, key="apiservices")

        if self._work_dir is None:
            ctx.work_dir = Path(tempfile.mkdtemp(prefix="openapi-extractor-"))
            ctx.push(remove_directory(ctx.work_dir))
        else:
            ctx.work_dir.mkdir(parents=True, exist_ok=True)

    async def _run_phases(self, ctx: RunContext) -> None:
        self._validate(ctx)

        # Control plane
        log = ctx.enter_phase(Phase.CONTROL_PLANE)
        control_plane = self._control_plane_factory(ctx)
        ctx.control_plane = control_plane
        ctx.push(control_plane)
        await self._interruptible(ctx, Phase.CONTROL_PLANE, control_plane.start)
        client = self._client_factory(control_plane.rest_config)
        ctx.client = client
        ctx.push(Finalizer("kube-client", client.aclose))
        ctx.kubeconfig = write_kubeconfig(
            ctx.work_dir / "kubeconfig", control_plane.rest_config
        )
        log.info("control_plane_ready", host=control_plane.rest_config.host)

        # Registration
        log = ctx.enter_phase(Phase.REGISTRATION)
        registrar = self._registrar_factory(ctx)
        try:
            registration = await self._interruptible(
                ctx, Phase.REGISTRATION, lambda: registrar.register(client)
            )
        except (KubeAPIError, httpx.HTTPError) as e:
            msg = f"Failed to install APIServices: {e}"
            raise StartupError(msg, phase=Phase.REGISTRATION, cause=e) from e
        ctx.registration = registration
        group_versions = registration.group_versions
        log.info(
            "apiservices_registered",
            group_versions=[str(gv) for gv in group_versions],
            serving_port=registration.serving.port,
        )

        # Aggregated server
        log = ctx.enter_phase(Phase.APISERVER)
        apiserver = self._apiserver_factory(ctx, registration)
        ctx.apiserver = apiserver
        ctx.push(apiserver)
        await self._interruptible(ctx, Phase.APISERVER, apiserver.start)
        log.info("apiserver_started")

        # APIService availability
        log = ctx.enter_phase(Phase.AVAILABILITY)
        await ReadinessPoller(
            registrar.availability_probe(client, registration),
            timeout=ctx.config.apiservice_timeout,
            interval=ctx.config.poll_interval,
            cancel_event=ctx.cancel_event,
            phase=Phase.AVAILABILITY,
            logger=log,
        ).wait(group_versions)
        log.info("apiservices_available")

        # OpenAPI v3 readiness
        log = ctx.enter_phase(Phase.READINESS)
        await ReadinessPoller(
            openapi_v3_probe(client),
            timeout=ctx.config.openapi_timeout,
            interval=ctx.config.poll_interval,
            cancel_event=ctx.cancel_event,
            phase=Phase.READINESS,
            logger=log,
        ).wait(group_versions)
        log.info("openapi_ready")

        # Extraction
        log = ctx.enter_phase(Phase.EXTRACTION)
        extractor = SpecExtractor(
            client, ctx.config.output, cancel_event=ctx.cancel_event, logger=log
        )
        try:
            _ = await self._interruptible(
                ctx, Phase.EXTRACTION, lambda: extractor.extract(group_versions)
            )
        finally:
            ctx.written_files.extend(extractor.written)

    async def _teardown(self, ctx: RunContext) -> None:
        """Stop every pushed resource in reverse order."""
        ctx.phase = Phase.TEARDOWN
        log = ctx.logger.bind(phase=Phase.TEARDOWN.value)
        while ctx.teardown_stack:
            resource = ctx.teardown_stack.pop()
            try:
                await resource.stop()
            except Exception as e:  # noqa: BLE001
                msg = f"Failed to stop {resource.name}: {e}"
                ctx.teardown_errors.append(
                    TeardownError(msg, resource=resource.name, cause=e)
                )
                log.error("teardown_failed", resource=resource.name, error=str(e))
            else:
                log.debug("resource_stopped", resource=resource.name)
