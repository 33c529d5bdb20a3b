"""The command-line interface for openapi-extractor."""
# ruff: noqa: TC003  # Path needed at runtime for cyclopts parameter parsing

import signal
from collections.abc import Awaitable, Callable
from importlib.metadata import PackageNotFoundError, version
from pathlib import Path
from typing import TYPE_CHECKING, Annotated, Any, Literal

import anyio
from cyclopts import App, Parameter
from rich.console import Console
from rich.markup import escape

from openapi_extractor.config import ExtractorConfig
from openapi_extractor.exceptions import ConfigurationError
from openapi_extractor.orchestrator import Orchestrator, RunOutcome
from openapi_extractor.utils import open_logger

from ._shared import ExitCode, describe_error, exit_code_for, exit_with_error

if TYPE_CHECKING:
    from structlog.typing import FilteringBoundLogger

type Runner = Callable[[ExtractorConfig, FilteringBoundLogger], Awaitable[RunOutcome]]

HELP = (
    "Start an ephemeral control plane and an aggregated API server, then "
    "extract their OpenAPI v2 and v3 documents."
)


def _package_version() -> str:
    try:
        return version("openapi-extractor")
    except PackageNotFoundError:
        return "0.0.0"


def split_list(value: str) -> list[str]:
    """Split a comma-separated flag value, dropping empty items."""
    return [item.strip() for item in value.split(",") if item.strip()]


def build_overrides(  # noqa: PLR0913
    *,
    apiservices: str = "",
    apiserver_command: str = "",
    apiserver_package: str = "",
    apiserver_build_opts: str = "",
    attach_control_plane_output: bool = False,
    attach_apiserver_output: bool = False,
    output: Path | None = None,
    openapi_timeout: str | float | None = None,
    apiservice_timeout: str | float | None = None,
    log_level: str | None = None,
    log_format: str | None = None,
    log_file: str | None = None,
) -> dict[str, Any]:  # pyright: ignore[reportExplicitAny]
    """Translate command-line flags into configuration overrides.

    Only flags that were given are included, so unset flags leave
    environment and default values in place.
    """
    overrides: dict[str, Any] = {}  # pyright: ignore[reportExplicitAny]
    if apiservices:
        overrides["apiservices"] = split_list(apiservices)
    if output is not None:
        overrides["output"] = str(output)
    if openapi_timeout is not None:
        overrides["openapi_timeout"] = openapi_timeout
    if apiservice_timeout is not None:
        overrides["apiservice_timeout"] = apiservice_timeout

    apiserver: dict[str, Any] = {}  # pyright: ignore[reportExplicitAny]
    if apiserver_command:
        apiserver["command"] = split_list(apiserver_command)
    if apiserver_package:
        apiserver["package"] = apiserver_package
    if apiserver_build_opts:
        apiserver["build_opts"] = split_list(apiserver_build_opts)
    if attach_apiserver_output:
        apiserver["attach_output"] = True
    if apiserver:
        overrides["apiserver"] = apiserver

    if attach_control_plane_output:
        overrides["control_plane"] = {"attach_output": True}

    logging: dict[str, Any] = {}  # pyright: ignore[reportExplicitAny]
    if log_level is not None:
        logging["level"] = log_level
    if log_format is not None:
        logging["format"] = log_format
    if log_file is not None:
        logging["file"] = log_file
    if logging:
        overrides["logging"] = logging

    return overrides


async def _relay_signals(event: anyio.Event) -> None:
    """Set ``event`` on SIGINT or SIGTERM."""
    with anyio.open_signal_receiver(signal.SIGINT, signal.SIGTERM) as signals:
        async for _signum in signals:
            event.set()


async def run_extraction(
    config: ExtractorConfig, logger: "FilteringBoundLogger"
) -> RunOutcome:
    """Run one extraction, cancelling it on SIGINT or SIGTERM."""
    orchestrator = Orchestrator(config, logger=logger)
    async with anyio.create_task_group() as tg:
        tg.start_soon(_relay_signals, orchestrator.cancel_event)
        outcome = await orchestrator.run()
        tg.cancel_scope.cancel()
    return outcome


def create_app(
    console: Console | None = None,
    error_console: Console | None = None,
    *,
    exit_on_error: bool = True,
    runner: Runner | None = None,
) -> App:
    """Create the CLI application.

    Args:
        console: Console for regular output.
        error_console: Console for errors and warnings (stderr by default).
        exit_on_error: Exit on argument parsing errors.
        runner: Coroutine function that performs the run. Defaults to
            run_extraction.
    """
    if console is None:
        console = Console()
    if error_console is None:
        error_console = Console(stderr=True)
    run = runner or run_extraction

    app = App(
        name="openapi-extractor",
        help=HELP,
        help_on_error=True,
        version=_package_version(),
        console=console,
        error_console=error_console,
        exit_on_error=exit_on_error,
    )

    @app.default
    def extract(  # pyright: ignore[reportUnusedFunction]  # noqa: PLR0913
        *,
        apiservices: Annotated[
            str,
            Parameter(help="Comma separated list of APIService manifest directories"),
        ] = "",
        apiserver_command: Annotated[
            str,
            Parameter(help="Comma separated command line of a prebuilt API server"),
        ] = "",
        apiserver_package: Annotated[
            str, Parameter(help="Go package to build the API server from")
        ] = "",
        apiserver_build_opts: Annotated[
            str, Parameter(help="Comma separated build options (module modes)")
        ] = "",
        attach_control_plane_output: Annotated[
            bool, Parameter(help="Stream control plane output to the console")
        ] = False,
        attach_apiserver_output: Annotated[
            bool, Parameter(help="Stream API server output to the console")
        ] = False,
        output: Annotated[
            Path | None, Parameter(help="Directory to write the documents to")
        ] = None,
        openapi_timeout: Annotated[
            str | None,
            Parameter(help="How long to wait for every OpenAPI v3 document (30, 30s, 1m30s)"),
        ] = None,
        apiservice_timeout: Annotated[
            str | None,
            Parameter(help="How long to wait for the APIServices to become Available"),
        ] = None,
        log_level: Annotated[
            Literal["debug", "info", "warning", "error"] | None,
            Parameter(help="Log level"),
        ] = None,
        log_format: Annotated[
            Literal["json", "text"] | None, Parameter(help="Log format")
        ] = None,
        log_file: Annotated[
            str | None, Parameter(help="Write logs to this file instead of stderr")
        ] = None,
    ) -> None:
        """Extract OpenAPI documents from an aggregated API server.

        Args:
            apiservices: APIService manifest directories.
            apiserver_command: Prebuilt API server command line.
            apiserver_package: Go package to build the API server from.
            apiserver_build_opts: Build options for the package.
            attach_control_plane_output: Stream control plane output.
            attach_apiserver_output: Stream API server output.
            output: Output directory.
            openapi_timeout: OpenAPI v3 readiness timeout, in seconds or as a
                duration such as 30s.
            apiservice_timeout: APIService availability timeout, in seconds
                or as a duration such as 5m.
            log_level: Log level threshold.
            log_format: Log output format.
            log_file: Log file path.
        """
        overrides = build_overrides(
            apiservices=apiservices,
            apiserver_command=apiserver_command,
            apiserver_package=apiserver_package,
            apiserver_build_opts=apiserver_build_opts,
            attach_control_plane_output=attach_control_plane_output,
            attach_apiserver_output=attach_apiserver_output,
            output=output,
            openapi_timeout=openapi_timeout,
            apiservice_timeout=apiservice_timeout,
            log_level=log_level,
            log_format=log_format,
            log_file=log_file,
        )

        try:
            config = ExtractorConfig.load(cli_overrides=overrides)
        except ConfigurationError as e:
            exit_with_error(describe_error(e), ExitCode.STARTUP_ERROR, console=error_console)

        with open_logger(
            level=config.logging.level.value,
            log_format=config.logging.format.value,
            log_file=config.logging.file,
        ) as logger:
            outcome = anyio.run(run, config, logger)

        for teardown_error in outcome.teardown_errors:
            error_console.print(f"[yellow]Warning:[/yellow] {escape(str(teardown_error))}")

        if outcome.primary_error is not None:
            exit_with_error(
                describe_error(outcome.primary_error),
                exit_code_for(outcome.primary_error),
                console=error_console,
            )

        console.print(
            f"Wrote {len(outcome.written_files)} OpenAPI documents to "
            f"{escape(str(config.output))}"
        )

    return app


def main() -> None:
    """Default entrypoint for the `openapi-extractor` CLI."""
    app = create_app()
    app()


if __name__ == "__main__":
    main()
