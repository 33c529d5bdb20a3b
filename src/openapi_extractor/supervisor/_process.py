"""Process manager for subprocess lifecycle management.

This module provides the ProcessManager class that spawns a subprocess,
confirms it is listening, optionally streams its output, and stops it.
"""

import os
import signal
import subprocess
from collections.abc import Awaitable, Callable
from typing import TYPE_CHECKING, Literal, final

import anyio
import anyio.abc
from anyio.streams.text import TextReceiveStream

from openapi_extractor.exceptions import Phase, ProcessStartError, ProcessStopError
from openapi_extractor.utils import get_timestamp

from ._models import (
    ProcessConfig,
    ProcessEvent,
    ProcessEventType,
    ProcessState,
    ProcessStatus,
)
from ._output import ConcatenatedOutputSink

if TYPE_CHECKING:
    from structlog.typing import FilteringBoundLogger

    from ._protocol import OutputSink

ReadyCheck = Callable[[], Awaitable[bool]]

# Seconds between startup checks
STARTUP_CHECK_INTERVAL = 0.1


@final
class ProcessManager:
    """Manages the lifecycle of one subprocess.

    start() returns only once the process is confirmed listening: a TCP
    connection to the configured host/port succeeds and, if given, the
    ready check returns True. stop() is idempotent.

    Attributes:
        config: Immutable configuration for this process.
        status: Mutable runtime status tracking.
        phase: Run phase reported in startup errors.
    """

    __slots__ = (
        "_logger",
        "_output_sink",
        "_process",
        "_ready_check",
        "_task_group",
        "config",
        "phase",
        "status",
    )

    def __init__(
        self,
        config: ProcessConfig,
        *,
        phase: Phase,
        logger: "FilteringBoundLogger | None" = None,
        output_sink: "OutputSink | None" = None,
        task_group: anyio.abc.TaskGroup | None = None,
        ready_check: ReadyCheck | None = None,
    ) -> None:
        """Initialize the process manager.

        Args:
            config: Configuration for the process.
            phase: Run phase reported in startup errors.
            logger: Logger for lifecycle events.
            output_sink: Sink for attached output and events. Defaults to a
                console sink when output is attached.
            task_group: Task group that hosts output streaming. Without one,
                attached output is inherited from this process instead.
            ready_check: Extra readiness check run after the port accepts
                connections.
        """
        self.config = config
        self.phase = phase
        self.status = ProcessStatus()
        self._logger = logger
        self._output_sink: OutputSink | None = output_sink
        if self._output_sink is None and config.attach_output:
            self._output_sink = ConcatenatedOutputSink()
        self._task_group = task_group
        self._ready_check = ready_check
        self._process: anyio.abc.Process | None = None

    @property
    def name(self) -> str:
        """Return the process name."""
        return self.config.name

    @property
    def state(self) -> ProcessState:
        """Return the current state of this process."""
        return self.status.state

    @property
    def pid(self) -> int | None:
        """Return the process ID if running, None otherwise."""
        return self.status.pid

    async def emit_event(
        self,
        event_type: ProcessEventType,
        *,
        message: str | None = None,
        exit_code: int | None = None,
    ) -> None:
        """Emit a lifecycle event to the logger and the output sink."""
        event = ProcessEvent(
            process_name=self.name,
            event_type=event_type,
            timestamp=get_timestamp(),
            pid=self.status.pid,
            exit_code=exit_code,
            message=message,
        )
        if self._logger is not None:
            log = (
                self._logger.warning
                if event_type == ProcessEventType.FAILED
                else self._logger.info
            )
            log(
                f"process_{event_type.value}",
                process=self.name,
                pid=event.pid,
                exit_code=exit_code,
                detail=message,
            )
        if self._output_sink is not None and self.config.attach_output:
            try:  # noqa: SIM105
                await self._output_sink.write_event(self.name, event)
            except Exception:  # noqa: BLE001, S110
                # Output sink errors should not affect the process
                pass

    async def _stream_output(
        self,
        stream: TextReceiveStream,
        stream_name: Literal["stdout", "stderr"],
        pid: int,
    ) -> None:
        """Stream output from a text stream to the output sink."""
        if self._output_sink is None:
            return
        try:
            async for raw_line in stream:
                for line in raw_line.splitlines():
                    try:  # noqa: SIM105
                        await self._output_sink.write_line(
                            self.name, pid, stream_name, line
                        )
                    except Exception:  # noqa: BLE001, S110
                        # Output sink errors should not crash streaming
                        pass
        except (anyio.ClosedResourceError, anyio.BrokenResourceError):
            # Stream closed, which is expected on process exit
            pass

    def _output_target(self) -> int | None:
        if not self.config.attach_output:
            return subprocess.DEVNULL
        if self._task_group is None:
            # Inherit our own stdout/stderr
            return None
        return subprocess.PIPE

    async def start(self) -> None:
        """Start the process and wait until it is listening.

        Raises:
            ProcessStartError: If the process cannot be spawned, exits during
                startup, or does not listen within the startup timeout.
        """
        if self.status.state == ProcessState.RUNNING:
            return

        self.status.started_at = get_timestamp()

        env: dict[str, str] | None = None
        if self.config.env:
            env = {**os.environ, **self.config.env}

        target = self._output_target()
        try:
            self._process = await anyio.open_process(
                self.config.command,
                cwd=self.config.cwd,
                env=env,
                stdin=subprocess.DEVNULL,
                stdout=target,
                stderr=target,
            )
        except OSError as e:
            self.status.state = ProcessState.FAILED
            msg = f"Failed to start '{self.name}': {e}"
            await self.emit_event(ProcessEventType.FAILED, message=msg)
            raise ProcessStartError(
                msg, process_name=self.name, phase=self.phase, cause=e
            ) from e

        self.status.pid = self._process.pid
        await self.emit_event(
            ProcessEventType.SPAWNED,
            message=f"Started with command: {' '.join(self.config.command)}",
        )

        if target == subprocess.PIPE and self._task_group is not None:
            pid = self._process.pid
            if self._process.stdout is not None:
                self._task_group.start_soon(
                    self._stream_output,
                    TextReceiveStream(self._process.stdout),
                    "stdout",
                    pid,
                )
            if self._process.stderr is not None:
                self._task_group.start_soon(
                    self._stream_output,
                    TextReceiveStream(self._process.stderr),
                    "stderr",
                    pid,
                )

        try:
            with anyio.fail_after(self.config.startup_timeout):
                await self._wait_until_listening()
        except TimeoutError as e:
            msg = (
                f"'{self.name}' did not become ready within "
                f"{self.config.startup_timeout:g}s"
            )
            await self._abort_start(msg)
            raise ProcessStartError(
                msg, process_name=self.name, phase=self.phase, cause=e
            ) from e
        except ProcessStartError as e:
            await self._abort_start(str(e))
            raise

        self.status.state = ProcessState.RUNNING
        await self.emit_event(ProcessEventType.READY)

    async def _wait_until_listening(self) -> None:
        """Poll until the port accepts connections and the ready check passes."""
        assert self._process is not None  # noqa: S101
        while True:
            if self._process.returncode is not None:
                exit_code = self._process.returncode
                msg = f"'{self.name}' exited during startup with code {exit_code}"
                raise ProcessStartError(
                    msg, process_name=self.name, phase=self.phase, exit_code=exit_code
                )
            if await self._is_listening() and (
                self._ready_check is None or await self._ready_check()
            ):
                return
            await anyio.sleep(STARTUP_CHECK_INTERVAL)

    async def _is_listening(self) -> bool:
        if self.config.port is None:
            return True
        try:
            stream = await anyio.connect_tcp(self.config.host, self.config.port)
        except OSError:
            return False
        await stream.aclose()
        return True

    async def _abort_start(self, message: str) -> None:
        """Kill a process that failed its startup check and record the failure."""
        process = self._process
        self._process = None
        self.status.state = ProcessState.FAILED
        if process is not None:
            with anyio.CancelScope(shield=True):
                if process.returncode is None:
                    try:
                        process.kill()
                    except ProcessLookupError:
                        pass
                await process.aclose()
                self.status.last_exit_code = process.returncode
        self.status.pid = None
        await self.emit_event(
            ProcessEventType.FAILED,
            message=message,
            exit_code=self.status.last_exit_code,
        )

    async def stop(self, graceful_timeout: float | None = None) -> None:
        """Stop the process gracefully.

        Sends SIGTERM and waits for graceful shutdown. If the process
        doesn't exit within the timeout, sends SIGKILL. Does nothing when
        the process never started or already failed.

        Args:
            graceful_timeout: Seconds to wait for graceful shutdown.
                Uses config default if None.

        Raises:
            ProcessStopError: If the process cannot be signalled.
        """
        if self._process is None:
            return

        actual_timeout = (
            graceful_timeout
            if graceful_timeout is not None
            else self.config.shutdown_timeout
        )

        process = self._process
        try:
            if process.returncode is None:
                process.send_signal(signal.SIGTERM)

                with anyio.move_on_after(actual_timeout):
                    _ = await process.wait()

                if process.returncode is None:
                    process.kill()
                    _ = await process.wait()

            await process.aclose()

        except ProcessLookupError:
            # Process already exited
            pass

        except OSError as e:
            msg = f"Failed to stop '{self.name}': {e}"
            raise ProcessStopError(msg, process_name=self.name, cause=e) from e

        finally:
            self._process = None
            self.status.last_exit_code = process.returncode
            self.status.stopped_at = get_timestamp()
            self.status.state = ProcessState.STOPPED
            self.status.pid = None

        await self.emit_event(
            ProcessEventType.STOPPED,
            exit_code=self.status.last_exit_code,
            message="Stopped by request",
        )
