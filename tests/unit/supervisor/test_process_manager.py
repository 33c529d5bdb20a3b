"""Unit tests for the subprocess lifecycle manager."""

import io
import sys
from typing import Literal

import anyio
import pytest
from rich.console import Console

from openapi_extractor.exceptions import Phase, ProcessStartError
from openapi_extractor.supervisor import (
    ConcatenatedOutputSink,
    ProcessConfig,
    ProcessEvent,
    ProcessEventType,
    ProcessManager,
    ProcessState,
)
from openapi_extractor.utils import find_open_port

LISTENER = """
import socket, sys, time
s = socket.socket()
s.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
s.bind(("127.0.0.1", int(sys.argv[1])))
s.listen()
print("listening", flush=True)
while True:
    time.sleep(1)
"""


class RecordingSink:
    def __init__(self) -> None:
        self.lines: list[tuple[str, str]] = []
        self.events: list[ProcessEventType] = []

    async def write_line(
        self,
        process_name: str,
        pid: int,
        stream: Literal["stdout", "stderr"],
        line: str,
    ) -> None:
        self.lines.append((stream, line))

    async def write_event(self, process_name: str, event: ProcessEvent) -> None:
        self.events.append(event.event_type)


def _listener(port: int, **kwargs: object) -> ProcessConfig:
    return ProcessConfig(
        name="listener",
        command=(sys.executable, "-c", LISTENER, str(port)),
        port=port,
        **kwargs,  # pyright: ignore[reportArgumentType]
    )


class TestProcessManagerStart:
    @pytest.mark.anyio
    async def test_start_returns_once_listening(self) -> None:
        manager = ProcessManager(_listener(find_open_port()), phase=Phase.CONTROL_PLANE)

        try:
            await manager.start()

            assert manager.state is ProcessState.RUNNING
            assert manager.pid is not None
        finally:
            await manager.stop()

        assert manager.state is ProcessState.STOPPED
        assert manager.pid is None
        assert manager.status.stopped_at is not None

    @pytest.mark.anyio
    async def test_spawn_failure_raises_with_phase(self) -> None:
        config = ProcessConfig(name="missing", command=("/nonexistent/etcd",))
        manager = ProcessManager(config, phase=Phase.CONTROL_PLANE)

        with pytest.raises(ProcessStartError) as exc_info:
            await manager.start()

        assert exc_info.value.process_name == "missing"
        assert exc_info.value.phase is Phase.CONTROL_PLANE
        assert isinstance(exc_info.value.cause, OSError)
        assert manager.state is ProcessState.FAILED

    @pytest.mark.anyio
    async def test_early_exit_reports_exit_code(self) -> None:
        config = ProcessConfig(
            name="crasher",
            command=(sys.executable, "-c", "raise SystemExit(3)"),
            port=find_open_port(),
            startup_timeout=10.0,
        )
        manager = ProcessManager(config, phase=Phase.APISERVER)

        with pytest.raises(ProcessStartError) as exc_info:
            await manager.start()

        assert exc_info.value.exit_code == 3
        assert exc_info.value.phase is Phase.APISERVER
        assert manager.state is ProcessState.FAILED
        assert manager.status.last_exit_code == 3

    @pytest.mark.anyio
    async def test_startup_timeout_kills_process(self) -> None:
        config = ProcessConfig(
            name="sleeper",
            command=(sys.executable, "-c", "import time; time.sleep(60)"),
            port=find_open_port(),
            startup_timeout=0.5,
        )
        manager = ProcessManager(config, phase=Phase.CONTROL_PLANE)

        with pytest.raises(ProcessStartError, match="did not become ready"):
            await manager.start()

        assert manager.state is ProcessState.FAILED
        assert manager.pid is None
        assert manager.status.last_exit_code is not None

    @pytest.mark.anyio
    async def test_ready_check_gates_startup(self) -> None:
        checks: list[int] = []

        async def ready() -> bool:
            checks.append(1)
            return len(checks) >= 3

        manager = ProcessManager(
            _listener(find_open_port()), phase=Phase.CONTROL_PLANE, ready_check=ready
        )
        try:
            await manager.start()
        finally:
            await manager.stop()

        assert len(checks) == 3


class TestProcessManagerStop:
    @pytest.mark.anyio
    async def test_stop_before_start_is_a_no_op(self) -> None:
        manager = ProcessManager(_listener(find_open_port()), phase=Phase.CONTROL_PLANE)

        await manager.stop()

        assert manager.state is ProcessState.NOT_STARTED

    @pytest.mark.anyio
    async def test_stop_is_idempotent(self) -> None:
        manager = ProcessManager(_listener(find_open_port()), phase=Phase.CONTROL_PLANE)
        await manager.start()

        await manager.stop()
        await manager.stop()

        assert manager.state is ProcessState.STOPPED

    @pytest.mark.anyio
    async def test_stop_escalates_to_kill(self) -> None:
        script = (
            "import signal, time; signal.signal(signal.SIGTERM, signal.SIG_IGN); "
            "time.sleep(60)"
        )
        config = ProcessConfig(name="stubborn", command=(sys.executable, "-c", script))
        manager = ProcessManager(config, phase=Phase.APISERVER)
        await manager.start()

        await manager.stop(graceful_timeout=0.5)

        assert manager.state is ProcessState.STOPPED
        assert manager.status.last_exit_code is not None


class TestOutputStreaming:
    @pytest.mark.anyio
    async def test_attached_output_reaches_sink(self) -> None:
        sink = RecordingSink()
        async with anyio.create_task_group() as tg:
            manager = ProcessManager(
                _listener(find_open_port(), attach_output=True),
                phase=Phase.CONTROL_PLANE,
                output_sink=sink,
                task_group=tg,
            )
            await manager.start()
            with anyio.fail_after(5):
                while ("stdout", "listening") not in sink.lines:
                    await anyio.sleep(0.05)
            await manager.stop()

        assert sink.events[:2] == [ProcessEventType.SPAWNED, ProcessEventType.READY]
        assert sink.events[-1] is ProcessEventType.STOPPED


class TestConcatenatedOutputSink:
    @pytest.mark.anyio
    async def test_prefixes_lines_with_name_and_pid(self) -> None:
        console = Console(file=io.StringIO(), width=200, record=True)
        sink = ConcatenatedOutputSink(console)

        await sink.write_line("etcd", 42, "stderr", "serving client traffic")

        assert "[etcd:42] serving client traffic" in console.export_text()

    @pytest.mark.anyio
    async def test_formats_events(self) -> None:
        console = Console(file=io.StringIO(), width=200, record=True)
        sink = ConcatenatedOutputSink(console)
        event = ProcessEvent(
            process_name="kube-apiserver",
            event_type=ProcessEventType.FAILED,
            timestamp="2026-01-01T00:00:00Z",
            pid=7,
            exit_code=1,
            message="exited",
        )

        await sink.write_event("kube-apiserver", event)

        assert (
            "[kube-apiserver] FAILED (pid=7) exit_code=1 - exited"
            in console.export_text()
        )
