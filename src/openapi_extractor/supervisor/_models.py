"""Value types shared by the process manager and its output sinks."""

from dataclasses import dataclass, field
from enum import StrEnum
from pathlib import Path  # noqa: TC003 - Used in runtime type annotations


class ProcessState(StrEnum):
    """Where a supervised process is in its life.

    RUNNING means listening, or merely spawned when no port is configured.
    FAILED means the process never came up.
    """

    NOT_STARTED = "not-started"
    RUNNING = "running"
    STOPPED = "stopped"
    FAILED = "failed"


class ProcessEventType(StrEnum):
    """Lifecycle transitions reported to an output sink."""

    SPAWNED = "spawned"
    READY = "ready"
    STOPPED = "stopped"
    FAILED = "failed"


@dataclass(frozen=True, slots=True)
class ProcessEvent:
    """Immutable process lifecycle event.

    Attributes:
        process_name: Name of the process that generated the event.
        event_type: Type of lifecycle event.
        timestamp: ISO 8601 formatted timestamp.
        pid: Process ID if applicable.
        exit_code: Exit code if process terminated.
        message: Optional human-readable message.
    """

    process_name: str
    event_type: ProcessEventType
    timestamp: str
    pid: int | None = None
    exit_code: int | None = None
    message: str | None = None


@dataclass(frozen=True, slots=True)
class ProcessConfig:
    """Configuration for a supervised process.

    Attributes:
        name: Identifier used in logs and output prefixes.
        command: Command and arguments to execute.
        cwd: Working directory for the process.
        env: Additional environment variables.
        host: Host the process listens on.
        port: Port the process listens on. When set, start() waits until a
            TCP connection to host:port succeeds.
        startup_timeout: Seconds to wait for the process to listen.
        shutdown_timeout: Seconds to wait for graceful shutdown.
        attach_output: Whether to stream stdout/stderr to the output sink.
    """

    name: str
    command: tuple[str, ...]
    cwd: Path | None = None
    env: dict[str, str] = field(default_factory=dict)
    host: str = "127.0.0.1"
    port: int | None = None
    startup_timeout: float = 60.0
    shutdown_timeout: float = 10.0
    attach_output: bool = False


@dataclass(slots=True)
class ProcessStatus:
    """Mutable runtime status of a supervised process.

    Attributes:
        state: Current process state.
        pid: Process ID of the running process, if any.
        last_exit_code: Exit code from the last process termination.
        started_at: ISO 8601 timestamp of the start attempt.
        stopped_at: ISO 8601 timestamp of the stop.
    """

    state: ProcessState = ProcessState.NOT_STARTED
    pid: int | None = None
    last_exit_code: int | None = None
    started_at: str | None = None
    stopped_at: str | None = None
