"""Per-run state.

Everything a run touches lives on its RunContext; nothing is kept at
module level, so concurrent or repeated runs in one process do not
interfere.
"""

import shutil
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING, final

import anyio
import anyio.abc
import anyio.to_thread

from openapi_extractor.exceptions import Phase, RunCancelledError, TeardownError

if TYPE_CHECKING:
    from structlog.typing import FilteringBoundLogger

    from openapi_extractor.config import ExtractorConfig
    from openapi_extractor.controlplane import ControlPlane
    from openapi_extractor.kube import KubeClient
    from openapi_extractor.registrar import Registration
    from openapi_extractor.supervisor import Stoppable


@final
class Finalizer:
    """Adapts a cleanup callback to the Stoppable interface."""

    __slots__ = ("_callback", "_name")

    def __init__(self, name: str, callback: Callable[[], Awaitable[None]]) -> None:
        self._name = name
        self._callback = callback

    @property
    def name(self) -> str:
        return self._name

    async def stop(self) -> None:
        await self._callback()


def remove_directory(path: Path) -> Finalizer:
    """Finalizer that deletes ``path`` and everything below it."""

    async def remove() -> None:
        await anyio.to_thread.run_sync(shutil.rmtree, path)

    return Finalizer(f"work-dir:{path}", remove)


@dataclass(frozen=True, slots=True)
class RunOutcome:
    """Terminal result of a run.

    Attributes:
        primary_error: The first fatal error, or None on success.
        teardown_errors: Errors recorded while stopping resources.
        written_files: Every file written, including those written before a
            failure.
    """

    primary_error: Exception | None = None
    teardown_errors: tuple[TeardownError, ...] = ()
    written_files: tuple[Path, ...] = ()

    @property
    def succeeded(self) -> bool:
        return self.primary_error is None

    @property
    def phase(self) -> Phase | None:
        """Phase of the primary error, when it carries one."""
        phase: object = getattr(self.primary_error, "phase", None)
        return phase if isinstance(phase, Phase) else None


@dataclass(slots=True)
class RunContext:
    """Mutable state of one extraction run.

    Resources are pushed onto ``teardown_stack`` before they are started and
    popped in reverse order during teardown. ``primary_error`` is written at
    most once.
    """

    config: "ExtractorConfig"
    logger: "FilteringBoundLogger"
    cancel_event: anyio.Event
    work_dir: Path
    phase: Phase = Phase.CONFIGURATION
    task_group: anyio.abc.TaskGroup | None = None
    phase_scope: anyio.CancelScope | None = None
    teardown_stack: "list[Stoppable]" = field(default_factory=list)
    primary_error: Exception | None = None
    teardown_errors: list[TeardownError] = field(default_factory=list)
    written_files: list[Path] = field(default_factory=list)
    control_plane: "ControlPlane | None" = None
    client: "KubeClient | None" = None
    kubeconfig: Path | None = None
    registration: "Registration | None" = None
    apiserver: "Stoppable | None" = None

    def push(self, resource: "Stoppable") -> None:
        """Register ``resource`` for teardown."""
        self.teardown_stack.append(resource)

    def enter_phase(self, phase: Phase) -> "FilteringBoundLogger":
        """Mark ``phase`` as current and return a logger bound to it.

        Raises:
            RunCancelledError: If cancellation was requested.
        """
        if self.cancel_event.is_set():
            msg = f"Run cancelled before {phase}"
            raise RunCancelledError(msg, phase=phase)
        self.phase = phase
        log = self.logger.bind(phase=phase.value)
        log.info("phase_started")
        return log

    def record_error(self, error: Exception) -> None:
        """Record the run's primary error unless one is already set."""
        if self.primary_error is None:
            self.primary_error = error

    def outcome(self) -> RunOutcome:
        return RunOutcome(
            primary_error=self.primary_error,
            teardown_errors=tuple(self.teardown_errors),
            written_files=tuple(self.written_files),
        )
