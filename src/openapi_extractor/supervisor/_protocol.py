"""Protocol definitions for process supervision.

This module defines the interfaces that decouple supervision from output
handling and from the components that own processes:
- OutputSink: Protocol for consuming process output and events
- Stoppable: Protocol for anything the orchestrator tears down
- Service: A Stoppable the orchestrator also starts
"""

from typing import TYPE_CHECKING, Literal, Protocol, runtime_checkable

if TYPE_CHECKING:
    from ._models import ProcessEvent


@runtime_checkable
class OutputSink(Protocol):
    """Protocol for consuming process output lines and events.

    The protocol is async to support non-blocking I/O such as writing to
    files or updating a console.
    """

    async def write_line(
        self,
        process_name: str,
        pid: int,
        stream: Literal["stdout", "stderr"],
        line: str,
    ) -> None:
        """Write a line of process output.

        Args:
            process_name: Name of the process that produced the output.
            pid: Process ID of the process.
            stream: Which output stream the line came from.
            line: The output line (without trailing newline).
        """
        ...

    async def write_event(self, process_name: str, event: "ProcessEvent") -> None:
        """Write a process lifecycle event.

        Args:
            process_name: Name of the process that generated the event.
            event: The lifecycle event to record.
        """
        ...


@runtime_checkable
class Stoppable(Protocol):
    """A resource with a name and an idempotent stop."""

    @property
    def name(self) -> str:
        """Return the resource name used in teardown reports."""
        ...

    async def stop(self) -> None:
        """Stop the resource.

        Must not raise when the resource never started or already exited.
        """
        ...


@runtime_checkable
class Service(Stoppable, Protocol):
    """A stoppable resource that is started by the orchestrator."""

    async def start(self) -> None:
        """Start the resource, returning once it is usable.

        Raises:
            StartupError: If the resource cannot be started.
        """
        ...
