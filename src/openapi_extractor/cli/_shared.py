"""Shared CLI utilities.

This module provides:
- Standardized exit codes
- Mapping from run errors to exit codes and messages
- Console utilities for error handling
"""

from enum import IntEnum
from typing import TYPE_CHECKING, Never

from rich.markup import escape

from openapi_extractor.exceptions import (
    ExtractionError,
    PersistenceError,
    ReadinessCancelledError,
    ReadinessError,
    ReadinessTimeoutError,
    RunCancelledError,
    StartupError,
)

if TYPE_CHECKING:
    from rich.console import Console

__all__ = [
    "ExitCode",
    "describe_error",
    "exit_code_for",
    "exit_with_error",
    "get_error_console",
]


class ExitCode(IntEnum):
    """Exit codes for the openapi-extractor CLI."""

    SUCCESS = 0
    INTERNAL_ERROR = 1
    STARTUP_ERROR = 2
    READINESS_TIMEOUT = 3
    EXTRACTION_ERROR = 4
    PERSISTENCE_ERROR = 5
    CANCELLED = 130


def exit_code_for(error: BaseException | None) -> ExitCode:
    """Map a run's primary error to the process exit code."""
    match error:
        case None:
            return ExitCode.SUCCESS
        case ReadinessCancelledError() | RunCancelledError():
            return ExitCode.CANCELLED
        case ReadinessTimeoutError():
            return ExitCode.READINESS_TIMEOUT
        case StartupError():
            return ExitCode.STARTUP_ERROR
        case ExtractionError():
            return ExitCode.EXTRACTION_ERROR
        case PersistenceError():
            return ExitCode.PERSISTENCE_ERROR
        case _:
            return ExitCode.INTERNAL_ERROR


def describe_error(error: BaseException) -> str:
    """Render a one-line description naming the failed phase."""
    phase = getattr(error, "phase", None)
    message = str(error) or type(error).__name__
    if isinstance(error, ReadinessError) and error.unready:
        unready = ", ".join(str(gv) for gv in error.unready)
        if unready not in message:
            message = f"{message} (unready: {unready})"
    if phase is not None:
        return f"{phase} phase failed: {message}"
    return message


def get_error_console() -> "Console":
    """Get a Rich console configured for error output to stderr.

    Returns:
        Console instance writing to stderr.
    """
    from rich.console import Console  # noqa: PLC0415

    return Console(stderr=True)


def exit_with_error(
    message: str,
    code: ExitCode = ExitCode.INTERNAL_ERROR,
    *,
    console: "Console | None" = None,
) -> Never:
    """Print an error message and exit with the specified code.

    Args:
        message: The error message to display.
        code: The exit code to use (defaults to INTERNAL_ERROR).
        console: Optional Rich console for output. If not provided,
            a new stderr console will be created.

    Raises:
        SystemExit: Always raised with the specified exit code.
    """
    if console is None:
        console = get_error_console()

    console.print(f"[red]Error:[/red] {escape(message)}")
    raise SystemExit(code)
