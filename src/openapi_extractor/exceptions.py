"""openapi-extractor exceptions."""

from enum import StrEnum
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from pathlib import Path

    from openapi_extractor.registrar import GroupVersion


class Phase(StrEnum):
    """Phases of an extraction run, in execution order."""

    CONFIGURATION = "configuration"
    CONTROL_PLANE = "control-plane"
    REGISTRATION = "registration"
    APISERVER = "apiserver"
    AVAILABILITY = "availability"
    READINESS = "readiness"
    EXTRACTION = "extraction"
    TEARDOWN = "teardown"


class ExtractorError(Exception):
    """Base exception for openapi-extractor errors."""


# =============================================================================
# Startup Exceptions
# =============================================================================


class StartupError(ExtractorError):
    """Raised when a process or the configuration prevents the run from starting.

    Attributes:
        phase: The phase that failed.
        cause: The underlying exception that caused the failure.
    """

    def __init__(
        self,
        message: str,
        *,
        phase: Phase,
        cause: Exception | None = None,
    ) -> None:
        """Initialize with error message and phase context.

        Args:
            message: Human-readable error message.
            phase: The phase that failed.
            cause: The underlying exception that caused the failure.
        """
        super().__init__(message)
        self.phase: Phase = phase
        self.cause: Exception | None = cause


class ConfigurationError(StartupError):
    """Raised when configuration is missing or contradictory.

    Attributes:
        key: The configuration key at fault, if known.
    """

    def __init__(
        self,
        message: str,
        *,
        key: str | None = None,
        phase: Phase = Phase.CONFIGURATION,
        cause: Exception | None = None,
    ) -> None:
        """Initialize with error message and configuration context."""
        super().__init__(message, phase=phase, cause=cause)
        self.key: str | None = key


class BuildError(StartupError):
    """Raised when the aggregated server binary cannot be built.

    Attributes:
        package: The package that failed to build.
        output: Combined compiler output.
    """

    def __init__(
        self,
        message: str,
        *,
        package: str,
        output: str = "",
        cause: Exception | None = None,
    ) -> None:
        """Initialize with error message and build context."""
        super().__init__(message, phase=Phase.APISERVER, cause=cause)
        self.package: str = package
        self.output: str = output


# =============================================================================
# Process Exceptions
# =============================================================================


class ProcessStartError(StartupError):
    """Raised when a supervised process fails to start or to start listening.

    Attributes:
        process_name: The name of the process that failed to start.
        exit_code: Exit code if the process terminated during startup.
    """

    def __init__(
        self,
        message: str,
        *,
        process_name: str,
        phase: Phase,
        exit_code: int | None = None,
        cause: Exception | None = None,
    ) -> None:
        """Initialize with error message and process context."""
        super().__init__(message, phase=phase, cause=cause)
        self.process_name: str = process_name
        self.exit_code: int | None = exit_code


class ProcessStopError(ExtractorError):
    """Raised when a supervised process cannot be stopped.

    Attributes:
        process_name: The name of the process that failed to stop.
        cause: The underlying exception that caused the failure.
    """

    def __init__(
        self,
        message: str,
        *,
        process_name: str,
        cause: Exception | None = None,
    ) -> None:
        """Initialize with error message and process context."""
        super().__init__(message)
        self.process_name: str = process_name
        self.cause: Exception | None = cause


# =============================================================================
# Readiness Exceptions
# =============================================================================


class ReadinessError(ExtractorError):
    """Base exception for readiness polling.

    Attributes:
        unready: Group-versions still outstanding when polling ended, sorted.
        phase: The phase the poller was gating.
    """

    def __init__(
        self,
        message: str,
        *,
        unready: "list[GroupVersion]",
        phase: Phase = Phase.READINESS,
    ) -> None:
        """Initialize with error message and outstanding group-versions."""
        super().__init__(message)
        self.unready: list[GroupVersion] = unready
        self.phase: Phase = phase


class ReadinessTimeoutError(ReadinessError):
    """Raised when the readiness deadline elapses before all group-versions respond."""


class ReadinessCancelledError(ReadinessError):
    """Raised when readiness polling is interrupted by cancellation."""


class RunCancelledError(ExtractorError):
    """Raised when the run is cancelled between phases.

    Attributes:
        phase: The phase that would have run next.
    """

    def __init__(self, message: str, *, phase: Phase) -> None:
        """Initialize with error message and phase context."""
        super().__init__(message)
        self.phase: Phase = phase


# =============================================================================
# Extraction Exceptions
# =============================================================================


class ExtractionError(ExtractorError):
    """Raised when a schema document cannot be fetched or decoded.

    Attributes:
        path: The discovery path that was requested.
        status_code: HTTP status code, if a response was received.
        cause: The underlying exception that caused the failure.
        phase: The phase the fetch ran in.
    """

    def __init__(
        self,
        message: str,
        *,
        path: str,
        status_code: int | None = None,
        cause: Exception | None = None,
        phase: Phase = Phase.EXTRACTION,
    ) -> None:
        """Initialize with error message and request context."""
        super().__init__(message)
        self.phase: Phase = phase
        self.path: str = path
        self.status_code: int | None = status_code
        self.cause: Exception | None = cause


class PersistenceError(ExtractorError):
    """Raised when a schema document cannot be formatted or written.

    Attributes:
        path: Path to the file or directory that caused the error.
        operation: The operation that failed ("mkdir", "format", "write").
        cause: The underlying exception that caused this error.
        phase: The phase the write ran in.
    """

    def __init__(
        self,
        message: str,
        *,
        path: "Path",
        operation: str,
        cause: Exception | None = None,
        phase: Phase = Phase.EXTRACTION,
    ) -> None:
        """Initialize with error message and I/O context."""
        super().__init__(message)
        self.phase: Phase = phase
        self.path: Path = path
        self.operation: str = operation
        self.cause: Exception | None = cause


# =============================================================================
# Teardown Exceptions
# =============================================================================


class TeardownError(ExtractorError):
    """Non-fatal error recorded while stopping a resource.

    Attributes:
        resource: Name of the resource that failed to stop.
        cause: The underlying exception that caused the failure.
    """

    def __init__(
        self,
        message: str,
        *,
        resource: str,
        cause: Exception | None = None,
    ) -> None:
        """Initialize with error message and resource context."""
        super().__init__(message)
        self.resource: str = resource
        self.cause: Exception | None = cause


# =============================================================================
# Kubernetes API Exceptions
# =============================================================================


class KubeAPIError(ExtractorError):
    """Raised when the control plane answers a request with a non-2xx status.

    Attributes:
        method: HTTP method of the failed request.
        path: Request path.
        status_code: HTTP status code of the response.
        body: Response body, truncated.
    """

    def __init__(
        self,
        message: str,
        *,
        method: str,
        path: str,
        status_code: int,
        body: str = "",
    ) -> None:
        """Initialize with error message and response context."""
        super().__init__(message)
        self.method: str = method
        self.path: str = path
        self.status_code: int = status_code
        self.body: str = body
