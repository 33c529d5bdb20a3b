"""Configuration models.

This module provides the Pydantic models for an extraction run:
- LoggingConfig: log level, format and destination
- ApiServerConfig: how to obtain and run the aggregated API server
- ControlPlaneConfig: where the control plane binaries live
- ExtractorConfig: the root configuration object
"""

from enum import StrEnum
from pathlib import Path
from typing import Annotated, Any, ClassVar, Self

from pydantic import (
    BaseModel,
    BeforeValidator,
    ConfigDict,
    Field,
    ValidationError,
    model_validator,
)

from openapi_extractor.exceptions import ConfigurationError
from openapi_extractor.utils import parse_duration

# Seconds, also accepted as "30s", "1m30s" or "PT30S"
Seconds = Annotated[float, BeforeValidator(parse_duration)]


class LogLevel(StrEnum):
    """Log level threshold values.

    Values are ordered from most verbose (debug) to least verbose (error).
    """

    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"


class LogFormat(StrEnum):
    """Log output format values."""

    JSON = "json"
    TEXT = "text"


class LoggingConfig(BaseModel):
    """Logging configuration section.

    Attributes:
        level: Log level threshold.
        format: Log output format.
        file: Path to log file (empty logs to stderr).
    """

    model_config: ClassVar[ConfigDict] = ConfigDict(frozen=True, extra="ignore")

    level: LogLevel = LogLevel.INFO
    format: LogFormat = LogFormat.TEXT
    file: str = ""


class ApiServerConfig(BaseModel):
    """Aggregated API server configuration section.

    Exactly one of ``command`` and ``package`` must be set.

    Attributes:
        command: Prebuilt command line for the API server.
        package: Go package to build the API server from.
        build_opts: Build options; each one is a Go module mode.
        attach_output: Whether to stream server output to the console.
        startup_timeout: Seconds to wait for the server to listen.
        shutdown_timeout: Seconds to wait for graceful shutdown.
    """

    model_config: ClassVar[ConfigDict] = ConfigDict(frozen=True, extra="ignore")

    command: tuple[str, ...] = ()
    package: str = ""
    build_opts: tuple[str, ...] = ()
    attach_output: bool = False
    startup_timeout: Seconds = Field(default=60.0, gt=0)
    shutdown_timeout: Seconds = Field(default=10.0, gt=0)

    @model_validator(mode="after")
    def _check_source(self) -> Self:
        if self.command and self.package:
            msg = "apiserver command and apiserver package are mutually exclusive"
            raise ValueError(msg)
        if not self.command and not self.package:
            msg = "either an apiserver command or an apiserver package is required"
            raise ValueError(msg)
        return self


class ControlPlaneConfig(BaseModel):
    """Control plane configuration section.

    Attributes:
        assets_dir: Directory holding the etcd and kube-apiserver binaries.
            Falls back to KUBEBUILDER_ASSETS, then to PATH.
        attach_output: Whether to stream control plane output to the console.
        startup_timeout: Seconds to wait for each control plane process.
        shutdown_timeout: Seconds to wait for graceful shutdown.
    """

    model_config: ClassVar[ConfigDict] = ConfigDict(frozen=True, extra="ignore")

    assets_dir: str = ""
    attach_output: bool = False
    startup_timeout: Seconds = Field(default=60.0, gt=0)
    shutdown_timeout: Seconds = Field(default=10.0, gt=0)


class ExtractorConfig(BaseModel):
    """Root configuration for one extraction run.

    Attributes:
        apiservices: Directories containing APIService manifests.
        output: Directory the schema documents are written to.
        openapi_timeout: Seconds to wait for every group-version's v3 document.
        apiservice_timeout: Seconds to wait for APIServices to become Available.
        poll_interval: Seconds between readiness rounds.
        error_if_path_missing: Fail when an apiservices path does not exist.
        logging: Logging configuration.
        apiserver: Aggregated API server configuration.
        control_plane: Control plane configuration.
    """

    model_config: ClassVar[ConfigDict] = ConfigDict(frozen=True, extra="ignore")

    apiservices: tuple[Path, ...] = Field(min_length=1)
    output: Path = Path()
    openapi_timeout: Seconds = Field(default=30.0, gt=0)
    apiservice_timeout: Seconds = Field(default=300.0, gt=0)
    poll_interval: Seconds = Field(default=1.0, gt=0)
    error_if_path_missing: bool = True
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    apiserver: ApiServerConfig
    control_plane: ControlPlaneConfig = Field(default_factory=ControlPlaneConfig)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Self:  # pyright: ignore[reportExplicitAny]
        """Build a configuration from a plain dictionary.

        Args:
            data: Configuration values.

        Returns:
            The validated configuration.

        Raises:
            ConfigurationError: If validation fails. ``key`` names the first
                offending field as a dotted path.
        """
        try:
            return cls.model_validate(data)
        except ValidationError as e:
            first = e.errors()[0]
            key = ".".join(str(part) for part in first["loc"])
            msg = f"Invalid configuration: {key or 'config'}: {first['msg']}"
            raise ConfigurationError(msg, key=key or None, cause=e) from e

    @classmethod
    def load(
        cls,
        *,
        include_env: bool = True,
        cli_overrides: dict[str, Any] | None = None,  # pyright: ignore[reportExplicitAny]
    ) -> Self:
        """Load configuration from defaults, environment and CLI overrides.

        Args:
            include_env: Whether to read OPENAPI_EXTRACTOR_* variables.
            cli_overrides: Values from the command line (highest precedence).

        Returns:
            The merged and validated configuration.

        Raises:
            ConfigurationError: If the merged values fail validation.
        """
        from ._loader import load_merged  # noqa: PLC0415

        merged = load_merged(include_env=include_env, cli_overrides=cli_overrides)
        return cls.from_dict(merged)
