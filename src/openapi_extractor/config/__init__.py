"""Configuration for extraction runs.

Configuration is merged from built-in defaults, OPENAPI_EXTRACTOR_*
environment variables and command-line overrides, in increasing order of
precedence, and validated into frozen Pydantic models.
"""

from ._defaults import DEFAULT_CONFIG
from ._loader import ENV_PREFIX, deep_merge, load_merged, parse_env_vars
from ._models import (
    ApiServerConfig,
    ControlPlaneConfig,
    ExtractorConfig,
    LogFormat,
    LoggingConfig,
    LogLevel,
)

__all__ = [
    "DEFAULT_CONFIG",
    "ENV_PREFIX",
    "ApiServerConfig",
    "ControlPlaneConfig",
    "ExtractorConfig",
    "LogFormat",
    "LogLevel",
    "LoggingConfig",
    "deep_merge",
    "load_merged",
    "parse_env_vars",
]
