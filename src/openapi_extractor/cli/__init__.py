"""The openapi-extractor command-line interface."""

from ._app import build_overrides, create_app, main, run_extraction, split_list
from ._shared import ExitCode, describe_error, exit_code_for

__all__ = [
    "ExitCode",
    "build_overrides",
    "create_app",
    "describe_error",
    "exit_code_for",
    "main",
    "run_extraction",
    "split_list",
]
