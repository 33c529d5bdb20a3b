"""Readiness polling, schema extraction and persistence."""

from ._extractor import (
    V2_FILENAME,
    V2_PATH,
    V3_DIRECTORY,
    ExtractionResult,
    SpecExtractor,
    v3_filename,
)
from ._persist import FILE_MODE, write_json_file
from ._poller import (
    DEFAULT_POLL_INTERVAL,
    Probe,
    ReadinessPoller,
    openapi_v3_path,
    openapi_v3_probe,
)

__all__ = [
    "DEFAULT_POLL_INTERVAL",
    "FILE_MODE",
    "V2_FILENAME",
    "V2_PATH",
    "V3_DIRECTORY",
    "ExtractionResult",
    "Probe",
    "ReadinessPoller",
    "SpecExtractor",
    "openapi_v3_path",
    "openapi_v3_probe",
    "v3_filename",
    "write_json_file",
]
