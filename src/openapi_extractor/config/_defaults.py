"""Default configuration values.

Note: DEFAULT_CONFIG is intentionally a plain dict for type compatibility
with deep_merge, which copies it before merging.
"""

from typing import Any

DEFAULT_CONFIG: dict[str, Any] = {  # pyright: ignore[reportExplicitAny]
    "output": ".",
    "openapi_timeout": 30.0,
    "apiservice_timeout": 300.0,
    "poll_interval": 1.0,
    "error_if_path_missing": True,
    "logging": {
        "level": "info",
        "format": "text",
        "file": "",
    },
    "apiserver": {
        "attach_output": False,
        "startup_timeout": 60.0,
        "shutdown_timeout": 10.0,
    },
    "control_plane": {
        "assets_dir": "",
        "attach_output": False,
        "startup_timeout": 60.0,
        "shutdown_timeout": 10.0,
    },
}
