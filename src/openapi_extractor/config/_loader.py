# pyright: reportAny=false, reportUnknownVariableType=false, reportUnknownArgumentType=false
"""Configuration source merging."""

import json
import os
from typing import Any

from ._defaults import DEFAULT_CONFIG

ENV_PREFIX = "OPENAPI_EXTRACTOR_"

# Variables under the prefix that are not configuration keys
_RESERVED_ENV_KEYS = frozenset({"DEBUG"})


def deep_merge(
    base: dict[str, Any],  # pyright: ignore[reportExplicitAny]
    override: dict[str, Any],  # pyright: ignore[reportExplicitAny]
) -> dict[str, Any]:  # pyright: ignore[reportExplicitAny]
    """Return a new mapping with `override` layered over `base`.

    Nested mappings merge key by key. Any other override value, lists
    included, replaces the base value outright. Inputs are left untouched.
    """
    result = {key: copy_value(value) for key, value in base.items()}
    for key, value in override.items():
        current = result.get(key)
        if isinstance(current, dict) and isinstance(value, dict):
            result[key] = deep_merge(current, value)
        else:
            result[key] = copy_value(value)
    return result


def copy_value(value: Any) -> Any:  # pyright: ignore[reportExplicitAny]
    """Create a deep copy of a configuration value."""
    if isinstance(value, dict):
        return {k: copy_value(v) for k, v in value.items()}
    if isinstance(value, list | tuple):
        return [copy_value(item) for item in value]
    return value


def _parse_env_value(raw: str) -> Any:  # pyright: ignore[reportExplicitAny]
    """Parse an environment value as JSON, falling back to the raw string.

    Comma-separated values are not split here; list-valued keys accept a
    JSON array (``["a", "b"]``).
    """
    try:
        return json.loads(raw)
    except json.JSONDecodeError:
        return raw


def parse_env_vars(
    prefix: str = ENV_PREFIX,
    environ: dict[str, str] | None = None,
) -> dict[str, Any]:  # pyright: ignore[reportExplicitAny]
    """Parse environment variables into a config dictionary.

    Environment variable naming:
        - Add prefix (OPENAPI_EXTRACTOR_)
        - Convert to uppercase
        - Replace dots with double underscores
        - Example: logging.level -> OPENAPI_EXTRACTOR_LOGGING__LEVEL

    Args:
        prefix: Environment variable prefix.
        environ: Environment mapping (defaults to os.environ).

    Returns:
        Dictionary of parsed config values with nested structure.
    """
    result: dict[str, Any] = {}  # pyright: ignore[reportExplicitAny]
    source = os.environ if environ is None else environ

    for key, value in source.items():
        if not key.startswith(prefix):
            continue
        name = key.removeprefix(prefix)
        if not name or name in _RESERVED_ENV_KEYS:
            continue

        parts = [part.lower() for part in name.split("__")]
        target = result
        for part in parts[:-1]:
            nested = target.setdefault(part, {})
            if not isinstance(nested, dict):
                nested = {}
                target[part] = nested
            target = nested
        target[parts[-1]] = _parse_env_value(value)

    return result


def load_merged(
    *,
    include_env: bool = True,
    cli_overrides: dict[str, Any] | None = None,  # pyright: ignore[reportExplicitAny]
    environ: dict[str, str] | None = None,
) -> dict[str, Any]:  # pyright: ignore[reportExplicitAny]
    """Merge defaults, environment and CLI overrides, lowest precedence first."""
    merged = copy_value(DEFAULT_CONFIG)
    if include_env:
        merged = deep_merge(merged, parse_env_vars(environ=environ))
    if cli_overrides:
        merged = deep_merge(merged, cli_overrides)
    return merged
