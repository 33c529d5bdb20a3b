"""Time helpers."""

import re
from contextlib import suppress

# Go-style duration: one or more <number><unit> terms, e.g. "1m30s", "1.5h"
_DURATION_TERM = re.compile(r"(\d+(?:\.\d*)?|\.\d+)(ns|us|µs|μs|ms|s|m|h)")

_UNIT_SECONDS = {
    "ns": 1e-9,
    "us": 1e-6,
    "µs": 1e-6,
    "μs": 1e-6,
    "ms": 1e-3,
    "s": 1.0,
    "m": 60.0,
    "h": 3600.0,
}


def get_timestamp() -> str:
    """Get current timestamp in ISO 8601 format."""
    import pendulum  # noqa: PLC0415

    return pendulum.now("UTC").to_iso8601_string()


def _parse_go_duration(text: str) -> float | None:
    body = text.removeprefix("-").removeprefix("+")
    if not body:
        return None
    seconds = 0.0
    pos = 0
    while pos < len(body):
        match = _DURATION_TERM.match(body, pos)
        if match is None:
            return None
        seconds += float(match.group(1)) * _UNIT_SECONDS[match.group(2)]
        pos = match.end()
    return -seconds if text.startswith("-") else seconds


def parse_duration(value: str | float) -> float:
    """Convert a duration to seconds.

    Accepts a number of seconds (``30``, ``"2.5"``), a Go-style duration
    (``"30s"``, ``"1m30s"``, ``"500ms"``) or an ISO 8601 duration
    (``"PT30S"``).

    Raises:
        ValueError: If ``value`` is not a recognizable duration.
    """
    if isinstance(value, int | float):
        return float(value)

    text = value.strip()
    with suppress(ValueError):
        return float(text)

    seconds = _parse_go_duration(text)
    if seconds is not None:
        return seconds

    if text.upper().startswith("P"):
        import pendulum  # noqa: PLC0415

        try:
            parsed = pendulum.parse(text)
        except ValueError as e:
            msg = f"Invalid duration '{value}'"
            raise ValueError(msg) from e
        if isinstance(parsed, pendulum.Duration):
            return parsed.total_seconds()

    msg = f"Invalid duration '{value}', expected seconds or a value like '30s' or '1m30s'"
    raise ValueError(msg)
