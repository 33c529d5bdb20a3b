"""Run loggers built on structlog.

Loggers are assembled with ``structlog.wrap_logger`` and never touch the
global structlog configuration.
"""

import logging
import sys
from collections.abc import Iterator
from contextlib import contextmanager
from os import getenv
from pathlib import Path
from typing import TYPE_CHECKING, Literal, TextIO, cast

import structlog

if TYPE_CHECKING:
    from structlog.typing import FilteringBoundLogger, Processor

LogFormatType = Literal["json", "text"]

DEBUG_ENV_VAR = "OPENAPI_EXTRACTOR_DEBUG"
COMPONENT = "openapi-extractor"


def _log_level_from_string(level: str, *, respect_env: bool = False) -> int:
    """Map a level name to its ``logging`` constant, falling back to INFO.

    With ``respect_env``, a non-empty OPENAPI_EXTRACTOR_DEBUG forces DEBUG.
    """
    if respect_env and getenv(DEBUG_ENV_VAR):
        return logging.DEBUG
    return logging.getLevelNamesMapping().get(level.upper(), logging.INFO)


def _render_chain(log_format: LogFormatType) -> list["Processor"]:
    chain: list[Processor] = [
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
    ]
    if log_format == "text":
        chain.append(structlog.dev.ConsoleRenderer(colors=False))
    else:
        chain += [structlog.processors.dict_tracebacks, structlog.processors.JSONRenderer()]
    return chain


def _create_logger(
    *,
    stream: TextIO | None = None,
    log_level: int = logging.INFO,
    log_format: LogFormatType = "json",
) -> "FilteringBoundLogger":  # noqa: UP037
    """Build a standalone structlog logger writing to ``stream`` (stderr by default).

    Args:
        stream: Destination of rendered events.
        log_level: Events below this level are dropped.
        log_format: "json" for one object per line, "text" for key=value.

    Returns:
        The filtering bound logger.
    """
    bound = structlog.wrap_logger(
        structlog.PrintLoggerFactory(file=stream or sys.stderr)(),
        processors=_render_chain(log_format),
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
        context_class=dict,
    )
    return cast("FilteringBoundLogger", bound)


def create_logger(
    *,
    level: str = "info",
    log_format: LogFormatType = "text",
    stream: TextIO | None = None,
) -> "FilteringBoundLogger":  # noqa: UP037
    """Create the logger for one extraction run.

    OPENAPI_EXTRACTOR_DEBUG, when set, lowers the threshold to DEBUG whatever
    ``level`` says. Every event carries ``component="openapi-extractor"``.
    """
    logger = _create_logger(
        stream=stream,
        log_level=_log_level_from_string(level, respect_env=True),
        log_format=log_format,
    )
    return logger.bind(component=COMPONENT)


@contextmanager
def open_logger(
    *,
    level: str = "info",
    log_format: LogFormatType = "text",
    log_file: str = "",
) -> Iterator["FilteringBoundLogger"]:
    """Yield a run logger, appending to ``log_file`` when one is given.

    The log file is created along with its parent directories and is closed
    when the context exits. Without a file, events go to stderr.
    """
    if not log_file:
        yield create_logger(level=level, log_format=log_format)
        return

    log_path = Path(log_file)
    log_path.parent.mkdir(parents=True, exist_ok=True)
    with log_path.open("a") as handle:
        yield create_logger(level=level, log_format=log_format, stream=handle)
