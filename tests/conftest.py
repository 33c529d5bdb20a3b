"""Shared test fixtures for openapi-extractor tests."""

import io
from collections.abc import Callable
from pathlib import Path
from typing import TYPE_CHECKING

import pytest
from rich.console import Console

from openapi_extractor.utils import create_logger

if TYPE_CHECKING:
    from structlog.typing import FilteringBoundLogger

APISERVICE_TEMPLATE = """\
apiVersion: apiregistration.k8s.io/v1
kind: APIService
metadata:
  name: {version}.{group}
spec:
  group: {group}
  version: {version}
  groupPriorityMinimum: 2000
  versionPriority: 100
  insecureSkipTLSVerify: true
"""

WriteAPIService = Callable[..., Path]


@pytest.fixture
def anyio_backend() -> str:
    return "asyncio"


@pytest.fixture
def console() -> Console:
    """Console that records output instead of printing it."""
    return Console(file=io.StringIO(), width=200, force_terminal=False, record=True)


@pytest.fixture
def log_stream() -> io.StringIO:
    return io.StringIO()


@pytest.fixture
def logger(log_stream: io.StringIO) -> "FilteringBoundLogger":
    """JSON logger writing to an in-memory stream."""
    return create_logger(level="debug", log_format="json", stream=log_stream)


def apiservice_yaml(group: str, version: str) -> str:
    return APISERVICE_TEMPLATE.format(group=group, version=version)


@pytest.fixture
def write_apiservice() -> WriteAPIService:
    """Return a function writing one or more APIService documents to a file."""

    def _write(path: Path, *group_versions: tuple[str, str]) -> Path:
        path.parent.mkdir(parents=True, exist_ok=True)
        documents = [apiservice_yaml(group, version) for group, version in group_versions]
        _ = path.write_text("---\n".join(documents))
        return path

    return _write
