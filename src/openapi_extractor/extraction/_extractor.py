"""Fetch OpenAPI documents from the control plane."""

from collections.abc import Callable, Iterable
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, final

import anyio
import httpx

from openapi_extractor.exceptions import (
    ExtractionError,
    KubeAPIError,
    Phase,
    RunCancelledError,
)
from openapi_extractor.utils import JSONSyntaxError, validate_json

from ._persist import write_json_file
from ._poller import openapi_v3_path

if TYPE_CHECKING:
    from structlog.typing import FilteringBoundLogger

    from openapi_extractor.kube import KubeClient
    from openapi_extractor.registrar import GroupVersion

V2_PATH = "/openapi/v2"
V2_FILENAME = "swagger.json"
V3_DIRECTORY = "v3"

type Writer = Callable[[Path, str, bytes], Path]


def v3_filename(group_version: "GroupVersion") -> str:
    """Return the file name of the v3 document for ``group_version``."""
    return f"apis__{group_version.group}__{group_version.version}_openapi.json"


@dataclass(frozen=True, slots=True)
class ExtractionResult:
    """One fetched document and where it is to be written."""

    directory: Path
    filename: str
    raw: bytes

    @property
    def path(self) -> Path:
        return self.directory / self.filename


@final
class SpecExtractor:
    """Fetches the v2 aggregate and per group-version v3 documents.

    Documents are fetched and written one at a time. The first failure
    aborts the rest; files already written are kept and listed in
    ``written``.
    """

    __slots__ = ("_cancel_event", "_client", "_logger", "_writer", "output", "written")

    def __init__(
        self,
        client: "KubeClient",
        output: Path,
        *,
        cancel_event: anyio.Event | None = None,
        logger: "FilteringBoundLogger | None" = None,
        writer: Writer = write_json_file,
    ) -> None:
        self._client = client
        self.output = output
        self._cancel_event = cancel_event
        self._logger = logger
        self._writer = writer
        self.written: list[Path] = []

    async def fetch(self, path: str) -> bytes:
        """GET ``path`` and return its body, which must be valid JSON.

        Raises:
            ExtractionError: On transport errors, non-2xx responses or an
                invalid JSON body.
        """
        try:
            raw = await self._client.get_raw(path)
        except KubeAPIError as e:
            msg = f"Fetching {path} failed with status {e.status_code}"
            raise ExtractionError(msg, path=path, status_code=e.status_code, cause=e) from e
        except httpx.HTTPError as e:
            msg = f"Fetching {path} failed: {e}"
            raise ExtractionError(msg, path=path, cause=e) from e

        try:
            validate_json(raw)
        except JSONSyntaxError as e:
            msg = f"Response from {path} is not valid JSON: {e}"
            raise ExtractionError(msg, path=path, cause=e) from e
        return raw

    def _check_cancelled(self) -> None:
        if self._cancel_event is not None and self._cancel_event.is_set():
            msg = "Run cancelled during extraction"
            raise RunCancelledError(msg, phase=Phase.EXTRACTION)

    async def _extract(self, path: str, directory: Path, filename: str) -> Path:
        self._check_cancelled()
        result = ExtractionResult(directory, filename, await self.fetch(path))
        written = self._writer(result.directory, result.filename, result.raw)
        self.written.append(written)
        if self._logger is not None:
            self._logger.info(
                "openapi_written", source=path, file=str(written), size=len(result.raw)
            )
        return written

    async def extract_v2(self) -> Path:
        """Fetch the aggregate v2 document into ``swagger.json``."""
        return await self._extract(V2_PATH, self.output, V2_FILENAME)

    async def extract_v3(self, group_versions: Iterable["GroupVersion"]) -> list[Path]:
        """Fetch one v3 document per group-version, in the order given."""
        directory = self.output / V3_DIRECTORY
        return [
            await self._extract(openapi_v3_path(gv), directory, v3_filename(gv))
            for gv in group_versions
        ]

    async def extract(self, group_versions: Iterable["GroupVersion"]) -> list[Path]:
        """Fetch v2, then every v3 document.

        Raises:
            ExtractionError: If a document cannot be fetched.
            PersistenceError: If a document cannot be written.
            RunCancelledError: If the run is cancelled between documents.
        """
        v2 = await self.extract_v2()
        return [v2, *await self.extract_v3(group_versions)]
