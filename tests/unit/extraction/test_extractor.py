"""Unit tests for fetching OpenAPI documents."""

from pathlib import Path

import anyio
import httpx
import pytest

from openapi_extractor.exceptions import ExtractionError, PersistenceError, RunCancelledError
from openapi_extractor.extraction import (
    V2_FILENAME,
    V2_PATH,
    V3_DIRECTORY,
    ExtractionResult,
    SpecExtractor,
    openapi_v3_path,
    v3_filename,
)
from openapi_extractor.kube import KubeClient, RestConfig
from openapi_extractor.registrar import GroupVersion

ALPHA = GroupVersion("wardle.example.com", "v1alpha1")
BETA = GroupVersion("wardle.example.com", "v1beta1")

DOCUMENTS = {
    V2_PATH: b'{"swagger":"2.0"}',
    openapi_v3_path(ALPHA): b'{"openapi":"3.0.0","info":{"version":"v1alpha1"}}',
    openapi_v3_path(BETA): b'{"openapi":"3.0.0","info":{"version":"v1beta1"}}',
}


def _client(documents: dict[str, bytes]) -> KubeClient:
    def handler(request: httpx.Request) -> httpx.Response:
        body = documents.get(request.url.path)
        if body is None:
            return httpx.Response(404, text="not found")
        return httpx.Response(200, content=body)

    return KubeClient.from_config(
        RestConfig(host="https://cp.test"), transport=httpx.MockTransport(handler)
    )


class TestV3Filename:
    def test_encodes_group_and_version(self) -> None:
        assert v3_filename(ALPHA) == "apis__wardle.example.com__v1alpha1_openapi.json"


class TestExtractionResult:
    def test_path_joins_directory_and_filename(self, tmp_path: Path) -> None:
        result = ExtractionResult(tmp_path, "swagger.json", b"{}")

        assert result.path == tmp_path / "swagger.json"


class TestSpecExtractor:
    @pytest.mark.anyio
    async def test_writes_v2_then_v3_documents(self, tmp_path: Path) -> None:
        async with _client(DOCUMENTS) as client:
            extractor = SpecExtractor(client, tmp_path)
            written = await extractor.extract([ALPHA, BETA])

        assert written == [
            tmp_path / V2_FILENAME,
            tmp_path / V3_DIRECTORY / v3_filename(ALPHA),
            tmp_path / V3_DIRECTORY / v3_filename(BETA),
        ]
        assert extractor.written == written
        assert (tmp_path / V2_FILENAME).read_bytes() == b'{\n\t"swagger": "2.0"\n}'
        assert b'"version": "v1beta1"' in written[2].read_bytes()

    @pytest.mark.anyio
    async def test_missing_document_keeps_earlier_files(self, tmp_path: Path) -> None:
        missing = GroupVersion("flunder.example.com", "v1")

        async with _client(DOCUMENTS) as client:
            extractor = SpecExtractor(client, tmp_path)
            with pytest.raises(ExtractionError) as exc_info:
                _ = await extractor.extract([ALPHA, missing, BETA])

        assert exc_info.value.status_code == 404
        assert exc_info.value.path == openapi_v3_path(missing)
        assert extractor.written == [
            tmp_path / V2_FILENAME,
            tmp_path / V3_DIRECTORY / v3_filename(ALPHA),
        ]
        assert not (tmp_path / V3_DIRECTORY / v3_filename(BETA)).exists()

    @pytest.mark.anyio
    async def test_accepts_numbers_outside_float_range(self, tmp_path: Path) -> None:
        async with _client({V2_PATH: b'{"maximum":1e400}'}) as client:
            extractor = SpecExtractor(client, tmp_path)
            path = await extractor.extract_v2()

        assert path.read_bytes() == b'{\n\t"maximum": 1e400\n}'

    @pytest.mark.anyio
    async def test_invalid_json_is_an_extraction_error(self, tmp_path: Path) -> None:
        async with _client({V2_PATH: b"<html>"}) as client:
            extractor = SpecExtractor(client, tmp_path)
            with pytest.raises(ExtractionError, match="not valid JSON") as exc_info:
                _ = await extractor.extract_v2()

        assert exc_info.value.status_code is None
        assert extractor.written == []

    @pytest.mark.anyio
    async def test_transport_error_is_an_extraction_error(self, tmp_path: Path) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ReadTimeout("timed out", request=request)

        client = KubeClient.from_config(
            RestConfig(host="https://cp.test"), transport=httpx.MockTransport(handler)
        )
        async with client:
            with pytest.raises(ExtractionError) as exc_info:
                _ = await SpecExtractor(client, tmp_path).extract_v2()

        assert isinstance(exc_info.value.cause, httpx.ReadTimeout)

    @pytest.mark.anyio
    async def test_writer_failure_propagates(self, tmp_path: Path) -> None:
        def failing_writer(directory: Path, filename: str, raw: bytes) -> Path:
            msg = "disk full"
            raise PersistenceError(msg, path=directory / filename, operation="write")

        async with _client(DOCUMENTS) as client:
            extractor = SpecExtractor(client, tmp_path, writer=failing_writer)
            with pytest.raises(PersistenceError, match="disk full"):
                _ = await extractor.extract([ALPHA])

        assert extractor.written == []

    @pytest.mark.anyio
    async def test_stops_between_documents_when_cancelled(self, tmp_path: Path) -> None:
        event = anyio.Event()

        def cancelling_writer(directory: Path, filename: str, raw: bytes) -> Path:
            event.set()
            path = directory / filename
            directory.mkdir(parents=True, exist_ok=True)
            _ = path.write_bytes(raw)
            return path

        async with _client(DOCUMENTS) as client:
            extractor = SpecExtractor(
                client, tmp_path, cancel_event=event, writer=cancelling_writer
            )
            with pytest.raises(RunCancelledError):
                _ = await extractor.extract([ALPHA, BETA])

        assert extractor.written == [tmp_path / V2_FILENAME]
