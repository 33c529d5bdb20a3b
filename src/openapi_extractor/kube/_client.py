"""Minimal asynchronous Kubernetes REST client.

Only the handful of verbs the extractor needs are implemented: raw GET for
schema documents, HEAD for readiness probes, JSON GET for status checks and
POST for installing objects.
"""

import ssl
from dataclasses import dataclass
from pathlib import Path  # noqa: TC003 - Used in runtime type annotations
from typing import Any, Self, cast, final

import httpx
import orjson
from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from openapi_extractor.exceptions import KubeAPIError

# Maximum characters of a response body kept on KubeAPIError
_ERROR_BODY_LIMIT = 512


@dataclass(frozen=True, slots=True)
class RestConfig:
    """Connection parameters for a Kubernetes API server.

    Attributes:
        host: Base URL, e.g. ``https://127.0.0.1:6443``.
        bearer_token: Token sent as ``Authorization: Bearer``.
        ca_file: CA bundle used to verify the server certificate. When None
            the system trust store is used.
        timeout: Per-request timeout in seconds.
    """

    host: str
    bearer_token: str = ""
    ca_file: Path | None = None
    timeout: float = 30.0

    def ssl_context(self) -> ssl.SSLContext:
        """Build the TLS context for this configuration."""
        if self.ca_file is not None:
            return ssl.create_default_context(cafile=str(self.ca_file))
        return ssl.create_default_context()


def create_http_client(
    config: RestConfig,
    *,
    transport: httpx.AsyncBaseTransport | None = None,
) -> httpx.AsyncClient:
    """Create an httpx client bound to the API server in ``config``.

    Args:
        config: Connection parameters.
        transport: Optional transport override (used by tests).

    Returns:
        A configured AsyncClient. The caller owns and closes it.
    """
    headers = {"Accept": "application/json"}
    if config.bearer_token:
        headers["Authorization"] = f"Bearer {config.bearer_token}"
    if transport is not None:
        return httpx.AsyncClient(
            base_url=config.host,
            headers=headers,
            timeout=config.timeout,
            transport=transport,
        )
    return httpx.AsyncClient(
        base_url=config.host,
        headers=headers,
        timeout=config.timeout,
        verify=config.ssl_context(),
    )


def _raise_for_status(response: httpx.Response) -> None:
    if response.is_success:
        return
    method = response.request.method
    path = response.request.url.path
    body = response.text[:_ERROR_BODY_LIMIT] if method != "HEAD" else ""
    msg = f"{method} {path} failed with status {response.status_code}"
    raise KubeAPIError(
        msg,
        method=method,
        path=path,
        status_code=response.status_code,
        body=body,
    )


@final
class KubeClient:
    """Thin wrapper around an httpx AsyncClient speaking to an API server.

    Non-2xx responses raise KubeAPIError. Transport failures propagate as
    httpx.HTTPError.
    """

    __slots__ = ("_http",)

    def __init__(self, http: httpx.AsyncClient) -> None:
        self._http = http

    @classmethod
    def from_config(
        cls,
        config: RestConfig,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> Self:
        """Create a client for ``config``."""
        return cls(create_http_client(config, transport=transport))

    async def __aenter__(self) -> Self:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        """Close the underlying HTTP client."""
        await self._http.aclose()

    async def get_raw(self, path: str) -> bytes:
        """GET ``path`` and return the raw response body."""
        response = await self._http.get(path)
        _raise_for_status(response)
        return response.content

    async def head(self, path: str) -> None:
        """HEAD ``path``, raising unless the server answers with a 2xx."""
        response = await self._http.head(path)
        _raise_for_status(response)

    async def get_json(self, path: str) -> dict[str, Any]:  # pyright: ignore[reportExplicitAny]
        """GET ``path`` and decode the JSON object it returns."""
        return cast("dict[str, Any]", orjson.loads(await self.get_raw(path)))  # pyright: ignore[reportExplicitAny]

    @retry(
        retry=retry_if_exception_type((httpx.ConnectError, httpx.TimeoutException)),
        stop=stop_after_attempt(5),
        wait=wait_exponential(multiplier=0.5, min=0.5, max=4),
        reraise=True,
    )
    async def create(
        self,
        path: str,
        body: dict[str, Any],  # pyright: ignore[reportExplicitAny]
    ) -> dict[str, Any]:  # pyright: ignore[reportExplicitAny]
        """POST ``body`` to the collection at ``path``.

        Connection failures and timeouts are retried with exponential
        backoff since the control plane may still be settling.
        """
        response = await self._http.post(
            path,
            content=orjson.dumps(body),
            headers={"Content-Type": "application/json"},
        )
        _raise_for_status(response)
        return cast("dict[str, Any]", orjson.loads(response.content))  # pyright: ignore[reportExplicitAny]
