"""
HTTP fetch collaborator for the relay pipeline.

Wraps a shared ``httpx.AsyncClient``:
- ``head(url)`` returns status and headers
- ``stream(url)`` yields a streaming GET whose body is read lazily

Transport failures surface as NetworkError with the httpx exception
chained as ``__cause__``.
"""

import logging
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import AsyncIterator, Mapping, Optional

import httpx

from ..core.errors import NetworkError

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = httpx.Timeout(30.0, connect=10.0)
DEFAULT_CHUNK_SIZE = 64 * 1024
USER_AGENT = "telegram-relay-bot"


@dataclass(frozen=True)
class FetchResponse:
    """Status line and headers of a HEAD response."""

    status: int
    headers: Mapping[str, str]

    @property
    def ok(self) -> bool:
        return 200 <= self.status < 300


@dataclass
class StreamResponse:
    """A streaming GET response. ``chunks`` can be consumed only once."""

    status: int
    headers: Mapping[str, str]
    chunks: Optional[AsyncIterator[bytes]]

    @property
    def ok(self) -> bool:
        return 200 <= self.status < 300


class HttpFetcher:
    """Thin async wrapper over httpx used for HEAD probes and streamed GETs."""

    def __init__(
        self,
        client: Optional[httpx.AsyncClient] = None,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
    ):
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(
            timeout=DEFAULT_TIMEOUT,
            follow_redirects=True,
            headers={"User-Agent": USER_AGENT},
        )
        self.chunk_size = chunk_size

    async def head(self, url: str) -> FetchResponse:
        """Issue a HEAD request."""
        try:
            response = await self._client.head(url)
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            logger.warning("HEAD %s failed: %s", url, e)
            raise NetworkError(f"HEAD {url} failed: {e}") from e
        logger.debug("HEAD %s -> %s", url, response.status_code)
        return FetchResponse(status=response.status_code, headers=response.headers)

    @asynccontextmanager
    async def stream(self, url: str) -> AsyncIterator[StreamResponse]:
        """Open a streaming GET. The connection is released on exit."""
        try:
            request = self._client.build_request("GET", url)
            response = await self._client.send(request, stream=True)
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            logger.warning("GET %s failed: %s", url, e)
            raise NetworkError(f"GET {url} failed: {e}") from e

        try:
            logger.debug("GET %s -> %s", url, response.status_code)
            yield StreamResponse(
                status=response.status_code,
                headers=response.headers,
                chunks=self._iter_chunks(response, url),
            )
        finally:
            await response.aclose()

    async def _iter_chunks(
        self, response: httpx.Response, url: str
    ) -> AsyncIterator[bytes]:
        try:
            async for chunk in response.aiter_bytes(self.chunk_size):
                if chunk:
                    yield chunk
        except httpx.HTTPError as e:
            logger.warning("Reading body of %s failed: %s", url, e)
            raise NetworkError(f"reading {url} failed: {e}") from e

    async def aclose(self) -> None:
        """Close the underlying client if this fetcher created it."""
        if self._owns_client:
            await self._client.aclose()
