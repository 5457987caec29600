"""
Upstream HTTP client for streaming a remote body back to the caller.

Wraps a shared aiohttp ClientSession that lives for the lifetime of the
application. A fetch either yields an open UpstreamResponse whose body is
consumed chunk by chunk, or raises UpstreamUnavailable.
"""

import asyncio
from typing import AsyncIterator, Optional

import aiohttp
import structlog

logger = structlog.get_logger(__name__)

CHUNK_SIZE = 64 * 1024


class UpstreamUnavailable(Exception):
    """The upstream could not be reached or did not answer 200 OK."""

    def __init__(self, url: str, reason: str, status: Optional[int] = None):
        self.url = url
        self.reason = reason
        self.status = status
        super().__init__(f"upstream {url} unavailable: {reason}")


class UpstreamResponse:
    """Open upstream response; the body must be consumed or closed."""

    def __init__(self, response: aiohttp.ClientResponse):
        self._response = response
        self.content_type = response.headers.get("Content-Type", "application/octet-stream")
        # aiohttp decodes compressed bodies, so the upstream length no longer applies
        if response.headers.get("Content-Encoding"):
            self.content_length = None
        else:
            self.content_length = response.content_length

    async def iter_chunks(self) -> AsyncIterator[bytes]:
        """Yield the body and release the connection once done."""
        try:
            async for chunk in self._response.content.iter_chunked(CHUNK_SIZE):
                yield chunk
        finally:
            self.close()

    def close(self) -> None:
        self._response.release()


class UpstreamClient:
    """Client holding a pooled aiohttp session."""

    def __init__(self, timeout: float = 10.0, session: Optional[aiohttp.ClientSession] = None):
        self.timeout = timeout
        self._session = session

    async def start(self) -> None:
        """Create the session on the running loop."""
        if self._session is None:
            self._session = aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=None, connect=self.timeout, sock_read=self.timeout)
            )
            logger.info("upstream_session_opened", timeout=self.timeout)

    async def close(self) -> None:
        if self._session is not None and not self._session.closed:
            await self._session.close()
            logger.info("upstream_session_closed")
        self._session = None

    async def open(self, url: str) -> UpstreamResponse:
        """
        Issue a GET and return the response without reading the body.

        Args:
            url: Absolute URL to fetch

        Returns:
            Open response with status 200

        Raises:
            UpstreamUnavailable: On transport errors, timeouts or non-200 status
        """
        if self._session is None:
            raise RuntimeError("UpstreamClient not started. Call start() during startup.")

        try:
            response = await self._session.get(url, headers={"Accept-Encoding": "identity"})
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            logger.warning("upstream_request_failed", url=url, error=str(e))
            raise UpstreamUnavailable(url, str(e) or type(e).__name__) from e

        if response.status != 200:
            response.release()
            logger.warning("upstream_bad_status", url=url, status=response.status)
            raise UpstreamUnavailable(url, f"status {response.status}", status=response.status)

        logger.debug(
            "upstream_response_opened",
            url=url,
            content_type=response.headers.get("Content-Type"),
            content_length=response.content_length
        )
        return UpstreamResponse(response)
