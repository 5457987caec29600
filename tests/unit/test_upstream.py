"""
Unit tests for the upstream HTTP client.

The aiohttp session is replaced with mocks; no network access is needed.
"""

from unittest.mock import AsyncMock, MagicMock

import aiohttp
import pytest

from api.src.services.upstream import UpstreamClient, UpstreamResponse, UpstreamUnavailable


def make_response(status=200, headers=None, content_length=None, chunks=()):
    response = MagicMock()
    response.status = status
    response.headers = headers or {}
    response.content_length = content_length

    async def iter_chunked(size):
        for chunk in chunks:
            yield chunk

    response.content.iter_chunked = iter_chunked
    return response


def make_client(response=None, error=None) -> UpstreamClient:
    session = MagicMock()
    session.get = AsyncMock(return_value=response, side_effect=error)
    return UpstreamClient(timeout=1.0, session=session)


class TestOpen:

    @pytest.mark.asyncio
    async def test_success_returns_open_response(self):
        response = make_response(
            headers={"Content-Type": "text/html; charset=utf-8"},
            content_length=11,
        )
        upstream = await make_client(response).open("http://upstream.test/")

        assert isinstance(upstream, UpstreamResponse)
        assert upstream.content_type == "text/html; charset=utf-8"
        assert upstream.content_length == 11
        response.release.assert_not_called()

    @pytest.mark.asyncio
    async def test_transport_error_is_unavailable(self):
        client = make_client(error=aiohttp.ClientConnectionError("refused"))

        with pytest.raises(UpstreamUnavailable) as exc_info:
            await client.open("http://upstream.test/")

        assert exc_info.value.status is None
        assert "refused" in exc_info.value.reason

    @pytest.mark.asyncio
    async def test_non_200_is_unavailable_and_released(self):
        response = make_response(status=404)

        with pytest.raises(UpstreamUnavailable) as exc_info:
            await make_client(response).open("http://upstream.test/")

        assert exc_info.value.status == 404
        response.release.assert_called_once()

    @pytest.mark.asyncio
    async def test_not_started(self):
        with pytest.raises(RuntimeError):
            await UpstreamClient().open("http://upstream.test/")


class TestUpstreamResponse:

    @pytest.mark.asyncio
    async def test_iter_chunks_releases_connection(self):
        response = make_response(chunks=[b"hello ", b"world"])
        upstream = UpstreamResponse(response)

        body = b"".join([chunk async for chunk in upstream.iter_chunks()])

        assert body == b"hello world"
        response.release.assert_called_once()

    def test_defaults_content_type(self):
        assert UpstreamResponse(make_response()).content_type == "application/octet-stream"

    def test_encoded_body_has_no_length(self):
        response = make_response(headers={"Content-Encoding": "gzip"}, content_length=5)
        assert UpstreamResponse(response).content_length is None


@pytest.mark.asyncio
async def test_start_and_close_session():
    client = UpstreamClient(timeout=1.0)
    await client.start()
    session = client._session

    assert isinstance(session, aiohttp.ClientSession)
    await client.close()
    assert session.closed
