"""HTTP transport using aiohttp."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, AsyncIterator, Union

import aiohttp

from gemini_query.errors import APIError, TransportError
from gemini_query.transport.base import HTTPResponse, HTTPTransport

logger = logging.getLogger(__name__)


class AioHTTPTransport(HTTPTransport):
    """HTTP transport using aiohttp.

    The session is created on first use and shared by every request made
    through this transport.
    """

    def __init__(self, timeout: Union[float, None] = None) -> None:
        self._session: aiohttp.ClientSession | None = None
        self._timeout = timeout

    async def _get_session(self) -> aiohttp.ClientSession:
        """Get or create the aiohttp session."""
        if self._session is None or self._session.closed:
            timeout = aiohttp.ClientTimeout(total=self._timeout)
            self._session = aiohttp.ClientSession(timeout=timeout)
        return self._session

    async def request(
        self,
        method: str,
        url: str,
        *,
        params: Union[dict[str, str], None] = None,
        json: Any = None,
        data: Union[bytes, None] = None,
        headers: Union[dict[str, str], None] = None,
    ) -> HTTPResponse:
        session = await self._get_session()
        logger.debug("%s %s", method, url)
        try:
            async with session.request(
                method, url, params=params, json=json, data=data, headers=headers
            ) as resp:
                body = await resp.read()
                return HTTPResponse(status=resp.status, headers=dict(resp.headers), body=body)
        except (aiohttp.ClientError, asyncio.TimeoutError) as exc:
            raise TransportError(f"{method} {url} failed: {exc!r}") from exc

    async def stream(
        self,
        url: str,
        json: Any,
        *,
        params: Union[dict[str, str], None] = None,
        headers: Union[dict[str, str], None] = None,
    ) -> AsyncIterator[bytes]:
        """Make a POST request and return an iterator over the body bytes."""
        session = await self._get_session()
        logger.debug("POST %s (streaming)", url)
        try:
            resp = await session.post(url, params=params, json=json, headers=headers)
        except (aiohttp.ClientError, asyncio.TimeoutError) as exc:
            raise TransportError(f"POST {url} failed: {exc!r}") from exc

        if resp.status >= 400:
            try:
                error_text = await resp.text()
            finally:
                resp.release()
            raise APIError(resp.status, error_text)

        return self._iter_body(resp)

    async def _iter_body(self, resp: aiohttp.ClientResponse) -> AsyncIterator[bytes]:
        try:
            async for chunk in resp.content.iter_any():
                yield chunk
        except (aiohttp.ClientError, asyncio.TimeoutError) as exc:
            raise TransportError(f"Failed to read response chunk: {exc!r}") from exc
        finally:
            resp.release()

    async def close(self) -> None:
        """Close the aiohttp session."""
        if self._session and not self._session.closed:
            await self._session.close()
            self._session = None
