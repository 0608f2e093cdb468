"""HTTP transport abstraction for gemini-query.

Usage:
    from gemini_query.transport import get_default_transport, HTTPTransport

    transport = get_default_transport()
    data = await transport.post(url, json_body, params={"key": api_key})
"""

from __future__ import annotations

from typing import Union

from gemini_query.transport.base import HTTPResponse, HTTPTransport

__all__ = ["HTTPResponse", "HTTPTransport", "get_default_transport"]


def get_default_transport(timeout: Union[float, None] = None) -> HTTPTransport:
    """Get the default (aiohttp) transport."""
    from gemini_query.transport.aiohttp_transport import AioHTTPTransport

    return AioHTTPTransport(timeout=timeout)
