"""Shared fixtures: a recording fake transport and a test config."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any, AsyncIterator, Union

import pytest

from gemini_query.config import ClientConfig
from gemini_query.transport import HTTPResponse, HTTPTransport


@dataclass
class Call:
    method: str
    url: str
    params: dict[str, str] = field(default_factory=dict)
    json: Any = None
    data: Union[bytes, None] = None
    headers: dict[str, str] = field(default_factory=dict)


class FakeTransport(HTTPTransport):
    """Records every request and answers from a queue of canned responses."""

    def __init__(self) -> None:
        self.calls: list[Call] = []
        self.responses: list[HTTPResponse] = []
        self.stream_chunks: list[bytes] = []
        self.closed = False

    def queue(
        self,
        body: Any = None,
        status: int = 200,
        headers: Union[dict[str, str], None] = None,
    ) -> None:
        if isinstance(body, (bytes, str)):
            payload = body.encode() if isinstance(body, str) else body
        else:
            payload = json.dumps(body).encode() if body is not None else b""
        self.responses.append(HTTPResponse(status=status, headers=headers or {}, body=payload))

    async def request(self, method, url, *, params=None, json=None, data=None, headers=None):
        self.calls.append(Call(method, url, dict(params or {}), json, data, dict(headers or {})))
        return self.responses.pop(0)

    async def stream(self, url, json, *, params=None, headers=None) -> AsyncIterator[bytes]:
        self.calls.append(Call("POST", url, dict(params or {}), json, None, dict(headers or {})))
        chunks = list(self.stream_chunks)

        async def body() -> AsyncIterator[bytes]:
            for chunk in chunks:
                yield chunk

        return body()

    async def close(self) -> None:
        self.closed = True


@pytest.fixture
def transport() -> FakeTransport:
    return FakeTransport()


@pytest.fixture
def config() -> ClientConfig:
    return ClientConfig(api_key="test-key", base_url="https://example.test")
