"""Abstract HTTP transport interface for gemini-query."""

from __future__ import annotations

import json as json_module
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, AsyncIterator, Mapping, Union

from gemini_query.errors import APIError, DecodeError


@dataclass
class HTTPResponse:
    status: int
    headers: Mapping[str, str] = field(default_factory=dict)
    body: bytes = b""

    @property
    def ok(self) -> bool:
        return self.status < 400

    @property
    def text(self) -> str:
        return self.body.decode("utf-8", errors="replace")

    def header(self, name: str) -> Union[str, None]:
        """Case-insensitive header lookup."""
        lowered = name.lower()
        for key, value in self.headers.items():
            if key.lower() == lowered:
                return value
        return None

    def json(self) -> Any:
        if not self.body:
            return {}
        try:
            return json_module.loads(self.body)
        except ValueError as exc:
            raise DecodeError(f"Invalid JSON in response: {exc}", raw=self.text) from exc

    def raise_for_status(self) -> None:
        if not self.ok:
            raise APIError(self.status, self.text)


class HTTPTransport(ABC):
    """Abstract HTTP transport used by the model, file and cache clients.

    Implementations only need `request` and `stream`; the verb helpers
    check the status and decode the JSON body.
    """

    @abstractmethod
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
        """Send a request and return the full response, whatever its status.

        Args:
            method: HTTP method.
            url: The URL to call.
            params: Query parameters.
            json: JSON body to send.
            data: Raw body to send instead of `json`.
            headers: Optional headers to include.

        Raises:
            TransportError: If the connection fails.
        """
        ...

    @abstractmethod
    async def stream(
        self,
        url: str,
        json: Any,
        *,
        params: Union[dict[str, str], None] = None,
        headers: Union[dict[str, str], None] = None,
    ) -> AsyncIterator[bytes]:
        """POST a request and return an iterator over the raw body chunks.

        The status is checked before this returns; closing the returned
        iterator releases the connection.

        Raises:
            APIError: If the response status is not 2xx.
            TransportError: If the connection fails.
        """
        ...

    async def post(
        self,
        url: str,
        json: Any = None,
        *,
        params: Union[dict[str, str], None] = None,
        headers: Union[dict[str, str], None] = None,
    ) -> Any:
        """Make a POST request and return the JSON response."""
        resp = await self.request("POST", url, params=params, json=json, headers=headers)
        resp.raise_for_status()
        return resp.json()

    async def get(
        self,
        url: str,
        *,
        params: Union[dict[str, str], None] = None,
        headers: Union[dict[str, str], None] = None,
    ) -> Any:
        """Make a GET request and return the JSON response."""
        resp = await self.request("GET", url, params=params, headers=headers)
        resp.raise_for_status()
        return resp.json()

    async def patch(
        self,
        url: str,
        json: Any = None,
        *,
        params: Union[dict[str, str], None] = None,
        headers: Union[dict[str, str], None] = None,
    ) -> Any:
        """Make a PATCH request and return the JSON response."""
        resp = await self.request("PATCH", url, params=params, json=json, headers=headers)
        resp.raise_for_status()
        return resp.json()

    async def delete(
        self,
        url: str,
        *,
        params: Union[dict[str, str], None] = None,
        headers: Union[dict[str, str], None] = None,
    ) -> None:
        """Make a DELETE request."""
        resp = await self.request("DELETE", url, params=params, headers=headers)
        resp.raise_for_status()

    async def close(self) -> None:
        """Clean up resources. Override if needed."""
        pass

    async def __aenter__(self) -> "HTTPTransport":
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.close()
