"""Cached content management."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Union

from gemini_query.config import ClientConfig, resolve_config
from gemini_query.errors import CacheError
from gemini_query.transport import HTTPResponse, HTTPTransport, get_default_transport
from gemini_query.types import Content, Part

logger = logging.getLogger(__name__)

DEFAULT_TTL = "3600s"

TTL = Union[str, int, float]


def format_ttl(ttl: TTL) -> str:
    """Seconds as a number become "<n>s"; strings are sent as-is."""
    if isinstance(ttl, str):
        return ttl
    return f"{ttl:g}s"


@dataclass
class CacheInfo:
    name: str
    model: Union[str, None] = None
    display_name: Union[str, None] = None
    contents: list[Content] = field(default_factory=list)
    system_instruction: Union[Content, None] = None
    ttl: Union[str, None] = None
    create_time: Union[str, None] = None
    update_time: Union[str, None] = None
    expire_time: Union[str, None] = None
    usage_metadata: Union[dict[str, Any], None] = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "CacheInfo":
        system_instruction = data.get("systemInstruction")
        return cls(
            name=data["name"],
            model=data.get("model"),
            display_name=data.get("displayName"),
            contents=[Content.from_dict(c) for c in data.get("contents") or []],
            system_instruction=(
                Content.from_dict(system_instruction) if system_instruction else None
            ),
            ttl=data.get("ttl"),
            create_time=data.get("createTime"),
            update_time=data.get("updateTime"),
            expire_time=data.get("expireTime"),
            usage_metadata=data.get("usageMetadata"),
        )


class CacheManager:
    """Create, list, update and delete cached content."""

    def __init__(
        self,
        api_key: Union[str, None] = None,
        *,
        config: Union[ClientConfig, None] = None,
        transport: Union[HTTPTransport, None] = None,
    ) -> None:
        self.config = resolve_config(api_key, config)
        self._owns_transport = transport is None
        self.transport = transport or get_default_transport(self.config.timeout)

    @property
    def _params(self) -> dict[str, str]:
        return {"key": self.config.api_key}

    def _cache_url(self, name: str) -> str:
        if not name.startswith("cachedContents/"):
            name = f"cachedContents/{name}"
        return f"{self.config.api_url}/{name}"

    async def _call(self, method: str, url: str, json: Any = None) -> HTTPResponse:
        resp = await self.transport.request(method, url, params=self._params, json=json)
        if not resp.ok:
            raise CacheError(f"Request failed with status {resp.status}: {resp.text}")
        return resp

    async def create_cache(
        self,
        model: str,
        contents: list[Content],
        system_instruction: Union[Content, None] = None,
        ttl: TTL = DEFAULT_TTL,
    ) -> CacheInfo:
        body: dict[str, Any] = {
            "model": model if model.startswith("models/") else f"models/{model}",
            "contents": [c.to_dict() for c in contents],
            "ttl": format_ttl(ttl),
        }
        if system_instruction is not None:
            body["systemInstruction"] = system_instruction.to_dict()
        resp = await self._call("POST", f"{self.config.api_url}/cachedContents", body)
        cache_info = CacheInfo.from_dict(resp.json())
        logger.info("Created cache %s", cache_info.name)
        return cache_info

    async def create_cache_from_file(
        self,
        model: str,
        path: Union[str, Path],
        system_instruction: Union[Content, None] = None,
        ttl: TTL = DEFAULT_TTL,
    ) -> CacheInfo:
        """Cache the contents of a local file, sent inline."""
        try:
            part = Part.from_path(path)
        except OSError as exc:
            raise CacheError(f"Failed to read file {path}: {exc}") from exc
        contents = [Content(parts=[part], role="user")]
        return await self.create_cache(model, contents, system_instruction, ttl)

    async def list_caches(self) -> list[CacheInfo]:
        caches: list[CacheInfo] = []
        url = f"{self.config.api_url}/cachedContents"
        page_token = None
        while True:
            params = dict(self._params)
            if page_token:
                params["pageToken"] = page_token
            resp = await self.transport.request("GET", url, params=params)
            if not resp.ok:
                raise CacheError(f"Request failed with status {resp.status}: {resp.text}")
            data = resp.json()
            caches.extend(CacheInfo.from_dict(c) for c in data.get("cachedContents", []))
            page_token = data.get("nextPageToken")
            if not page_token:
                return caches

    async def get_cache(self, name: str) -> CacheInfo:
        resp = await self._call("GET", self._cache_url(name))
        return CacheInfo.from_dict(resp.json())

    async def update_cache_ttl(self, name: str, ttl: TTL) -> CacheInfo:
        resp = await self._call("PATCH", self._cache_url(name), {"ttl": format_ttl(ttl)})
        return CacheInfo.from_dict(resp.json())

    async def delete_cache(self, name: str) -> None:
        await self._call("DELETE", self._cache_url(name))
        logger.info("Deleted cache %s", name)

    async def close(self) -> None:
        if self._owns_transport:
            await self.transport.close()

    async def __aenter__(self) -> "CacheManager":
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.close()
