"""Client configuration."""

from __future__ import annotations

import os
from dataclasses import dataclass, replace
from typing import Any, Union

from gemini_query.errors import ConfigurationError

DEFAULT_BASE_URL = "https://generativelanguage.googleapis.com"
DEFAULT_API_VERSION = "v1beta"
DEFAULT_STREAM_BUFFER_SIZE = 16


@dataclass
class ClientConfig:
    api_key: str
    base_url: str = DEFAULT_BASE_URL
    api_version: str = DEFAULT_API_VERSION
    # Capacity of the channel between the stream decoder and its reader.
    stream_buffer_size: int = DEFAULT_STREAM_BUFFER_SIZE
    timeout: Union[float, None] = None

    @property
    def api_url(self) -> str:
        return f"{self.base_url.rstrip('/')}/{self.api_version}"

    @classmethod
    def from_env(cls, **overrides: Any) -> "ClientConfig":
        """Build a config from GOOGLE_API_KEY / GOOGLE_BASE_URL.

        Keyword arguments that are not None take precedence over the
        environment.

        Raises:
            ConfigurationError: If no API key is given or set in the environment.
        """
        values = {k: v for k, v in overrides.items() if v is not None}
        values.setdefault("api_key", os.environ.get("GOOGLE_API_KEY"))
        if not values["api_key"]:
            raise ConfigurationError(
                "No API key provided. Pass api_key or set GOOGLE_API_KEY."
            )
        base_url = os.environ.get("GOOGLE_BASE_URL")
        if base_url:
            values.setdefault("base_url", base_url)
        return cls(**values)

    def with_overrides(self, **overrides: Any) -> "ClientConfig":
        return replace(self, **{k: v for k, v in overrides.items() if v is not None})


def resolve_config(
    api_key: Union[str, None] = None, config: Union[ClientConfig, None] = None
) -> ClientConfig:
    """Return `config` (with `api_key` applied) or a config from the environment."""
    if config is not None:
        return config.with_overrides(api_key=api_key)
    return ClientConfig.from_env(api_key=api_key)
