"""Exception types for gemini-query."""

from __future__ import annotations

from typing import Union


class GeminiError(Exception):
    """Base class for every error raised by gemini-query."""


class ConfigurationError(GeminiError):
    pass


class APIError(GeminiError):
    """The API answered with a non-2xx status."""

    def __init__(self, status: int, body: str = ""):
        self.status = status
        self.body = body
        super().__init__(f"Gemini API error ({status}): {body}")


class TransportError(GeminiError):
    """A chunk could not be read from the connection or decoded as text."""


class DecodeError(GeminiError):
    """A complete JSON object could not be parsed into the expected record."""

    def __init__(self, message: str, raw: Union[str, None] = None):
        self.raw = raw
        super().__init__(message)


class FileError(GeminiError):
    pass


class CacheError(GeminiError):
    pass
