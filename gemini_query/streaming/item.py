"""Tagged success/failure value delivered by a response stream."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Generic, TypeVar, Union

from gemini_query.errors import GeminiError

T = TypeVar("T")


@dataclass(frozen=True)
class StreamItem(Generic[T]):
    """One decoded record or one error, in stream order.

    Exactly one of ``value`` and ``error`` is meaningful: ``error`` is None
    for a success.
    """

    value: Union[T, None] = None
    error: Union[GeminiError, None] = None

    @classmethod
    def success(cls, value: T) -> "StreamItem[T]":
        return cls(value=value)

    @classmethod
    def failure(cls, error: GeminiError) -> "StreamItem[T]":
        return cls(error=error)

    @property
    def ok(self) -> bool:
        return self.error is None

    def unwrap(self) -> T:
        """Return the record, or raise the error this item carries."""
        if self.error is not None:
            raise self.error
        return self.value  # type: ignore[return-value]
