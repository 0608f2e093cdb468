"""Producer/consumer handoff for streamed responses."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, AsyncIterable, Generic, TypeVar, Union

from gemini_query.config import DEFAULT_STREAM_BUFFER_SIZE
from gemini_query.errors import GeminiError
from gemini_query.streaming.decoder import RecordParser, decode_chunks
from gemini_query.streaming.item import StreamItem

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Marks the end of the stream in the channel.
_END = object()


class _Channel:
    """Bounded queue shared by the producer task and the stream.

    The producer only holds the channel, never the stream, so a stream
    the reader drops can be collected and stop its producer.
    """

    def __init__(self, maxsize: int) -> None:
        self.queue: asyncio.Queue[Any] = asyncio.Queue(maxsize=maxsize)
        self.closed = False

    async def send(self, item: Any) -> bool:
        if self.closed:
            return False
        await self.queue.put(item)
        return True


async def _produce(
    channel: _Channel,
    chunks: AsyncIterable[Union[bytes, str]],
    parse: RecordParser[T],
    encoding: str,
) -> None:
    items = decode_chunks(chunks, parse, encoding=encoding)
    try:
        async for item in items:
            if not await channel.send(item):
                logger.debug("Stream reader is gone; stopping decoder")
                return
    except Exception as exc:
        logger.exception("Stream decoder failed")
        error = GeminiError(f"Stream decoder failed: {exc!r}")
        error.__cause__ = exc
        await channel.send(StreamItem.failure(error))
    finally:
        await items.aclose()
    await channel.send(_END)


class ResponseStream(Generic[T]):
    """A lazy, non-restartable sequence of decoded stream items.

    A background task reads the chunk source, decodes it and pushes items
    into a bounded queue. When the queue is full the task waits, so a slow
    reader holds back the decoder. Closing the stream stops the task and
    closes the chunk source, which releases the connection. A stream that
    is dropped without being closed does the same when it is collected.

    Example:
        >>> async with await model.stream_generate_content("Hi") as stream:
        ...     async for item in stream:
        ...         if item.ok:
        ...             print(item.value.text, end="")
    """

    def __init__(
        self,
        chunks: AsyncIterable[Union[bytes, str]],
        parse: RecordParser[T],
        *,
        buffer_size: int = DEFAULT_STREAM_BUFFER_SIZE,
        encoding: str = "utf-8",
    ) -> None:
        if buffer_size < 1:
            raise ValueError("buffer_size must be at least 1")
        self._channel = _Channel(buffer_size)
        self._finished = False
        self._producer = asyncio.create_task(
            _produce(self._channel, chunks, parse, encoding)
        )

    @property
    def closed(self) -> bool:
        return self._channel.closed

    async def next_item(self) -> Union[StreamItem[T], None]:
        """Wait for the next item; None once the stream has ended."""
        if self._finished or self._channel.closed:
            return None
        item = await self._channel.queue.get()
        if item is _END:
            self._finished = True
            return None
        return item

    def __aiter__(self) -> "ResponseStream[T]":
        return self

    async def __anext__(self) -> StreamItem[T]:
        item = await self.next_item()
        if item is None:
            raise StopAsyncIteration
        return item

    async def collect(self) -> list[StreamItem[T]]:
        return [item async for item in self]

    async def text(self) -> str:
        """Join the text of every record, raising the first error found.

        The stream is closed when this returns or raises.
        """
        parts = []
        try:
            async for item in self:
                parts.append(getattr(item.unwrap(), "text", "") or "")
        finally:
            await self.aclose()
        return "".join(parts)

    async def aclose(self) -> None:
        """Stop reading. Items not yet consumed are dropped."""
        if self._channel.closed:
            return
        self._channel.closed = True
        if not self._producer.done():
            self._producer.cancel()
        await asyncio.gather(self._producer, return_exceptions=True)

    def __del__(self) -> None:
        producer = getattr(self, "_producer", None)
        if producer is None or producer.done() or producer.get_loop().is_closed():
            return
        self._channel.closed = True
        producer.cancel()

    async def __aenter__(self) -> "ResponseStream[T]":
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.aclose()
