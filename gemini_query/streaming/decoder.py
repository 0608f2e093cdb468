"""Incremental decoder for a streamed JSON array of objects.

The streaming endpoint answers with a single JSON array, ``[{...}, {...}]``,
delivered over many HTTP chunks. Chunk boundaries carry no meaning: one may
fall inside a string, an escape sequence or a number. The scanner below
tracks just enough lexical state (string, escape and brace depth) to cut
each top-level object out of the text as soon as its closing brace arrives.
"""

from __future__ import annotations

import asyncio
import codecs
import logging
from dataclasses import dataclass, field
from typing import AsyncIterable, AsyncIterator, Callable, TypeVar, Union

import aiohttp

from gemini_query.errors import DecodeError, TransportError
from gemini_query.streaming.item import StreamItem

logger = logging.getLogger(__name__)

T = TypeVar("T")

RecordParser = Callable[[str], T]

# Errors a record parser may raise for a malformed object.
PARSE_ERRORS = (DecodeError, ValueError, KeyError, TypeError)


@dataclass
class ScanState:
    buffer: list[str] = field(default_factory=list)
    in_object: bool = False
    object_depth: int = 0
    in_string: bool = False
    escaped: bool = False


class JsonArrayScanner:
    """Character-level scanner that splits array text into object texts.

    The outer ``[`` / ``]`` are not validated; outside an object they only
    clear the buffer. Whitespace and commas between objects are dropped.
    """

    def __init__(self) -> None:
        self.state = ScanState()

    @property
    def pending(self) -> bool:
        """True while an object has been opened but not closed."""
        return self.state.in_object

    def reset(self) -> None:
        self.state = ScanState()

    def feed(self, text: str) -> list[str]:
        """Scan ``text`` and return the objects it completes, in order."""
        state = self.state
        buffer = state.buffer
        completed: list[str] = []

        for ch in text:
            if state.escaped:
                # Only the character right after a backslash is escaped.
                state.escaped = False
                if state.in_object:
                    buffer.append(ch)
                continue

            if ch == '"':
                state.in_string = not state.in_string
                if state.in_object:
                    buffer.append(ch)
            elif state.in_string:
                if ch == "\\":
                    state.escaped = True
                if state.in_object:
                    buffer.append(ch)
            elif ch == "{":
                if not state.in_object:
                    state.in_object = True
                    buffer.clear()
                state.object_depth += 1
                buffer.append(ch)
            elif ch == "}":
                if not state.in_object:
                    continue
                state.object_depth -= 1
                buffer.append(ch)
                if state.object_depth == 0:
                    completed.append("".join(buffer))
                    state.in_object = False
                    buffer.clear()
            elif ch in "[]" and not state.in_object:
                buffer.clear()
            elif state.in_object:
                buffer.append(ch)

        return completed


def _parse_object(raw: str, parse: RecordParser[T]) -> StreamItem[T]:
    try:
        record = parse(raw)
    except PARSE_ERRORS as exc:
        logger.warning("Failed to decode streamed object: %s", exc)
        if isinstance(exc, DecodeError):
            if exc.raw is None:
                exc.raw = raw
            return StreamItem.failure(exc)
        error = DecodeError(f"Failed to decode streamed object: {exc}", raw=raw)
        error.__cause__ = exc
        return StreamItem.failure(error)
    except Exception as exc:
        # A broken parser still only costs the one object.
        logger.exception("Record parser raised unexpectedly")
        error = DecodeError(f"Record parser failed: {exc!r}", raw=raw)
        error.__cause__ = exc
        return StreamItem.failure(error)
    logger.debug("Decoded streamed object (%d chars)", len(raw))
    return StreamItem.success(record)


async def decode_chunks(
    chunks: AsyncIterable[Union[bytes, str]],
    parse: RecordParser[T],
    *,
    encoding: str = "utf-8",
) -> AsyncIterator[StreamItem[T]]:
    """Decode a chunked JSON array into a sequence of stream items.

    Args:
        chunks: Raw body chunks, bytes or already-decoded text.
        parse: Maps the text of one complete object to a record.
        encoding: Text encoding of byte chunks.

    Yields:
        A success item for each object that parses, and a failure item for
        each object that does not, for each chunk that is not valid text and
        for a failed read. Reading stops after a failed read. A trailing
        unfinished object is discarded.
    """
    scanner = JsonArrayScanner()
    text_decoder = codecs.getincrementaldecoder(encoding)()
    iterator = chunks.__aiter__()

    try:
        while True:
            try:
                chunk = await iterator.__anext__()
            except StopAsyncIteration:
                break
            except TransportError as exc:
                yield StreamItem.failure(exc)
                return
            except (aiohttp.ClientError, asyncio.TimeoutError, OSError) as exc:
                error = TransportError(f"Failed to read response chunk: {exc!r}")
                error.__cause__ = exc
                yield StreamItem.failure(error)
                return

            if isinstance(chunk, str):
                text = chunk
            else:
                try:
                    text = text_decoder.decode(bytes(chunk))
                except UnicodeDecodeError as exc:
                    text_decoder.reset()
                    logger.warning("Skipping undecodable response chunk: %s", exc)
                    yield StreamItem.failure(
                        TransportError(f"Response chunk is not valid {encoding}: {exc}")
                    )
                    continue

            for raw in scanner.feed(text):
                yield _parse_object(raw, parse)

        try:
            tail = text_decoder.decode(b"", final=True)
        except UnicodeDecodeError as exc:
            yield StreamItem.failure(
                TransportError(f"Response ended inside a {encoding} sequence: {exc}")
            )
        else:
            for raw in scanner.feed(tail):
                yield _parse_object(raw, parse)

        if scanner.pending:
            logger.debug("Response ended inside an object; discarding partial data")
    finally:
        aclose = getattr(iterator, "aclose", None)
        if aclose is not None:
            await aclose()
