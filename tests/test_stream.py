"""Tests for ResponseStream: ordering, backpressure and cancellation."""

import asyncio
import gc
import json

import pytest

from gemini_query.errors import DecodeError
from gemini_query.streaming import ResponseStream, StreamItem
from gemini_query.types import Response


async def chunks_of(*chunks):
    for chunk in chunks:
        yield chunk


async def settle(rounds: int = 20) -> None:
    """Let background tasks run until they block."""
    for _ in range(rounds):
        await asyncio.sleep(0)


def response_json(text: str) -> str:
    return json.dumps({"candidates": [{"content": {"parts": [{"text": text}], "role": "model"}}]})


class TestStreamItem:
    def test_success(self):
        item = StreamItem.success(5)
        assert item.ok
        assert item.unwrap() == 5

    def test_failure_unwrap_raises(self):
        error = DecodeError("bad")
        item = StreamItem.failure(error)
        assert not item.ok
        with pytest.raises(DecodeError):
            item.unwrap()


class TestResponseStream:
    """Tests for the producer/consumer handoff."""

    @pytest.mark.asyncio
    async def test_items_in_order_then_end(self):
        """Items arrive in completion order, then iteration stops."""
        stream = ResponseStream(
            chunks_of('[{"n": 1}, {"n"', ': 2}, {"n": 3}]'), json.loads
        )
        items = await stream.collect()
        assert [item.value["n"] for item in items] == [1, 2, 3]
        assert await stream.next_item() is None

    @pytest.mark.asyncio
    async def test_errors_interleave_in_order(self):
        """Failures arrive in place, between the successes around them."""
        stream = ResponseStream(
            chunks_of("[", response_json("a"), ",", '{"oops": 1}', ",", response_json("b"), "]"),
            Response.from_json,
        )
        items = await stream.collect()
        assert [item.ok for item in items] == [True, False, True]
        assert [item.value.text for item in items if item.ok] == ["a", "b"]

    @pytest.mark.asyncio
    async def test_text_joins_records(self):
        stream = ResponseStream(
            chunks_of("[", response_json("Hello"), ",", response_json(", world"), "]"),
            Response.from_json,
        )
        assert await stream.text() == "Hello, world"

    @pytest.mark.asyncio
    async def test_text_raises_first_error(self):
        stream = ResponseStream(chunks_of('[{"oops": 1}]'), Response.from_json)
        with pytest.raises(DecodeError):
            await stream.text()

    @pytest.mark.asyncio
    async def test_backpressure_suspends_producer(self):
        """With nobody reading, the producer stops after filling the queue."""
        pulled = 0

        async def endless():
            nonlocal pulled
            yield "["
            while True:
                pulled += 1
                yield '{"n": %d},' % pulled

        stream = ResponseStream(endless(), json.loads, buffer_size=2)
        await settle()
        first = pulled
        await settle()

        # Two items queued plus one waiting on put.
        assert first == 3
        assert pulled == first
        assert not stream._producer.done()

        item = await stream.next_item()
        assert item.value == {"n": 1}
        await settle()
        assert pulled == first + 1

        await stream.aclose()

    @pytest.mark.asyncio
    async def test_close_while_blocked_on_send(self):
        """Closing stops the producer and closes the chunk source."""
        closed = asyncio.Event()

        async def source():
            try:
                yield "["
                n = 0
                while True:
                    n += 1
                    yield '{"n": %d},' % n
            finally:
                closed.set()

        stream = ResponseStream(source(), json.loads, buffer_size=1)
        await settle()
        await stream.aclose()

        assert closed.is_set()
        assert stream._producer.done()
        assert stream.closed
        assert await stream.next_item() is None

    @pytest.mark.asyncio
    async def test_close_while_waiting_for_transport(self):
        """A producer waiting for the next chunk is stopped by close."""
        released = asyncio.Event()
        never = asyncio.Event()

        async def source():
            try:
                yield '[{"n": 1},'
                await never.wait()
                yield '{"n": 2}]'
            finally:
                released.set()

        async with ResponseStream(source(), json.loads) as stream:
            item = await stream.next_item()
            assert item.value == {"n": 1}
            await settle()

        assert released.is_set()
        assert stream._producer.done()

    @pytest.mark.asyncio
    async def test_close_is_idempotent(self):
        stream = ResponseStream(chunks_of('[{"n": 1}]'), json.loads)
        await stream.aclose()
        await stream.aclose()
        assert stream.closed

    @pytest.mark.asyncio
    async def test_unexpected_parser_failure_is_isolated(self):
        """An exception outside the parse contract costs only its object."""

        def parse(text):
            data = json.loads(text)
            if data["n"] == 1:
                raise RuntimeError("parser bug")
            return data

        stream = ResponseStream(chunks_of('[{"n": 1}, {"n": 2}]'), parse)
        items = await stream.collect()
        assert [item.ok for item in items] == [False, True]
        assert isinstance(items[0].error, DecodeError)
        assert "parser bug" in str(items[0].error)
        assert items[0].error.raw == '{"n": 1}'
        assert items[1].value == {"n": 2}

    @pytest.mark.asyncio
    async def test_badly_shaped_response_does_not_end_stream(self):
        good = response_json("ok")
        stream = ResponseStream(
            chunks_of(f'[{good}, {{"candidates": [{{"content": "hi"}}]}}, {good}]'),
            Response.from_json,
        )
        items = await stream.collect()
        assert [item.ok for item in items] == [True, False, True]
        assert isinstance(items[1].error, DecodeError)

    @pytest.mark.asyncio
    async def test_dropped_stream_stops_producer(self):
        """Leaving iteration without closing still releases the source."""
        released = asyncio.Event()

        async def source():
            try:
                yield "["
                n = 0
                while True:
                    n += 1
                    yield '{"n": %d},' % n
            finally:
                released.set()

        stream = ResponseStream(source(), json.loads, buffer_size=1)
        async for item in stream:
            break
        assert item.value == {"n": 1}
        producer = stream._producer

        del stream
        gc.collect()
        await settle()

        assert released.is_set()
        assert producer.done()

    @pytest.mark.asyncio
    async def test_text_closes_stream_on_error(self):
        released = asyncio.Event()

        async def source():
            try:
                yield '[{"oops": 1},'
                while True:
                    yield response_json("more") + ","
            finally:
                released.set()

        stream = ResponseStream(source(), Response.from_json, buffer_size=1)
        with pytest.raises(DecodeError):
            await stream.text()
        assert stream.closed
        assert released.is_set()
        assert stream._producer.done()

    @pytest.mark.asyncio
    async def test_text_closes_stream_on_success(self):
        stream = ResponseStream(chunks_of("[", response_json("done"), "]"), Response.from_json)
        assert await stream.text() == "done"
        assert stream.closed

    @pytest.mark.asyncio
    async def test_rejects_zero_buffer(self):
        with pytest.raises(ValueError):
            ResponseStream(chunks_of(), json.loads, buffer_size=0)
