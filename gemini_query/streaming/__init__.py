"""Streaming response decoding for gemini-query."""

from gemini_query.streaming.decoder import JsonArrayScanner, ScanState, decode_chunks
from gemini_query.streaming.item import StreamItem
from gemini_query.streaming.stream import ResponseStream

__all__ = [
    "JsonArrayScanner",
    "ResponseStream",
    "ScanState",
    "StreamItem",
    "decode_chunks",
]
