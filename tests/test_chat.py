"""Tests for ChatSession."""

import json

import pytest

from gemini_query import GenerativeModel
from gemini_query.errors import GeminiError


def reply(text):
    return {"candidates": [{"content": {"parts": [{"text": text}], "role": "model"}}]}


@pytest.fixture
def chat(transport, config):
    model = GenerativeModel(config=config, transport=transport)
    return model.start_chat().with_system_instruction("You are terse.")


class TestChatSession:
    """Tests for chat history handling."""

    @pytest.mark.asyncio
    async def test_send_message_records_both_turns(self, chat, transport):
        transport.queue(reply("Hi!"))
        transport.queue(reply("Fine."))

        assert await chat.send_message("Hello") == "Hi!"
        assert await chat.send_message("How are you?") == "Fine."

        second = transport.calls[1].json
        assert [c["role"] for c in second["contents"]] == ["user", "model", "user"]
        assert second["systemInstruction"] == {"parts": [{"text": "You are terse."}]}
        assert len(chat.history) == 4

    @pytest.mark.asyncio
    async def test_no_text_raises(self, chat, transport):
        transport.queue({"candidates": []})
        with pytest.raises(GeminiError, match="No valid response"):
            await chat.send_message("Hello")
        assert chat.history == []

    @pytest.mark.asyncio
    async def test_stream_records_assembled_reply(self, chat, transport):
        transport.stream_chunks = [json.dumps([reply("Once "), reply("upon")]).encode()]

        texts = [item.value.text async for item in chat.send_message_stream("Story?")]

        assert texts == ["Once ", "upon"]
        assert [c.role for c in chat.history] == ["user", "model"]
        assert chat.history[1].text == "Once upon"

    @pytest.mark.asyncio
    async def test_clear_history_keeps_system_instruction(self, chat, transport):
        transport.queue(reply("Hi!"))
        await chat.send_message("Hello")
        chat.clear_history()
        assert chat.history == []
        assert chat.system_instruction.text == "You are terse."
