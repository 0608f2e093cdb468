"""Multi-turn chat sessions."""

from __future__ import annotations

from typing import AsyncIterator, Union, TYPE_CHECKING

from gemini_query.errors import GeminiError
from gemini_query.streaming import StreamItem
from gemini_query.types import Content, Part, Request, Response

if TYPE_CHECKING:
    from gemini_query.client import GenerativeModel


class ChatSession:
    """Keeps the conversation history and sends it with every message."""

    def __init__(
        self,
        model: "GenerativeModel",
        history: Union[list[Content], None] = None,
        system_instruction: Union[str, Content, None] = None,
    ) -> None:
        self.model = model
        self._history: list[Content] = list(history or [])
        if isinstance(system_instruction, str):
            system_instruction = Content.from_text(system_instruction, role=None)
        self._system_instruction = system_instruction

    def with_system_instruction(self, instruction: str) -> "ChatSession":
        self._system_instruction = Content.from_text(instruction, role=None)
        return self

    @property
    def history(self) -> list[Content]:
        return list(self._history)

    @property
    def system_instruction(self) -> Union[Content, None]:
        return self._system_instruction

    def clear_history(self) -> None:
        """Forget the conversation; the system instruction is kept."""
        self._history.clear()

    def _request(self, user_message: Content) -> Request:
        return Request(
            contents=[*self._history, user_message],
            system_instruction=self._system_instruction,
        )

    async def send_message(self, message: str) -> str:
        """Send a message and return the model's reply text.

        Raises:
            GeminiError: If the response has no text candidate.
        """
        user_message = Content.from_text(message)
        response = await self.model.generate_content(self._request(user_message))

        if response.candidates:
            reply = response.candidates[0].content
            if reply.text:
                self._history.append(user_message)
                self._history.append(Content(parts=reply.parts, role=reply.role or "model"))
                return reply.text

        raise GeminiError("No valid response from the model")

    async def send_message_stream(self, message: str) -> AsyncIterator[StreamItem[Response]]:
        """Send a message and stream the reply.

        The user turn is recorded immediately. The model turn is recorded
        from the text of the successful items once the stream ends.
        """
        user_message = Content.from_text(message)
        request = self._request(user_message)
        self._history.append(user_message)

        texts: list[str] = []
        async with await self.model.stream_generate_content(request) as stream:
            async for item in stream:
                if item.ok and item.value is not None:
                    texts.append(item.value.text)
                yield item

        if texts:
            self._history.append(Content(parts=[Part.from_text("".join(texts))], role="model"))
