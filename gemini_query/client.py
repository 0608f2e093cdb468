"""Client for the Gemini generative model endpoints."""

from __future__ import annotations

import logging
from dataclasses import replace
from typing import Any, Union, TYPE_CHECKING

from gemini_query.config import ClientConfig, resolve_config
from gemini_query.errors import DecodeError
from gemini_query.streaming import ResponseStream
from gemini_query.transport import HTTPTransport, get_default_transport
from gemini_query.types import (
    Content,
    ContentEmbedding,
    GenerationConfig,
    ModelInfo,
    Request,
    Response,
    SafetySetting,
    TaskType,
    TokenCountResponse,
    Tool,
    ToolConfig,
)

if TYPE_CHECKING:
    from gemini_query.chat import ChatSession

logger = logging.getLogger(__name__)

DEFAULT_MODEL = "gemini-1.5-flash"


def _model_path(name: str) -> str:
    return name if name.startswith("models/") else f"models/{name}"


class GenerativeModel:
    """A Gemini model bound to an API key and default request settings.

    Example:
        >>> async with GenerativeModel("gemini-1.5-flash") as model:
        ...     response = await model.generate_content("Explain how AI works")
        ...     print(response.text)
    """

    def __init__(
        self,
        model: str = DEFAULT_MODEL,
        *,
        api_key: Union[str, None] = None,
        config: Union[ClientConfig, None] = None,
        transport: Union[HTTPTransport, None] = None,
        generation_config: Union[GenerationConfig, None] = None,
        safety_settings: Union[list[SafetySetting], None] = None,
        tools: Union[list[Tool], None] = None,
        tool_config: Union[ToolConfig, None] = None,
        system_instruction: Union[str, Content, None] = None,
    ):
        """Initialize the model.

        Args:
            model: Model identifier, with or without the "models/" prefix.
            api_key: API key. Falls back to GOOGLE_API_KEY env var.
            config: Full client configuration; `api_key` overrides its key.
            transport: HTTP transport. Defaults to an aiohttp transport owned
                by this model.
            generation_config: Default generation config for every request.
            safety_settings: Default safety settings for every request.
            tools: Default tools for every request.
            tool_config: Default tool config for every request.
            system_instruction: Default system instruction for every request.

        Raises:
            ConfigurationError: If no API key can be found.
        """
        self.config = resolve_config(api_key, config)
        self.model_name = _model_path(model)
        self._owns_transport = transport is None
        self.transport = transport or get_default_transport(self.config.timeout)
        self.generation_config = generation_config
        self.safety_settings = safety_settings
        self.tools = tools
        self.tool_config = tool_config
        if isinstance(system_instruction, str):
            system_instruction = Content.from_text(system_instruction, role=None)
        self.system_instruction = system_instruction

    @property
    def _params(self) -> dict[str, str]:
        return {"key": self.config.api_key}

    def _url(self, method: str, model: Union[str, None] = None) -> str:
        return f"{self.config.api_url}/{model or self.model_name}:{method}"

    def _build_request(self, request: Union[Request, str]) -> Request:
        """Apply the model's defaults to fields the request leaves unset."""
        if isinstance(request, str):
            request = Request.from_prompt(request)
        return replace(
            request,
            system_instruction=request.system_instruction or self.system_instruction,
            generation_config=request.generation_config or self.generation_config,
            safety_settings=request.safety_settings or self.safety_settings,
            tools=request.tools or self.tools,
            tool_config=request.tool_config or self.tool_config,
        )

    async def generate_content(self, request: Union[Request, str]) -> Response:
        """Generate a complete response.

        Args:
            request: A Request, or a plain text prompt.

        Raises:
            APIError: On a non-2xx response.
            DecodeError: If the body is not a valid response.
        """
        body = self._build_request(request).to_dict()
        data = await self.transport.post(
            self._url("generateContent"), body, params=self._params
        )
        try:
            return Response.from_dict(data)
        except (KeyError, TypeError, AttributeError) as exc:
            raise DecodeError(f"unexpected response shape: {exc}", raw=str(data)) from exc

    async def send_message(self, prompt: str) -> Response:
        return await self.generate_content(Request.from_prompt(prompt))

    async def stream_generate_content(
        self, request: Union[Request, str]
    ) -> ResponseStream[Response]:
        """Start a streamed generation.

        The endpoint answers with a JSON array of responses. Each element is
        delivered as a StreamItem as soon as it is complete; decode and
        transport failures arrive as failure items in the same order.

        Raises:
            APIError: If the request is rejected before streaming starts.
        """
        body = self._build_request(request).to_dict()
        logger.debug("Starting stream for %s", self.model_name)
        chunks = await self.transport.stream(
            self._url("streamGenerateContent"), body, params=self._params
        )
        return ResponseStream(
            chunks, Response.from_json, buffer_size=self.config.stream_buffer_size
        )

    async def count_tokens(self, request: Union[Request, str]) -> TokenCountResponse:
        request = self._build_request(request)
        body = {
            "generateContentRequest": {"model": self.model_name, **request.to_dict()}
        }
        data = await self.transport.post(self._url("countTokens"), body, params=self._params)
        return TokenCountResponse.from_dict(data)

    def _embed_body(
        self,
        content: Union[str, Content],
        task_type: Union[TaskType, None],
        title: Union[str, None],
    ) -> dict[str, Any]:
        if isinstance(content, str):
            content = Content.from_text(content, role=None)
        body: dict[str, Any] = {"model": self.model_name, "content": content.to_dict()}
        if task_type is not None:
            body["taskType"] = TaskType(task_type).value
        if title is not None:
            body["title"] = title
        return body

    async def embed_content(
        self,
        content: Union[str, Content],
        *,
        task_type: Union[TaskType, None] = None,
        title: Union[str, None] = None,
    ) -> list[float]:
        """Embed one text or content and return the vector."""
        body = self._embed_body(content, task_type, title)
        data = await self.transport.post(self._url("embedContent"), body, params=self._params)
        return ContentEmbedding.from_dict(data["embedding"]).values

    async def batch_embed_contents(
        self,
        contents: list[Union[str, Content]],
        *,
        task_type: Union[TaskType, None] = None,
    ) -> list[list[float]]:
        body = {"requests": [self._embed_body(c, task_type, None) for c in contents]}
        data = await self.transport.post(
            self._url("batchEmbedContents"), body, params=self._params
        )
        return [ContentEmbedding.from_dict(e).values for e in data.get("embeddings", [])]

    async def list_models(self) -> list[ModelInfo]:
        """List every model available to the API key, following pagination."""
        models: list[ModelInfo] = []
        params = dict(self._params)
        while True:
            data = await self.transport.get(f"{self.config.api_url}/models", params=params)
            models.extend(ModelInfo.from_dict(m) for m in data.get("models", []))
            token = data.get("nextPageToken")
            if not token:
                return models
            params["pageToken"] = token

    async def get_model(self, name: Union[str, None] = None) -> ModelInfo:
        path = _model_path(name) if name else self.model_name
        data = await self.transport.get(f"{self.config.api_url}/{path}", params=self._params)
        return ModelInfo.from_dict(data)

    def start_chat(self, history: Union[list[Content], None] = None) -> "ChatSession":
        from gemini_query.chat import ChatSession

        return ChatSession(self, history=history)

    async def close(self) -> None:
        if self._owns_transport:
            await self.transport.close()

    async def __aenter__(self) -> "GenerativeModel":
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.close()
