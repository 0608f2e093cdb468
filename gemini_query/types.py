"""Request and response types for the Gemini API.

Every type serializes to the API's camelCase JSON with ``to_dict()`` and is
read back with ``from_dict()``, which accepts camelCase or snake_case keys.
Fields left as None are omitted from the request body.
"""

from __future__ import annotations

import base64
import json
import mimetypes
import re
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Literal, Union

from gemini_query.errors import DecodeError

Role = Literal["user", "model", "function", "system"]

_CAMEL_BOUNDARY = re.compile(r"(?<!^)(?=[A-Z])")


def _snake(name: str) -> str:
    return _CAMEL_BOUNDARY.sub("_", name).lower()


def _pick(data: dict[str, Any], key: str, default: Any = None) -> Any:
    """Read a camelCase key, falling back to its snake_case spelling."""
    if not isinstance(data, dict):
        raise TypeError(f"expected an object, got {type(data).__name__}")
    if key in data:
        return data[key]
    return data.get(_snake(key), default)


def _compact(data: dict[str, Any]) -> dict[str, Any]:
    return {k: v for k, v in data.items() if v is not None}


# =============================================================================
# Parts and Content
# =============================================================================


@dataclass
class Blob:
    mime_type: str
    data: str  # base64

    def to_dict(self) -> dict[str, Any]:
        return {"mimeType": self.mime_type, "data": self.data}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Blob":
        return cls(mime_type=_pick(data, "mimeType", ""), data=_pick(data, "data", ""))


@dataclass
class FileData:
    mime_type: str
    file_uri: str

    def to_dict(self) -> dict[str, Any]:
        return {"mimeType": self.mime_type, "fileUri": self.file_uri}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "FileData":
        return cls(mime_type=_pick(data, "mimeType", ""), file_uri=_pick(data, "fileUri", ""))


@dataclass
class FunctionCall:
    name: str
    args: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {"name": self.name, "args": self.args}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "FunctionCall":
        return cls(name=data["name"], args=data.get("args") or {})


@dataclass
class FunctionResponse:
    name: str
    response: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {"name": self.name, "response": self.response}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "FunctionResponse":
        return cls(name=data["name"], response=data.get("response") or {})


@dataclass
class Part:
    """One piece of a message. Set exactly one field."""

    text: Union[str, None] = None
    inline_data: Union[Blob, None] = None
    file_data: Union[FileData, None] = None
    function_call: Union[FunctionCall, None] = None
    function_response: Union[FunctionResponse, None] = None
    executable_code: Union[dict[str, Any], None] = None
    code_execution_result: Union[dict[str, Any], None] = None

    @classmethod
    def from_text(cls, text: str) -> "Part":
        return cls(text=text)

    @classmethod
    def from_bytes(cls, data: bytes, mime_type: str) -> "Part":
        return cls(inline_data=Blob(mime_type=mime_type, data=base64.b64encode(data).decode()))

    @classmethod
    def from_path(cls, path: Union[str, Path], mime_type: Union[str, None] = None) -> "Part":
        """Read a local file into an inline-data part."""
        path = Path(path)
        if mime_type is None:
            mime_type = mimetypes.guess_type(path.name)[0] or "application/octet-stream"
        return cls.from_bytes(path.read_bytes(), mime_type)

    @classmethod
    def from_uri(cls, file_uri: str, mime_type: str) -> "Part":
        return cls(file_data=FileData(mime_type=mime_type, file_uri=file_uri))

    def to_dict(self) -> dict[str, Any]:
        return _compact(
            {
                "text": self.text,
                "inlineData": self.inline_data.to_dict() if self.inline_data else None,
                "fileData": self.file_data.to_dict() if self.file_data else None,
                "functionCall": self.function_call.to_dict() if self.function_call else None,
                "functionResponse": (
                    self.function_response.to_dict() if self.function_response else None
                ),
                "executableCode": self.executable_code,
                "codeExecutionResult": self.code_execution_result,
            }
        )

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Part":
        if not isinstance(data, dict):
            raise TypeError(f"part must be an object, got {type(data).__name__}")
        inline = _pick(data, "inlineData")
        file_data = _pick(data, "fileData")
        call = _pick(data, "functionCall")
        response = _pick(data, "functionResponse")
        text = data.get("text")
        if text is not None and not isinstance(text, str):
            raise TypeError(f"part text must be a string, got {type(text).__name__}")
        return cls(
            text=text,
            inline_data=Blob.from_dict(inline) if inline else None,
            file_data=FileData.from_dict(file_data) if file_data else None,
            function_call=FunctionCall.from_dict(call) if call else None,
            function_response=FunctionResponse.from_dict(response) if response else None,
            executable_code=_pick(data, "executableCode"),
            code_execution_result=_pick(data, "codeExecutionResult"),
        )


@dataclass
class Content:
    parts: list[Part] = field(default_factory=list)
    role: Union[Role, None] = None

    @classmethod
    def from_text(cls, text: str, role: Union[Role, None] = "user") -> "Content":
        return cls(parts=[Part.from_text(text)], role=role)

    @property
    def text(self) -> str:
        return "".join(p.text for p in self.parts if p.text)

    def to_dict(self) -> dict[str, Any]:
        return _compact({"role": self.role, "parts": [p.to_dict() for p in self.parts]})

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Content":
        if not isinstance(data, dict):
            raise TypeError(f"content must be an object, got {type(data).__name__}")
        parts = data.get("parts") or []
        if not isinstance(parts, list):
            raise TypeError("content parts must be a list")
        return cls(parts=[Part.from_dict(p) for p in parts], role=data.get("role"))


# =============================================================================
# Generation config and safety
# =============================================================================


class SchemaType(str, Enum):
    STRING = "STRING"
    NUMBER = "NUMBER"
    INTEGER = "INTEGER"
    BOOLEAN = "BOOLEAN"
    ARRAY = "ARRAY"
    OBJECT = "OBJECT"


@dataclass
class Schema:
    """OpenAPI-style schema used for structured output and function parameters."""

    type: SchemaType
    format: Union[str, None] = None
    description: Union[str, None] = None
    nullable: Union[bool, None] = None
    enum: Union[list[str], None] = None
    properties: Union[dict[str, "Schema"], None] = None
    required: Union[list[str], None] = None
    items: Union["Schema", None] = None

    def to_dict(self) -> dict[str, Any]:
        return _compact(
            {
                "type": SchemaType(self.type).value,
                "format": self.format,
                "description": self.description,
                "nullable": self.nullable,
                "enum": self.enum,
                "properties": (
                    {k: v.to_dict() for k, v in self.properties.items()}
                    if self.properties is not None
                    else None
                ),
                "required": self.required,
                "items": self.items.to_dict() if self.items else None,
            }
        )


@dataclass
class GenerationConfig:
    candidate_count: Union[int, None] = None
    stop_sequences: Union[list[str], None] = None
    max_output_tokens: Union[int, None] = None
    temperature: Union[float, None] = 0.7
    top_k: Union[int, None] = 40
    top_p: Union[float, None] = 0.95
    response_mime_type: Union[str, None] = None
    response_schema: Union[Schema, None] = None

    def to_dict(self) -> dict[str, Any]:
        return _compact(
            {
                "candidateCount": self.candidate_count,
                "stopSequences": self.stop_sequences,
                "maxOutputTokens": self.max_output_tokens,
                "temperature": self.temperature,
                "topK": self.top_k,
                "topP": self.top_p,
                "responseMimeType": self.response_mime_type,
                "responseSchema": self.response_schema.to_dict() if self.response_schema else None,
            }
        )


class HarmCategory(str, Enum):
    HARASSMENT = "HARM_CATEGORY_HARASSMENT"
    HATE_SPEECH = "HARM_CATEGORY_HATE_SPEECH"
    SEXUALLY_EXPLICIT = "HARM_CATEGORY_SEXUALLY_EXPLICIT"
    DANGEROUS_CONTENT = "HARM_CATEGORY_DANGEROUS_CONTENT"
    CIVIC_INTEGRITY = "HARM_CATEGORY_CIVIC_INTEGRITY"


class HarmBlockThreshold(str, Enum):
    UNSPECIFIED = "HARM_BLOCK_THRESHOLD_UNSPECIFIED"
    BLOCK_LOW_AND_ABOVE = "BLOCK_LOW_AND_ABOVE"
    BLOCK_MEDIUM_AND_ABOVE = "BLOCK_MEDIUM_AND_ABOVE"
    BLOCK_ONLY_HIGH = "BLOCK_ONLY_HIGH"
    BLOCK_NONE = "BLOCK_NONE"


@dataclass
class SafetySetting:
    category: HarmCategory
    threshold: HarmBlockThreshold

    def to_dict(self) -> dict[str, Any]:
        return {
            "category": HarmCategory(self.category).value,
            "threshold": HarmBlockThreshold(self.threshold).value,
        }


# =============================================================================
# Tools
# =============================================================================


@dataclass
class FunctionDeclaration:
    name: str
    description: str = ""
    parameters: Union[Schema, None] = None

    def to_dict(self) -> dict[str, Any]:
        return _compact(
            {
                "name": self.name,
                "description": self.description,
                "parameters": self.parameters.to_dict() if self.parameters else None,
            }
        )


class FunctionCallingMode(str, Enum):
    AUTO = "AUTO"
    ANY = "ANY"
    NONE = "NONE"


@dataclass
class FunctionCallingConfig:
    mode: FunctionCallingMode = FunctionCallingMode.AUTO
    allowed_function_names: Union[list[str], None] = None

    def to_dict(self) -> dict[str, Any]:
        return _compact(
            {
                "mode": FunctionCallingMode(self.mode).value,
                "allowedFunctionNames": self.allowed_function_names,
            }
        )


@dataclass
class ToolConfig:
    function_calling_config: FunctionCallingConfig = field(default_factory=FunctionCallingConfig)

    def to_dict(self) -> dict[str, Any]:
        return {"functionCallingConfig": self.function_calling_config.to_dict()}


@dataclass
class Tool:
    function_declarations: Union[list[FunctionDeclaration], None] = None
    code_execution: bool = False
    google_search: bool = False

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {}
        if self.function_declarations:
            data["functionDeclarations"] = [f.to_dict() for f in self.function_declarations]
        if self.code_execution:
            data["codeExecution"] = {}
        if self.google_search:
            data["googleSearch"] = {}
        return data


# =============================================================================
# Request
# =============================================================================


@dataclass
class Request:
    contents: list[Content] = field(default_factory=list)
    system_instruction: Union[Content, None] = None
    generation_config: Union[GenerationConfig, None] = None
    safety_settings: Union[list[SafetySetting], None] = None
    tools: Union[list[Tool], None] = None
    tool_config: Union[ToolConfig, None] = None
    cached_content: Union[str, None] = None

    @classmethod
    def from_prompt(cls, text: str, system_instruction: Union[str, None] = None) -> "Request":
        return cls(
            contents=[Content.from_text(text)],
            system_instruction=(
                Content.from_text(system_instruction, role=None) if system_instruction else None
            ),
        )

    def to_dict(self) -> dict[str, Any]:
        return _compact(
            {
                "contents": [c.to_dict() for c in self.contents],
                "systemInstruction": (
                    self.system_instruction.to_dict() if self.system_instruction else None
                ),
                "generationConfig": (
                    self.generation_config.to_dict() if self.generation_config else None
                ),
                "safetySettings": (
                    [s.to_dict() for s in self.safety_settings] if self.safety_settings else None
                ),
                "tools": [t.to_dict() for t in self.tools] if self.tools else None,
                "toolConfig": self.tool_config.to_dict() if self.tool_config else None,
                "cachedContent": self.cached_content,
            }
        )


# =============================================================================
# Response
# =============================================================================


@dataclass
class SafetyRating:
    category: str
    probability: str
    blocked: bool = False

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "SafetyRating":
        if not isinstance(data, dict):
            raise TypeError(f"safety rating must be an object, got {type(data).__name__}")
        return cls(
            category=data.get("category", ""),
            probability=data.get("probability", ""),
            blocked=bool(data.get("blocked", False)),
        )


@dataclass
class UsageMetadata:
    prompt_token_count: int = 0
    candidates_token_count: int = 0
    total_token_count: int = 0
    cached_content_token_count: int = 0

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "UsageMetadata":
        return cls(
            prompt_token_count=_pick(data, "promptTokenCount", 0),
            candidates_token_count=_pick(data, "candidatesTokenCount", 0),
            total_token_count=_pick(data, "totalTokenCount", 0),
            cached_content_token_count=_pick(data, "cachedContentTokenCount", 0),
        )


@dataclass
class Candidate:
    content: Content = field(default_factory=Content)
    finish_reason: Union[str, None] = None
    safety_ratings: list[SafetyRating] = field(default_factory=list)
    avg_logprobs: Union[float, None] = None
    index: Union[int, None] = None
    citation_metadata: Union[dict[str, Any], None] = None
    grounding_metadata: Union[dict[str, Any], None] = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Candidate":
        if not isinstance(data, dict):
            raise TypeError(f"candidate must be an object, got {type(data).__name__}")
        content = data.get("content")
        return cls(
            content=Content.from_dict(content) if content else Content(),
            finish_reason=_pick(data, "finishReason"),
            safety_ratings=[SafetyRating.from_dict(r) for r in _pick(data, "safetyRatings") or []],
            avg_logprobs=_pick(data, "avgLogprobs"),
            index=data.get("index"),
            citation_metadata=_pick(data, "citationMetadata"),
            grounding_metadata=_pick(data, "groundingMetadata"),
        )


@dataclass
class Response:
    """One generateContent response, or one element of a streamed response."""

    candidates: list[Candidate] = field(default_factory=list)
    usage_metadata: Union[UsageMetadata, None] = None
    model_version: Union[str, None] = None
    prompt_feedback: Union[dict[str, Any], None] = None

    @property
    def text(self) -> str:
        """Text of the first candidate, or "" if there is none."""
        if not self.candidates:
            return ""
        return self.candidates[0].content.text

    @property
    def function_calls(self) -> list[FunctionCall]:
        if not self.candidates:
            return []
        return [p.function_call for p in self.candidates[0].content.parts if p.function_call]

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Response":
        if not isinstance(data, dict):
            raise DecodeError(f"expected a JSON object, got {type(data).__name__}")
        prompt_feedback = _pick(data, "promptFeedback")
        candidates = data.get("candidates")
        if candidates is None and prompt_feedback is None:
            raise DecodeError("missing field `candidates`")
        if candidates is not None and not isinstance(candidates, list):
            raise DecodeError("field `candidates` must be a list")
        usage = _pick(data, "usageMetadata")
        return cls(
            candidates=[Candidate.from_dict(c) for c in candidates or []],
            usage_metadata=UsageMetadata.from_dict(usage) if usage else None,
            model_version=_pick(data, "modelVersion"),
            prompt_feedback=prompt_feedback,
        )

    @classmethod
    def from_json(cls, text: str) -> "Response":
        """Parse one response object; raises DecodeError on bad input."""
        try:
            data = json.loads(text)
        except ValueError as exc:
            raise DecodeError(f"invalid JSON: {exc}", raw=text) from exc
        try:
            return cls.from_dict(data)
        except DecodeError as exc:
            exc.raw = text
            raise
        except (KeyError, TypeError, AttributeError) as exc:
            raise DecodeError(f"unexpected response shape: {exc}", raw=text) from exc


@dataclass
class TokenCountResponse:
    total_tokens: int
    cached_content_token_count: int = 0

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "TokenCountResponse":
        return cls(
            total_tokens=_pick(data, "totalTokens", 0),
            cached_content_token_count=_pick(data, "cachedContentTokenCount", 0),
        )


# =============================================================================
# Embeddings and models
# =============================================================================


class TaskType(str, Enum):
    UNSPECIFIED = "TASK_TYPE_UNSPECIFIED"
    RETRIEVAL_QUERY = "RETRIEVAL_QUERY"
    RETRIEVAL_DOCUMENT = "RETRIEVAL_DOCUMENT"
    SEMANTIC_SIMILARITY = "SEMANTIC_SIMILARITY"
    CLASSIFICATION = "CLASSIFICATION"
    CLUSTERING = "CLUSTERING"


@dataclass
class ContentEmbedding:
    values: list[float]

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ContentEmbedding":
        return cls(values=list(data.get("values") or []))


@dataclass
class ModelInfo:
    name: str
    version: str = ""
    display_name: str = ""
    description: str = ""
    input_token_limit: int = 0
    output_token_limit: int = 0
    supported_generation_methods: list[str] = field(default_factory=list)
    temperature: Union[float, None] = None
    max_temperature: Union[float, None] = None
    top_p: Union[float, None] = None
    top_k: Union[int, None] = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ModelInfo":
        return cls(
            name=data["name"],
            version=data.get("version", ""),
            display_name=_pick(data, "displayName", ""),
            description=data.get("description", ""),
            input_token_limit=_pick(data, "inputTokenLimit", 0),
            output_token_limit=_pick(data, "outputTokenLimit", 0),
            supported_generation_methods=list(_pick(data, "supportedGenerationMethods") or []),
            temperature=data.get("temperature"),
            max_temperature=_pick(data, "maxTemperature"),
            top_p=_pick(data, "topP"),
            top_k=_pick(data, "topK"),
        )
