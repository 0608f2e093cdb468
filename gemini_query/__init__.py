"""gemini-query: an async client for the Gemini generative AI API."""

from __future__ import annotations

from gemini_query.cache import CacheInfo, CacheManager
from gemini_query.chat import ChatSession
from gemini_query.client import GenerativeModel
from gemini_query.config import ClientConfig
from gemini_query.errors import (
    APIError,
    CacheError,
    ConfigurationError,
    DecodeError,
    FileError,
    GeminiError,
    TransportError,
)
from gemini_query.files import FileInfo, FileManager, FileState
from gemini_query.streaming import JsonArrayScanner, ResponseStream, StreamItem, decode_chunks
from gemini_query.types import (
    Candidate,
    Content,
    FunctionCall,
    FunctionCallingConfig,
    FunctionCallingMode,
    FunctionDeclaration,
    FunctionResponse,
    GenerationConfig,
    HarmBlockThreshold,
    HarmCategory,
    ModelInfo,
    Part,
    Request,
    Response,
    SafetySetting,
    Schema,
    SchemaType,
    TaskType,
    TokenCountResponse,
    Tool,
    ToolConfig,
    UsageMetadata,
)

__all__ = [
    # Clients
    "GenerativeModel",
    "ChatSession",
    "FileManager",
    "CacheManager",
    "ClientConfig",
    # Streaming
    "ResponseStream",
    "StreamItem",
    "JsonArrayScanner",
    "decode_chunks",
    # Errors
    "GeminiError",
    "APIError",
    "CacheError",
    "ConfigurationError",
    "DecodeError",
    "FileError",
    "TransportError",
    # Types
    "CacheInfo",
    "Candidate",
    "Content",
    "FileInfo",
    "FileState",
    "FunctionCall",
    "FunctionCallingConfig",
    "FunctionCallingMode",
    "FunctionDeclaration",
    "FunctionResponse",
    "GenerationConfig",
    "HarmBlockThreshold",
    "HarmCategory",
    "ModelInfo",
    "Part",
    "Request",
    "Response",
    "SafetySetting",
    "Schema",
    "SchemaType",
    "TaskType",
    "TokenCountResponse",
    "Tool",
    "ToolConfig",
    "UsageMetadata",
]
