# src/llm/models.py - v2
"""Provider-neutral request/response types for chat-completion calls.

Requests are immutable once built. Content parts, tools and response
formats mirror the OpenAI-compatible wire vocabulary so the adapter can
dump them with ``by_alias=True`` without any further mapping.
"""

from __future__ import annotations

from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field


# === CONTENT PARTS ===


class TextContent(BaseModel):
    """Plain text part."""

    type: Literal["text"] = "text"
    text: str


class ImageUrl(BaseModel):
    url: str
    detail: Literal["auto", "low", "high"] | None = None


class ImageContent(BaseModel):
    """Image reference part (URL or data URI)."""

    type: Literal["image_url"] = "image_url"
    image_url: ImageUrl


class FileUrl(BaseModel):
    url: str
    mime_type: str | None = None


class FileContent(BaseModel):
    """File reference part (audio, video, PDF)."""

    type: Literal["file_url"] = "file_url"
    file_url: FileUrl


ContentPart = Annotated[
    Union[TextContent, ImageContent, FileContent], Field(discriminator="type")
]

Role = Literal["system", "user", "assistant", "tool", "function"]


class Message(BaseModel):
    """Single message in a conversation."""

    model_config = ConfigDict(frozen=True)

    role: Role
    content: str | ContentPart | list[str | ContentPart]
    name: str | None = None
    tool_call_id: str | None = None


# === TOOLS ===


class FunctionSpec(BaseModel):
    name: str
    description: str | None = None
    parameters: dict[str, Any] | None = None


class Tool(BaseModel):
    """Function tool definition offered to the model."""

    type: Literal["function"] = "function"
    function: FunctionSpec


class ToolChoiceByName(BaseModel):
    """Shorthand ``{"name": ...}`` selecting one tool."""

    name: str


class FunctionName(BaseModel):
    name: str


class ToolChoiceExplicit(BaseModel):
    """Wire form ``{"type": "function", "function": {"name": ...}}``."""

    type: Literal["function"] = "function"
    function: FunctionName


ToolChoice = Union[
    Literal["none", "auto", "required"], ToolChoiceExplicit, ToolChoiceByName
]


# === STRUCTURED OUTPUT ===


class JsonSchema(BaseModel):
    """Named JSON schema for structured output."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    name: str
    schema_: dict[str, Any] = Field(alias="schema")
    strict: bool | None = None


class ResponseFormat(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    type: Literal["text", "json_object", "json_schema"]
    json_schema: JsonSchema | None = None


# === REQUESTS ===


class GenerationRequest(BaseModel):
    """Free-form chat completion request."""

    model_config = ConfigDict(frozen=True)

    messages: list[Message]
    tools: list[Tool] | None = None
    tool_choice: ToolChoice | None = None
    max_tokens: int | None = None
    temperature: float | None = None
    response_format: ResponseFormat | None = None
    output_schema: JsonSchema | None = None


class JSONRequest(BaseModel):
    """Single-prompt request whose answer must parse as JSON."""

    model_config = ConfigDict(frozen=True)

    prompt: str
    output_schema: JsonSchema
    system_prompt: str | None = None
    max_tokens: int | None = None
    temperature: float | None = None


# === RESULTS ===


class TokenUsage(BaseModel):
    """Token accounting reported by the provider."""

    prompt_tokens: int = 0
    completion_tokens: int = 0
    total_tokens: int = 0

    def __add__(self, other: TokenUsage) -> TokenUsage:
        return TokenUsage(
            prompt_tokens=self.prompt_tokens + other.prompt_tokens,
            completion_tokens=self.completion_tokens + other.completion_tokens,
            total_tokens=self.total_tokens + other.total_tokens,
        )


class ToolCallFunction(BaseModel):
    name: str
    arguments: str = ""


class ToolCall(BaseModel):
    id: str
    type: Literal["function"] = "function"
    function: ToolCallFunction


class GenerationResult(BaseModel):
    """Normalized completion result from any provider."""

    id: str
    created: int
    model: str
    provider: str
    content: str
    tool_calls: list[ToolCall] | None = None
    finish_reason: str | None = None
    usage: TokenUsage = Field(default_factory=TokenUsage)


class JSONResult(BaseModel):
    """Parsed structured-output result."""

    id: str
    model: str
    provider: str
    data: Any
    usage: TokenUsage = Field(default_factory=TokenUsage)
