# src/llm/normalize.py - v1
"""Request normalization into the OpenAI-compatible wire payload.

Also hosts the single translation point for legacy call sites that pass
camelCase or snake_case parameter dicts.
"""

from __future__ import annotations

import json
from typing import Any

from pydantic import BaseModel, ValidationError

from storegen.core.errors import InvalidRequestError, UnsupportedContentError
from storegen.llm.models import (
    FileContent,
    GenerationRequest,
    GenerationResult,
    ImageContent,
    JsonSchema,
    Message,
    ResponseFormat,
    TextContent,
    Tool,
    ToolChoice,
    ToolChoiceByName,
    ToolChoiceExplicit,
)

_PART_TYPES: dict[str, type[BaseModel]] = {
    "text": TextContent,
    "image_url": ImageContent,
    "file_url": FileContent,
}

# Legacy key -> GenerationRequest field. First match wins.
_LEGACY_ALIASES: dict[str, tuple[str, ...]] = {
    "tools": ("tools",),
    "tool_choice": ("toolChoice", "tool_choice"),
    "max_tokens": ("maxTokens", "max_tokens"),
    "temperature": ("temperature",),
    "output_schema": ("outputSchema", "output_schema"),
    "response_format": ("responseFormat", "response_format"),
}


def _as_list(content: Any) -> list[Any]:
    return content if isinstance(content, list) else [content]


def normalize_content_part(part: Any) -> dict[str, Any]:
    """Turn a string or content part into its wire dict.

    Raises:
        UnsupportedContentError: For anything that is not text, image or file.
    """
    if isinstance(part, str):
        return {"type": "text", "text": part}
    if isinstance(part, (TextContent, ImageContent, FileContent)):
        return part.model_dump(exclude_none=True)
    raise UnsupportedContentError(getattr(part, "type", type(part).__name__))


def normalize_message(message: Message) -> dict[str, Any]:
    """Convert a Message to the wire form.

    Tool and function messages are flattened to one string. A message
    holding a single text part collapses to a plain string.
    """
    if message.role in ("tool", "function"):
        texts = [
            part if isinstance(part, str) else json.dumps(part.model_dump(exclude_none=True))
            for part in _as_list(message.content)
        ]
        wire: dict[str, Any] = {"role": message.role, "content": "\n".join(texts)}
        if message.name is not None:
            wire["name"] = message.name
        if message.tool_call_id is not None:
            wire["tool_call_id"] = message.tool_call_id
        return wire

    parts = [normalize_content_part(p) for p in _as_list(message.content)]
    wire = {"role": message.role}
    if message.name is not None:
        wire["name"] = message.name
    if len(parts) == 1 and parts[0]["type"] == "text":
        wire["content"] = parts[0]["text"]
    else:
        wire["content"] = parts
    return wire


def normalize_tool_choice(
    tool_choice: ToolChoice | None, tools: list[Tool] | None
) -> str | dict[str, Any] | None:
    """Resolve shorthand tool choices to the explicit function form.

    Raises:
        InvalidRequestError: If "required" cannot be pinned to exactly one tool.
    """
    if tool_choice is None:
        return None
    if tool_choice in ("none", "auto"):
        return tool_choice  # type: ignore[return-value]
    if tool_choice == "required":
        if not tools:
            raise InvalidRequestError(
                "tool_choice 'required' was provided but no tools were configured"
            )
        if len(tools) > 1:
            raise InvalidRequestError(
                "tool_choice 'required' needs a single tool or specify the tool name explicitly"
            )
        return {"type": "function", "function": {"name": tools[0].function.name}}
    if isinstance(tool_choice, ToolChoiceByName):
        return {"type": "function", "function": {"name": tool_choice.name}}
    if isinstance(tool_choice, ToolChoiceExplicit):
        return tool_choice.model_dump()
    raise InvalidRequestError(f"Unsupported tool_choice: {tool_choice!r}")


def normalize_response_format(
    response_format: ResponseFormat | None, output_schema: JsonSchema | None
) -> dict[str, Any] | None:
    """Pick the explicit response format, else derive one from output_schema."""
    if response_format is not None:
        if response_format.type == "json_schema" and (
            response_format.json_schema is None or not response_format.json_schema.schema_
        ):
            raise InvalidRequestError(
                "response_format json_schema requires a defined schema object"
            )
        return response_format.model_dump(by_alias=True, exclude_none=True)

    if output_schema is not None:
        if not output_schema.name or not output_schema.schema_:
            raise InvalidRequestError("output_schema requires both name and schema")
        return {
            "type": "json_schema",
            "json_schema": output_schema.model_dump(by_alias=True, exclude_none=True),
        }
    return None


# === LEGACY BOUNDARY ===


def _coerce_legacy_message(raw: Any) -> Any:
    if not isinstance(raw, dict):
        return raw
    content = raw.get("content")
    for part in _as_list(content):
        if isinstance(part, dict) and part.get("type") not in _PART_TYPES:
            raise UnsupportedContentError(part.get("type"))
    return raw


def normalize_legacy_params(params: dict[str, Any]) -> GenerationRequest:
    """Build a GenerationRequest from a legacy camelCase/snake_case dict.

    Raises:
        UnsupportedContentError: A message carries an unknown content part.
        InvalidRequestError: Any other malformed parameter.
    """
    if "messages" not in params:
        raise InvalidRequestError("Legacy invoke parameters require 'messages'")

    fields: dict[str, Any] = {
        "messages": [_coerce_legacy_message(m) for m in params["messages"]],
    }
    for field_name, keys in _LEGACY_ALIASES.items():
        for key in keys:
            if params.get(key) is not None:
                fields[field_name] = params[key]
                break

    try:
        return GenerationRequest.model_validate(fields)
    except ValidationError as e:
        raise InvalidRequestError(f"Invalid legacy invoke parameters: {e}") from e


def to_legacy_response(result: GenerationResult) -> dict[str, Any]:
    """Render a GenerationResult in the legacy ``choices`` layout."""
    tool_calls = (
        [call.model_dump() for call in result.tool_calls] if result.tool_calls else None
    )
    return {
        "id": result.id,
        "created": result.created,
        "model": result.model,
        "choices": [
            {
                "index": 0,
                "message": {
                    "role": "assistant",
                    "content": result.content,
                    "tool_calls": tool_calls,
                },
                "finish_reason": result.finish_reason,
            }
        ],
        "usage": result.usage.model_dump(),
    }
