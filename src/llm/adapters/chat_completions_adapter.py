# src/llm/adapters/chat_completions_adapter.py - v1
"""OpenAI-compatible chat-completions adapter implementing BaseProviderAdapter.

Uses the official openai SDK against any endpoint speaking the
chat-completions protocol (Gemini's compatibility layer, the built-in
forge proxy, OpenAI itself). The SDK's own retries are disabled: retry
and per-attempt timeout are applied here.
"""

from __future__ import annotations

import asyncio
import json
import time
from typing import Any

import httpx

from storegen.core.errors import ProviderNotConfiguredError, SchemaParseError
from storegen.llm.base_client import BaseProviderAdapter
from storegen.llm.config import ProviderConfig
from storegen.llm.models import (
    GenerationRequest,
    GenerationResult,
    JSONRequest,
    JSONResult,
    Message,
    TokenUsage,
    ToolCall,
)
from storegen.llm.normalize import (
    normalize_message,
    normalize_response_format,
    normalize_tool_choice,
)
from storegen.llm.retry import RetryPolicy, Sleep, with_retry

DEFAULT_MAX_TOKENS = 32768
_THINKING_MODEL_MARKERS = ("2.0", "2.5")
_THINKING_BUDGET = {"budget_tokens": 128}


def _strip_fences(content: str) -> str:
    text = content.strip()
    if text.startswith("```"):
        lines = [ln for ln in text.split("\n") if not ln.strip().startswith("```")]
        text = "\n".join(lines)
    return text


class ChatCompletionsAdapter(BaseProviderAdapter):
    """Chat-completions adapter shared by the gemini, forge and openai providers."""

    def __init__(
        self,
        config: ProviderConfig,
        http_client: httpx.AsyncClient | None = None,
        sleep: Sleep = asyncio.sleep,
        **kwargs: Any,
    ):
        self._config = config
        self._http_client = http_client
        self._sleep = sleep
        self._client: Any = None

    @property
    def provider_name(self) -> str:
        return self._config.provider

    @property
    def model(self) -> str:
        return self._config.model

    @property
    def is_configured(self) -> bool:
        return self._config.is_configured

    def _get_client(self) -> Any:
        if self._client is None:
            import openai

            self._client = openai.AsyncOpenAI(
                api_key=self._config.api_key,
                base_url=self._config.base_url,
                timeout=self._config.timeout_ms / 1000.0,
                max_retries=0,
                http_client=self._http_client,
            )
        return self._client

    def build_payload(self, request: GenerationRequest) -> dict[str, Any]:
        """Build chat.completions.create kwargs from a normalized request."""
        model = self._config.model
        payload: dict[str, Any] = {
            "model": model,
            "messages": [normalize_message(m) for m in request.messages],
            "max_tokens": request.max_tokens or DEFAULT_MAX_TOKENS,
        }
        if request.tools:
            payload["tools"] = [t.model_dump(exclude_none=True) for t in request.tools]

        tool_choice = normalize_tool_choice(request.tool_choice, request.tools)
        if tool_choice is not None:
            payload["tool_choice"] = tool_choice

        if request.temperature is not None:
            payload["temperature"] = request.temperature

        response_format = normalize_response_format(
            request.response_format, request.output_schema
        )
        if response_format is not None:
            payload["response_format"] = response_format

        if any(marker in model for marker in _THINKING_MODEL_MARKERS):
            payload["extra_body"] = {"thinking": dict(_THINKING_BUDGET)}
        return payload

    async def generate_text(self, request: GenerationRequest) -> GenerationResult:
        if not self.is_configured:
            raise ProviderNotConfiguredError(self.provider_name)

        payload = self.build_payload(request)
        client = self._get_client()
        timeout_s = self._config.timeout_ms / 1000.0

        async def _attempt() -> Any:
            return await asyncio.wait_for(
                client.chat.completions.create(**payload), timeout=timeout_s
            )

        resp = await with_retry(
            _attempt,
            provider=self.provider_name,
            policy=RetryPolicy(
                max_retries=self._config.max_retries,
                retry_delay_ms=self._config.retry_delay_ms,
            ),
            sleep=self._sleep,
        )
        return self._to_result(resp, payload["model"])

    async def generate_json(self, request: JSONRequest) -> JSONResult:
        messages: list[Message] = []
        if request.system_prompt:
            messages.append(Message(role="system", content=request.system_prompt))
        messages.append(Message(role="user", content=request.prompt))

        result = await self.generate_text(
            GenerationRequest(
                messages=messages,
                max_tokens=request.max_tokens,
                temperature=request.temperature,
                output_schema=request.output_schema,
            )
        )

        try:
            data = json.loads(_strip_fences(result.content))
        except json.JSONDecodeError as e:
            raise SchemaParseError(
                "Failed to parse JSON response",
                raw_content=result.content,
                usage=result.usage,
                model=result.model,
            ) from e

        return JSONResult(
            id=result.id,
            model=result.model,
            provider=self.provider_name,
            data=data,
            usage=result.usage,
        )

    def _to_result(self, resp: Any, model: str) -> GenerationResult:
        choice = resp.choices[0] if resp.choices else None
        message = choice.message if choice is not None else None

        content: Any = message.content if message is not None else None
        if content is None:
            content = ""
        elif not isinstance(content, str):
            content = json.dumps(content)

        tool_calls = None
        if message is not None and message.tool_calls:
            tool_calls = [ToolCall.model_validate(tc.model_dump()) for tc in message.tool_calls]

        usage = resp.usage
        return GenerationResult(
            id=resp.id or f"{self.provider_name}-{int(time.time() * 1000)}",
            created=resp.created or int(time.time()),
            model=resp.model or model,
            provider=self.provider_name,
            content=content,
            tool_calls=tool_calls,
            finish_reason=choice.finish_reason if choice is not None else None,
            usage=TokenUsage(
                prompt_tokens=usage.prompt_tokens if usage else 0,
                completion_tokens=usage.completion_tokens if usage else 0,
                total_tokens=usage.total_tokens if usage else 0,
            ),
        )
