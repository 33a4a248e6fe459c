# src/gateway/ai_gateway.py - v2
"""Single entry point for every AI call.

Per call: rate-limit check, provider call, cost, commit, usage entry.
Exactly one usage entry is written per call, whatever the outcome.
No retries happen here: the adapter already retried transient errors.
"""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Any, Awaitable, Callable, TypeVar

from storegen.core.errors import RateLimitedError, SchemaParseError
from storegen.gateway.models import LEGACY_FEATURE_KEY, CallContext, GatewayStatus
from storegen.guard.kill_switch import KillSwitch
from storegen.guard.rate_limiter import RateLimiter
from storegen.llm.base_client import BaseProviderAdapter
from storegen.llm.models import (
    GenerationRequest,
    GenerationResult,
    JSONRequest,
    JSONResult,
    TokenUsage,
)
from storegen.llm.normalize import normalize_legacy_params, to_legacy_response
from storegen.logging.context import call_context
from storegen.tracking.call_logger import UsageLogger
from storegen.tracking.cost_calculator import compute_cost
from storegen.tracking.models import ModelPricing, UsageLogEntry, UsageStatus

logger = logging.getLogger(__name__)

R = TypeVar("R", GenerationResult, JSONResult)


class AIGateway:
    """Composition root for one AI call: guard, provider, cost, usage log."""

    def __init__(
        self,
        adapter: BaseProviderAdapter,
        rate_limiter: RateLimiter,
        usage_logger: UsageLogger,
        pricing: dict[str, ModelPricing] | None = None,
    ) -> None:
        self._adapter = adapter
        self._limiter = rate_limiter
        self._usage = usage_logger
        self._pricing = pricing

    @property
    def adapter(self) -> BaseProviderAdapter:
        return self._adapter

    @property
    def rate_limiter(self) -> RateLimiter:
        return self._limiter

    @property
    def usage_logger(self) -> UsageLogger:
        return self._usage

    @property
    def kill_switch(self) -> KillSwitch:
        return self._limiter.kill_switch

    # --- Calls ---

    async def generate_text(
        self, request: GenerationRequest, context: CallContext
    ) -> GenerationResult:
        return await self._invoke(context, lambda: self._adapter.generate_text(request))

    async def generate_json(self, request: JSONRequest, context: CallContext) -> JSONResult:
        return await self._invoke(context, lambda: self._adapter.generate_json(request))

    async def invoke_legacy(
        self, params: dict[str, Any], context: CallContext | None = None
    ) -> dict[str, Any]:
        """Legacy entry point: accepts camelCase or snake_case params, returns ``choices``."""
        request = normalize_legacy_params(params)
        result = await self.generate_text(
            request, context or CallContext(feature_key=LEGACY_FEATURE_KEY)
        )
        return to_legacy_response(result)

    async def _invoke(self, context: CallContext, call: Callable[[], Awaitable[R]]) -> R:
        scope = context.to_scope()
        started = time.monotonic()

        with call_context(context.tenant_id, context.user_id, context.feature_key):
            status = self._limiter.check(scope)
            if not status.allowed:
                await self._record(
                    context, "rate_limited", self._adapter.model, TokenUsage(), 0.0,
                    started, error_message=status.reason,
                    extra_metadata={"rejected_scope": status.scope},
                )
                logger.warning("AI call rejected: %s", status.reason)
                raise RateLimitedError(status.reason or "Rate limit exceeded", status.scope)

            try:
                result = await call()
            except SchemaParseError as e:
                usage = e.usage or TokenUsage()
                model = e.model or self._adapter.model
                cost = compute_cost(
                    model, usage.prompt_tokens, usage.completion_tokens, self._pricing
                )
                self._limiter.commit(scope, usage.total_tokens, cost)
                await self._record(
                    context, "failed", model, usage, cost, started, error_message=str(e),
                )
                raise
            except asyncio.CancelledError:
                self._limiter.commit(scope, 0, 0.0)
                await self._record(
                    context, "failed", self._adapter.model, TokenUsage(), 0.0,
                    started, error_message="cancelled",
                )
                raise
            except Exception as e:
                self._limiter.commit(scope, 0, 0.0)
                await self._record(
                    context, "failed", self._adapter.model, TokenUsage(), 0.0,
                    started, error_message=str(e),
                )
                raise

            cost = compute_cost(
                result.model, result.usage.prompt_tokens,
                result.usage.completion_tokens, self._pricing,
            )
            self._limiter.commit(scope, result.usage.total_tokens, cost)
            await self._record(context, "completed", result.model, result.usage, cost, started)
            return result

    async def _record(
        self,
        context: CallContext,
        status: UsageStatus,
        model: str,
        usage: TokenUsage,
        cost: float,
        started: float,
        error_message: str | None = None,
        extra_metadata: dict[str, Any] | None = None,
    ) -> None:
        metadata = dict(context.metadata)
        if extra_metadata:
            metadata.update(extra_metadata)
        await self._usage.log(
            UsageLogEntry(
                provider=self._adapter.provider_name,
                model=model,
                tenant_id=context.tenant_id,
                user_id=context.user_id,
                feature_key=context.feature_key,
                prompt_tokens=usage.prompt_tokens,
                completion_tokens=usage.completion_tokens,
                total_tokens=usage.total_tokens,
                estimated_cost_usd=cost,
                latency_ms=int((time.monotonic() - started) * 1000),
                status=status,
                error_message=error_message,
                metadata=metadata,
            )
        )

    # --- Operator surface ---

    def disable(self) -> None:
        """Activate the kill switch."""
        self.kill_switch.disable()

    def enable(self) -> None:
        self.kill_switch.enable()

    def is_available(self) -> bool:
        """True when calls are enabled and the provider has credentials."""
        return self.kill_switch.enabled and self._adapter.is_configured

    def status(self) -> GatewayStatus:
        return GatewayStatus(
            enabled=self.kill_switch.enabled,
            provider=self._adapter.provider_name,
            configured=self._adapter.is_configured,
            model=self._adapter.model or "unknown",
        )

    def validate(self) -> list[str]:
        """Configuration problems that would make calls fail."""
        errors: list[str] = []
        if not self._adapter.is_configured:
            errors.append(f"API key not configured for provider: {self._adapter.provider_name}")
        if not self.kill_switch.enabled:
            errors.append("AI calls are disabled (ENABLE_AI_CALLS=false)")
        return errors

    def recent_usage(self, limit: int = 100) -> list[UsageLogEntry]:
        return self._usage.recent(limit)
