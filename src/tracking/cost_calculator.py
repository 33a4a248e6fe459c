# src/tracking/cost_calculator.py - v2
"""Cost calculation from token counts and usage aggregation.

Prices are USD per 1M tokens. Unknown models fall back to the
``default`` entry, never to zero.
"""

from __future__ import annotations

from typing import Iterable

from storegen.tracking.models import ModelPricing, UsageBucket, UsageLogEntry, UsageSummary

DEFAULT_MODEL_KEY = "default"


def _p(model: str, input_price: float, output_price: float) -> ModelPricing:
    return ModelPricing(
        model=model, input_price_per_1m=input_price, output_price_per_1m=output_price,
    )


MODEL_PRICING: dict[str, ModelPricing] = {
    # Gemini
    "gemini-2.0-flash": _p("gemini-2.0-flash", 0.10, 0.40),
    "gemini-2.0-flash-lite": _p("gemini-2.0-flash-lite", 0.075, 0.30),
    "gemini-1.5-flash": _p("gemini-1.5-flash", 0.075, 0.30),
    "gemini-1.5-flash-8b": _p("gemini-1.5-flash-8b", 0.0375, 0.15),
    "gemini-1.5-pro": _p("gemini-1.5-pro", 1.25, 5.00),
    "gemini-2.5-flash": _p("gemini-2.5-flash", 0.15, 0.60),
    # OpenAI
    "gpt-4-turbo": _p("gpt-4-turbo", 10.00, 30.00),
    "gpt-4": _p("gpt-4", 30.00, 60.00),
    "gpt-4o": _p("gpt-4o", 2.50, 10.00),
    "gpt-4o-mini": _p("gpt-4o-mini", 0.15, 0.60),
    "gpt-3.5-turbo": _p("gpt-3.5-turbo", 0.50, 1.50),
    DEFAULT_MODEL_KEY: _p(DEFAULT_MODEL_KEY, 0.15, 0.60),
}


def pricing_for(model: str, pricing: dict[str, ModelPricing] | None = None) -> ModelPricing:
    """Return the pricing row for a model, or the default row."""
    table = pricing or MODEL_PRICING
    return table.get(model) or table[DEFAULT_MODEL_KEY]


def compute_cost(
    model: str,
    prompt_tokens: int,
    completion_tokens: int,
    pricing: dict[str, ModelPricing] | None = None,
) -> float:
    """Compute estimated USD cost for a call, rounded to 6 decimals."""
    p = pricing_for(model, pricing)
    cost = (prompt_tokens / 1_000_000 * p.input_price_per_1m
            + completion_tokens / 1_000_000 * p.output_price_per_1m)
    return round(cost, 6)


def summarize_usage(entries: Iterable[UsageLogEntry]) -> UsageSummary:
    """Aggregate usage entries into totals and per-feature/per-provider buckets."""
    summary = UsageSummary()
    by_feature: dict[str, UsageBucket] = {}
    by_provider: dict[str, UsageBucket] = {}

    for e in entries:
        summary.total_requests += 1
        summary.total_tokens += e.total_tokens
        summary.total_cost_usd += e.estimated_cost_usd
        if e.status == "failed":
            summary.failed_requests += 1
        elif e.status == "rate_limited":
            summary.rate_limited_requests += 1

        for key, buckets in ((e.feature_key, by_feature), (e.provider, by_provider)):
            bucket = buckets.setdefault(key, UsageBucket())
            bucket.requests += 1
            bucket.tokens += e.total_tokens
            bucket.cost += e.estimated_cost_usd

    summary.total_cost_usd = round(summary.total_cost_usd, 6)
    summary.by_feature = by_feature
    summary.by_provider = by_provider
    return summary
