# src/llm/token_budget.py - v2
"""Pre-call token and cost estimation.

Feeds the per-call ceilings of the rate limiter before anything is spent.
Estimates are deliberately coarse: ~4 characters per token for the prompt
plus the full completion allowance.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from storegen.tracking.cost_calculator import compute_cost

logger = logging.getLogger(__name__)

CHARS_PER_TOKEN = 4


@dataclass(frozen=True)
class CallEstimate:
    """Upper-bound estimate for one provider call."""

    prompt_tokens: int
    max_completion_tokens: int
    estimated_cost: float

    @property
    def total_tokens(self) -> int:
        return self.prompt_tokens + self.max_completion_tokens


def estimate_tokens(text: str) -> int:
    """Rough token count for a piece of text."""
    if not text:
        return 0
    return max(1, len(text) // CHARS_PER_TOKEN)


def estimate_call(
    model: str,
    prompt: str,
    max_tokens: int,
    system_prompt: str | None = None,
) -> CallEstimate:
    """Estimate tokens and cost for a prompt with a completion allowance."""
    prompt_tokens = estimate_tokens(prompt) + estimate_tokens(system_prompt or "")
    cost = compute_cost(model, prompt_tokens, max_tokens)
    logger.debug(
        "Estimated call: model=%s prompt_tokens=%d max_tokens=%d cost=%.6f",
        model, prompt_tokens, max_tokens, cost,
    )
    return CallEstimate(
        prompt_tokens=prompt_tokens,
        max_completion_tokens=max_tokens,
        estimated_cost=cost,
    )
