# src/guard/models.py - v1
"""Rate-limit domain types: ceilings, call scope, window state, check result."""

from __future__ import annotations

from dataclasses import dataclass, field

from pydantic import BaseModel

from storegen.config.settings import Settings

GLOBAL_SCOPE = "global"


@dataclass(frozen=True)
class ScopeLimits:
    """Per-window ceilings for one scope (user, tenant or global)."""

    max_requests: int
    max_tokens: int
    max_cost: float


@dataclass(frozen=True)
class RateLimitConfig:
    """All ceilings enforced by the rate limiter."""

    user: ScopeLimits = field(default_factory=lambda: ScopeLimits(100, 500_000, 10.0))
    tenant: ScopeLimits = field(default_factory=lambda: ScopeLimits(500, 2_000_000, 50.0))
    global_: ScopeLimits = field(default_factory=lambda: ScopeLimits(5000, 10_000_000, 500.0))
    max_tokens_per_run: int = 100_000
    max_cost_per_run: float = 5.0
    window_seconds: float = 3600.0

    @classmethod
    def from_settings(cls, settings: Settings) -> RateLimitConfig:
        return cls(
            user=ScopeLimits(
                settings.ai_user_max_requests_per_hour,
                settings.ai_user_max_tokens_per_hour,
                settings.ai_user_max_cost_per_hour,
            ),
            tenant=ScopeLimits(
                settings.ai_tenant_max_requests_per_hour,
                settings.ai_tenant_max_tokens_per_hour,
                settings.ai_tenant_max_cost_per_hour,
            ),
            global_=ScopeLimits(
                settings.ai_global_max_requests_per_hour,
                settings.ai_global_max_tokens_per_hour,
                settings.ai_global_max_cost_per_hour,
            ),
            max_tokens_per_run=settings.ai_max_tokens_per_run,
            max_cost_per_run=settings.ai_max_cost_per_run,
            window_seconds=settings.ai_rate_window_seconds,
        )


@dataclass(frozen=True)
class ScopeContext:
    """Who is calling, and what the call is expected to cost."""

    tenant_id: str | None = None
    user_id: str | None = None
    estimated_tokens: int | None = None
    estimated_cost: float | None = None

    def scope_keys(self) -> list[str]:
        """Window keys touched by this call, narrowest first."""
        keys: list[str] = []
        if self.user_id:
            keys.append(f"user:{self.user_id}")
        if self.tenant_id:
            keys.append(f"tenant:{self.tenant_id}")
        keys.append(GLOBAL_SCOPE)
        return keys


@dataclass
class RateLimitWindowState:
    """Accumulated usage for one scope key in the current window."""

    count: int
    tokens: int
    cost: float
    window_start: float


class RateLimitStatus(BaseModel):
    """Outcome of a rate-limit check."""

    allowed: bool
    reason: str | None = None
    scope: str | None = None
    remaining_requests: int | None = None
    remaining_tokens: int | None = None
    reset_at: float | None = None
