# src/guard/rate_limiter.py - v1
"""Fixed-window rate limiter with per-call ceilings and a kill switch.

Check order:
  1. Kill switch
  2. Per-call ceilings (estimated tokens, then estimated cost)
  3. Per-user window (requests, tokens, cost)
  4. Per-tenant window
  5. Global window

``check`` never writes. Only ``commit`` updates windows, so a rejected
call or a call that never completes consumes nothing.

State is in-process: multi-instance deployments need an external atomic
counter store behind the same interface.
"""

from __future__ import annotations

import logging
import threading
import time
from typing import Callable

from storegen.guard.kill_switch import KillSwitch
from storegen.guard.models import (
    GLOBAL_SCOPE,
    RateLimitConfig,
    RateLimitStatus,
    RateLimitWindowState,
    ScopeContext,
    ScopeLimits,
)

logger = logging.getLogger(__name__)

KILL_SWITCH_SCOPE = "kill_switch"
PER_CALL_SCOPE = "per_call"


class RateLimiter:
    """Enforces per-user, per-tenant and global hourly ceilings."""

    def __init__(
        self,
        config: RateLimitConfig | None = None,
        kill_switch: KillSwitch | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._config = config or RateLimitConfig()
        self._kill_switch = kill_switch or KillSwitch()
        self._clock = clock
        self._windows: dict[str, RateLimitWindowState] = {}
        self._key_locks: dict[str, threading.Lock] = {}
        self._registry_lock = threading.Lock()

    @property
    def config(self) -> RateLimitConfig:
        return self._config

    @property
    def kill_switch(self) -> KillSwitch:
        return self._kill_switch

    def _lock_for(self, key: str) -> threading.Lock:
        with self._registry_lock:
            lock = self._key_locks.get(key)
            if lock is None:
                lock = threading.Lock()
                self._key_locks[key] = lock
            return lock

    def _limits_for(self, key: str) -> tuple[str, ScopeLimits]:
        if key.startswith("user:"):
            return "User", self._config.user
        if key.startswith("tenant:"):
            return "Tenant", self._config.tenant
        return "Global", self._config.global_

    def _expired(self, state: RateLimitWindowState, now: float) -> bool:
        return now - state.window_start > self._config.window_seconds

    def window(self, key: str) -> RateLimitWindowState | None:
        """Current window for a scope key, or None if empty or expired."""
        with self._lock_for(key):
            state = self._windows.get(key)
            if state is None or self._expired(state, self._clock()):
                return None
            return RateLimitWindowState(
                count=state.count, tokens=state.tokens,
                cost=state.cost, window_start=state.window_start,
            )

    def check(self, ctx: ScopeContext) -> RateLimitStatus:
        """Decide whether a call may proceed. Pure read."""
        if not self._kill_switch.enabled:
            return RateLimitStatus(
                allowed=False,
                reason="AI calls are disabled (kill switch active)",
                scope=KILL_SWITCH_SCOPE,
            )

        cfg = self._config
        if ctx.estimated_tokens is not None and ctx.estimated_tokens > cfg.max_tokens_per_run:
            return RateLimitStatus(
                allowed=False,
                reason=(
                    f"Estimated tokens ({ctx.estimated_tokens}) exceeds "
                    f"per-run limit ({cfg.max_tokens_per_run})"
                ),
                scope=PER_CALL_SCOPE,
            )
        if ctx.estimated_cost is not None and ctx.estimated_cost > cfg.max_cost_per_run:
            return RateLimitStatus(
                allowed=False,
                reason=(
                    f"Estimated cost (${ctx.estimated_cost:.4f}) exceeds "
                    f"per-run limit (${cfg.max_cost_per_run:.2f})"
                ),
                scope=PER_CALL_SCOPE,
            )

        now = self._clock()
        remaining_requests: int | None = None
        remaining_tokens: int | None = None
        for key in ctx.scope_keys():
            status = self._check_scope(key, ctx, now)
            if not status.allowed:
                return status
            if remaining_requests is None:
                remaining_requests = status.remaining_requests
                remaining_tokens = status.remaining_tokens

        return RateLimitStatus(
            allowed=True,
            remaining_requests=remaining_requests,
            remaining_tokens=remaining_tokens,
        )

    def _check_scope(self, key: str, ctx: ScopeContext, now: float) -> RateLimitStatus:
        label, limits = self._limits_for(key)
        scope = GLOBAL_SCOPE if key == GLOBAL_SCOPE else key.split(":", 1)[0]

        with self._lock_for(key):
            state = self._windows.get(key)
            if state is None or self._expired(state, now):
                count, tokens, cost, reset_at = 0, 0, 0.0, None
            else:
                count, tokens, cost = state.count, state.tokens, state.cost
                reset_at = state.window_start + self._config.window_seconds

        est_tokens = ctx.estimated_tokens or 0
        est_cost = ctx.estimated_cost or 0.0

        if count >= limits.max_requests:
            return RateLimitStatus(
                allowed=False,
                reason=f"{label} hourly request limit exceeded ({count}/{limits.max_requests})",
                scope=scope, remaining_requests=0, reset_at=reset_at,
            )
        if tokens >= limits.max_tokens or tokens + est_tokens > limits.max_tokens:
            return RateLimitStatus(
                allowed=False,
                reason=f"{label} hourly token limit exceeded ({tokens}/{limits.max_tokens})",
                scope=scope, remaining_tokens=max(0, limits.max_tokens - tokens),
                reset_at=reset_at,
            )
        if cost >= limits.max_cost or cost + est_cost > limits.max_cost:
            return RateLimitStatus(
                allowed=False,
                reason=(
                    f"{label} hourly cost limit exceeded "
                    f"(${cost:.4f}/${limits.max_cost:.2f})"
                ),
                scope=scope, reset_at=reset_at,
            )
        return RateLimitStatus(
            allowed=True,
            scope=scope,
            remaining_requests=limits.max_requests - count,
            remaining_tokens=limits.max_tokens - tokens,
            reset_at=reset_at,
        )

    def commit(self, ctx: ScopeContext, tokens_used: int, cost: float) -> None:
        """Charge one request plus its tokens and cost to every scope of the call."""
        now = self._clock()
        for key in ctx.scope_keys():
            with self._lock_for(key):
                state = self._windows.get(key)
                if state is None or self._expired(state, now):
                    self._windows[key] = RateLimitWindowState(
                        count=1, tokens=tokens_used, cost=cost, window_start=now,
                    )
                else:
                    state.count += 1
                    state.tokens += tokens_used
                    state.cost += cost
        logger.debug(
            "Committed usage for %s: tokens=%d cost=%.6f",
            ",".join(ctx.scope_keys()), tokens_used, cost,
        )

    def reset(self) -> None:
        """Drop every window."""
        with self._registry_lock:
            self._windows.clear()
            self._key_locks.clear()
        logger.info("Rate limit windows reset")
