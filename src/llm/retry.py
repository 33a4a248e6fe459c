# src/llm/retry.py - v3
"""Provider-call retry policy with exponential backoff.

Only transient failures are retried: HTTP 429, 500 and 503 and timeouts.
Every other error propagates on the first attempt, unchanged.
"""

from __future__ import annotations

import asyncio
import logging
import re
from dataclasses import dataclass
from typing import Any, Awaitable, Callable

from storegen.core.errors import ProviderUnavailableError

logger = logging.getLogger(__name__)

_RETRYABLE_STATUS: dict[int, str] = {
    429: "rate_limit",
    500: "server_error",
    503: "service_unavailable",
}
# "Error code: 503", "status code 429", "HTTP 500"; bare numbers do not count
_STATUS_IN_MESSAGE = re.compile(
    r"\b(?:error code|status code|status|http)\s*[:=]?\s*(429|500|503)\b", re.IGNORECASE
)

Sleep = Callable[[float], Awaitable[Any]]


@dataclass(frozen=True)
class RetryPolicy:
    """Attempt budget and backoff base for one provider."""

    max_retries: int = 3
    retry_delay_ms: int = 1000

    def delay_for(self, attempt: int) -> float:
        """Seconds to wait after the given failed attempt (1-based)."""
        return self.retry_delay_ms * (2 ** (attempt - 1)) / 1000.0


def classify_error(error: BaseException) -> str | None:
    """Return the transient error kind, or None when the error is permanent."""
    if isinstance(error, (asyncio.TimeoutError, TimeoutError)):
        return "timeout"
    if "timeout" in type(error).__name__.lower():
        return "timeout"

    status = getattr(error, "status_code", None)
    if isinstance(status, int):
        return _RETRYABLE_STATUS.get(status)

    match = _STATUS_IN_MESSAGE.search(str(error))
    if match:
        return _RETRYABLE_STATUS[int(match.group(1))]
    return None


async def with_retry(
    fn: Callable[[], Awaitable[Any]],
    *,
    provider: str,
    policy: RetryPolicy | None = None,
    sleep: Sleep = asyncio.sleep,
) -> Any:
    """Call ``fn`` until it succeeds or the attempt budget is spent.

    Raises:
        ProviderUnavailableError: The last allowed attempt failed transiently.
    """
    policy = policy or RetryPolicy()
    attempt = 0

    while True:
        attempt += 1
        try:
            return await fn()
        except Exception as e:
            kind = classify_error(e)
            if kind is None:
                raise
            if attempt >= policy.max_retries:
                raise ProviderUnavailableError(provider, attempt, kind, e) from e

            delay = policy.delay_for(attempt)
            logger.warning(
                "Provider '%s' %s (attempt %d/%d), retrying in %.1fs: %s",
                provider, kind, attempt, policy.max_retries, delay, e,
            )
            await sleep(delay)
