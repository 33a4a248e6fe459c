# src/tracking/call_logger.py - v2
"""Usage logging: one entry per gateway call.

Entries go to a bounded in-memory ring buffer (always) and to a durable
store (when AI logging is enabled). A failing store never fails the call.
"""

from __future__ import annotations

import logging
import threading
from collections import deque

from storegen.config.settings import Settings
from storegen.tracking.base_usage_store import BaseUsageStore
from storegen.tracking.cost_calculator import summarize_usage
from storegen.tracking.models import UsageLogEntry, UsageSummary

logger = logging.getLogger(__name__)


class UsageLogger:
    """Records usage entries for cost tracking and operator inspection."""

    def __init__(
        self,
        store: BaseUsageStore | None = None,
        buffer_size: int = 1000,
        enabled: bool = True,
    ) -> None:
        self._store = store
        self._enabled = enabled
        self._buffer: deque[UsageLogEntry] = deque(maxlen=buffer_size)
        self._lock = threading.Lock()

    @property
    def store(self) -> BaseUsageStore | None:
        return self._store

    async def log(self, entry: UsageLogEntry) -> None:
        """Record an entry in the buffer and, if enabled, the durable store."""
        with self._lock:
            self._buffer.append(entry)

        logger.info(
            "%s/%s | %s | %d tokens | $%.4f | %dms | %s",
            entry.provider, entry.model, entry.feature_key, entry.total_tokens,
            entry.estimated_cost_usd, entry.latency_ms, entry.status,
        )

        if not self._enabled or self._store is None:
            return
        try:
            await self._store.write(entry)
        except Exception:
            logger.exception("Failed to persist usage entry %s", entry.id)

    def recent(self, limit: int = 100) -> list[UsageLogEntry]:
        """Most recent entries, oldest first."""
        if limit <= 0:
            return []
        with self._lock:
            entries = list(self._buffer)
        return entries[-limit:]

    def summary(
        self, tenant_id: str | None = None, user_id: str | None = None
    ) -> UsageSummary:
        """Aggregate buffered entries, optionally for one tenant or user."""
        with self._lock:
            entries = list(self._buffer)
        return summarize_usage(
            e for e in entries
            if (tenant_id is None or e.tenant_id == tenant_id)
            and (user_id is None or e.user_id == user_id)
        )

    def __len__(self) -> int:
        with self._lock:
            return len(self._buffer)


def create_usage_store(settings: Settings | None = None) -> BaseUsageStore | None:
    """Instantiate the configured durable usage store (None for "none")."""
    backend = "none" if settings is None else settings.usage_store_backend

    if backend == "none":
        return None

    if backend == "sqlite":
        from storegen.tracking.sqlite_usage_store import SqliteUsageStore
        return SqliteUsageStore(db_path=settings.usage_store_path)

    if backend == "jsonl":
        from storegen.tracking.jsonl_usage_store import JsonlUsageStore
        return JsonlUsageStore(path=settings.usage_store_path)

    raise ValueError(f"Unsupported usage store backend: {backend!r}")
