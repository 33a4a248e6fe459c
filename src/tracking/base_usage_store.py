# src/tracking/base_usage_store.py - v1
"""Abstract durable usage-log store interface."""

from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import datetime

from storegen.tracking.models import UsageLogEntry


class BaseUsageStore(ABC):
    """Append-only persistence for usage log entries."""

    @abstractmethod
    async def write(self, entry: UsageLogEntry) -> None:
        """Persist one entry."""

    @abstractmethod
    async def query(
        self,
        tenant_id: str | None = None,
        user_id: str | None = None,
        since: datetime | None = None,
        limit: int = 100,
    ) -> list[UsageLogEntry]:
        """Return the most recent matching entries, oldest first."""

    def close(self) -> None:
        """Release resources held by the store."""
