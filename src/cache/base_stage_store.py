# src/cache/base_stage_store.py - v1
"""Abstract versioned stage store interface.

Versions for a key start at 1 and increase by exactly one per append.
``append_next`` must allocate the version atomically in every backend.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any

from storegen.cache.models import StageKey, StageRecord
from storegen.llm.models import TokenUsage


class BaseStageStore(ABC):
    """Unified interface for stage cache backends."""

    @abstractmethod
    async def latest(self, key: StageKey) -> StageRecord | None:
        """Highest version for the key, or None."""

    @abstractmethod
    async def get_version(self, key: StageKey, version: int) -> StageRecord | None:
        """A specific version, or None."""

    @abstractmethod
    async def append_next(
        self,
        key: StageKey,
        content: dict[str, Any],
        usage: TokenUsage,
        model: str,
    ) -> StageRecord:
        """Store content as version latest+1 and return the stored record."""

    @abstractmethod
    async def list_versions(self, key: StageKey) -> list[StageRecord]:
        """All versions for the key, oldest first."""

    def close(self) -> None:
        """Release resources held by the store."""
