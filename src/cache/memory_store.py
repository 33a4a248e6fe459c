# src/cache/memory_store.py - v1
"""In-process stage store (STAGE_STORE_BACKEND=memory).

Lost on restart. Used by tests and single-shot CLI runs.
"""

from __future__ import annotations

import threading
from typing import Any

from storegen.cache.base_stage_store import BaseStageStore
from storegen.cache.models import StageKey, StageRecord
from storegen.llm.models import TokenUsage


class MemoryStageStore(BaseStageStore):
    """Dict-of-lists stage store guarded by a lock."""

    def __init__(self) -> None:
        self._versions: dict[StageKey, list[StageRecord]] = {}
        self._lock = threading.Lock()

    async def latest(self, key: StageKey) -> StageRecord | None:
        with self._lock:
            versions = self._versions.get(key)
            return versions[-1] if versions else None

    async def get_version(self, key: StageKey, version: int) -> StageRecord | None:
        with self._lock:
            for record in self._versions.get(key, []):
                if record.version == version:
                    return record
        return None

    async def append_next(
        self,
        key: StageKey,
        content: dict[str, Any],
        usage: TokenUsage,
        model: str,
    ) -> StageRecord:
        with self._lock:
            versions = self._versions.setdefault(key, [])
            record = StageRecord(
                tenant_id=key.tenant_id,
                product_id=key.product_id,
                stage=key.stage,
                language=key.language,
                version=len(versions) + 1,
                content=content,
                usage=usage,
                model=model,
            )
            versions.append(record)
            return record

    async def list_versions(self, key: StageKey) -> list[StageRecord]:
        with self._lock:
            return list(self._versions.get(key, []))
