# src/cache/redis_store.py - v3
"""Redis-based stage store (STAGE_STORE_BACKEND=redis).

Requires 'redis' package: pip install redis.
Suitable for multi-instance deployments. Each key owns one hash of
version -> record; a Lua script computes HLEN + 1 and writes that field
in a single server-side step, so versions stay gap-free even when a
write fails.
"""

from __future__ import annotations

import json
import logging
from typing import Any

from storegen.cache.base_stage_store import BaseStageStore
from storegen.cache.models import StageKey, StageRecord
from storegen.llm.models import TokenUsage

logger = logging.getLogger(__name__)

_KEY_PREFIX = "storegen:stage:"

# KEYS[1] = versions hash, ARGV[1] = record JSON without its version
_APPEND_SCRIPT = """
local version = redis.call('HLEN', KEYS[1]) + 1
redis.call('HSET', KEYS[1], tostring(version), ARGV[1])
return version
"""


class RedisStageStore(BaseStageStore):
    """Redis-backed versioned stage store."""

    def __init__(self, redis_url: str = "", client: Any = None) -> None:
        if client is None:
            try:
                import redis.asyncio as aioredis
            except ImportError as e:
                raise ImportError(
                    "redis package required: pip install redis"
                ) from e
            client = aioredis.from_url(redis_url, decode_responses=True)
        self._client = client

    @staticmethod
    def _versions_key(key: StageKey) -> str:
        return f"{_KEY_PREFIX}{key.as_string()}:versions"

    @staticmethod
    def _decode(key: StageKey, field: Any, raw: str) -> StageRecord | None:
        try:
            return StageRecord.model_validate({**json.loads(raw), "version": int(field)})
        except Exception as e:
            logger.warning(
                "Failed to deserialize stage entry %s v%s: %s", key.as_string(), field, e
            )
            return None

    async def latest(self, key: StageKey) -> StageRecord | None:
        """Newest readable version; walks back past entries that fail to decode."""
        hash_key = self._versions_key(key)
        version = int(await self._client.hlen(hash_key))
        while version > 0:
            raw = await self._client.hget(hash_key, str(version))
            if raw is not None:
                record = self._decode(key, version, raw)
                if record is not None:
                    return record
            version -= 1
        return None

    async def get_version(self, key: StageKey, version: int) -> StageRecord | None:
        raw = await self._client.hget(self._versions_key(key), str(version))
        return None if raw is None else self._decode(key, version, raw)

    async def append_next(
        self,
        key: StageKey,
        content: dict[str, Any],
        usage: TokenUsage,
        model: str,
    ) -> StageRecord:
        draft = StageRecord(
            tenant_id=key.tenant_id,
            product_id=key.product_id,
            stage=key.stage,
            language=key.language,
            version=1,
            content=content,
            usage=usage,
            model=model,
        )
        payload = draft.model_dump_json(exclude={"version"})
        version = await self._client.eval(_APPEND_SCRIPT, 1, self._versions_key(key), payload)
        return draft.model_copy(update={"version": int(version)})

    async def list_versions(self, key: StageKey) -> list[StageRecord]:
        raw_map = await self._client.hgetall(self._versions_key(key))
        records = [self._decode(key, field, raw) for field, raw in raw_map.items()]
        return sorted((r for r in records if r is not None), key=lambda r: r.version)

    async def aclose(self) -> None:
        """Close the Redis connection."""
        await self._client.aclose()
