# src/cache/cache_factory.py - v3
"""Factory for stage store instantiation."""

from __future__ import annotations

from storegen.cache.base_stage_store import BaseStageStore
from storegen.config.settings import Settings


def create_stage_store(settings: Settings | None = None) -> BaseStageStore:
    """Instantiate the configured stage store backend.

    Args:
        settings: Application settings. Defaults to the in-memory backend.

    Returns:
        Configured BaseStageStore implementation.
    """
    backend = "memory" if settings is None else settings.stage_store_backend

    if backend == "memory":
        from storegen.cache.memory_store import MemoryStageStore
        return MemoryStageStore()

    if backend == "sqlite":
        from storegen.cache.sqlite_store import SqliteStageStore
        return SqliteStageStore(db_path=settings.stage_store_path)

    if backend == "redis":
        from storegen.cache.redis_store import RedisStageStore
        if not settings.stage_store_redis_url:
            raise ValueError(
                "STAGE_STORE_REDIS_URL must be set when STAGE_STORE_BACKEND=redis"
            )
        return RedisStageStore(redis_url=settings.stage_store_redis_url)

    raise ValueError(f"Unsupported stage store backend: {backend!r}")
