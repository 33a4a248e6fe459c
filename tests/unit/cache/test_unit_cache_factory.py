# tests/unit/cache/test_unit_cache_factory.py - v2
"""Tests for cache/cache_factory.py."""

from __future__ import annotations

import pytest

from storegen.cache.cache_factory import create_stage_store
from storegen.cache.memory_store import MemoryStageStore
from storegen.cache.sqlite_store import SqliteStageStore
from storegen.config.settings import Settings


class TestCreateStageStore:
    def test_default_memory(self):
        assert isinstance(create_stage_store(), MemoryStageStore)

    def test_memory(self):
        store = create_stage_store(Settings(_env_file=None, stage_store_backend="memory"))
        assert isinstance(store, MemoryStageStore)

    def test_sqlite(self, tmp_path):
        store = create_stage_store(
            Settings(_env_file=None, stage_store_path=tmp_path / "stages.db")
        )
        assert isinstance(store, SqliteStageStore)
        store.close()

    def test_redis_without_url(self):
        settings = Settings(_env_file=None).model_copy(update={"stage_store_backend": "redis"})
        with pytest.raises(ValueError, match="STAGE_STORE_REDIS_URL"):
            create_stage_store(settings)
