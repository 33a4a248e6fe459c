# tests/unit/cache/test_unit_stage_stores.py - v2
"""Tests for cache/memory_store.py and cache/sqlite_store.py."""

from __future__ import annotations

import asyncio

import pytest

from storegen.cache.memory_store import MemoryStageStore
from storegen.cache.models import StageKey
from storegen.cache.sqlite_store import SqliteStageStore
from storegen.llm.models import TokenUsage

KEY = StageKey("t1", "p1", "intelligence", "ar")
USAGE = TokenUsage(prompt_tokens=10, completion_tokens=5, total_tokens=15)


@pytest.fixture(params=["memory", "sqlite"])
def store(request):
    s = MemoryStageStore() if request.param == "memory" else SqliteStageStore(":memory:")
    yield s
    s.close()


class TestStageStores:
    @pytest.mark.asyncio
    async def test_empty(self, store):
        assert await store.latest(KEY) is None
        assert await store.get_version(KEY, 1) is None
        assert await store.list_versions(KEY) == []

    @pytest.mark.asyncio
    async def test_versions_increment(self, store):
        first = await store.append_next(KEY, {"category": "a"}, USAGE, "gemini-2.0-flash")
        second = await store.append_next(KEY, {"category": "b"}, USAGE, "gemini-2.0-flash")
        assert (first.version, second.version) == (1, 2)

        latest = await store.latest(KEY)
        assert latest.version == 2
        assert latest.content == {"category": "b"}
        assert latest.usage == USAGE
        assert latest.model == "gemini-2.0-flash"
        assert latest.key == KEY

        assert (await store.get_version(KEY, 1)).content == {"category": "a"}
        assert [r.version for r in await store.list_versions(KEY)] == [1, 2]

    @pytest.mark.asyncio
    async def test_keys_are_independent(self, store):
        await store.append_next(KEY, {"category": "a"}, USAGE, "m")
        other_language = StageKey("t1", "p1", "intelligence", "en")
        other_tenant = StageKey("t2", "p1", "intelligence", "ar")
        assert await store.latest(other_language) is None
        assert await store.latest(other_tenant) is None
        assert (await store.append_next(other_language, {}, USAGE, "m")).version == 1

    @pytest.mark.asyncio
    async def test_concurrent_appends_unique_versions(self, store):
        records = await asyncio.gather(*(
            store.append_next(KEY, {"n": n}, USAGE, "m") for n in range(10)
        ))
        assert sorted(r.version for r in records) == list(range(1, 11))

    @pytest.mark.asyncio
    async def test_unicode_content(self, store):
        await store.append_next(KEY, {"category": "أدوات المطبخ"}, USAGE, "m")
        assert (await store.latest(KEY)).content["category"] == "أدوات المطبخ"


class TestSqliteStageStore:
    @pytest.mark.asyncio
    async def test_persists_to_file(self, tmp_path):
        path = tmp_path / "cache" / "stages.db"
        store = SqliteStageStore(path)
        await store.append_next(KEY, {"category": "a"}, USAGE, "m")
        store.close()

        reopened = SqliteStageStore(path)
        assert (await reopened.latest(KEY)).version == 1
        assert (await reopened.append_next(KEY, {}, USAGE, "m")).version == 2
        reopened.close()

    @pytest.mark.asyncio
    async def test_latest_falls_back_past_corrupt_newest(self):
        store = SqliteStageStore(":memory:")
        await store.append_next(KEY, {"category": "a"}, USAGE, "m")
        await store.append_next(KEY, {"category": "b"}, USAGE, "m")
        with store._conn:
            store._conn.execute(
                "UPDATE stage_results SET content = '{broken' WHERE version = 2"
            )

        latest = await store.latest(KEY)
        assert latest.version == 1
        assert latest.content == {"category": "a"}
        assert await store.get_version(KEY, 2) is None
        assert (await store.append_next(KEY, {}, USAGE, "m")).version == 3
        store.close()
