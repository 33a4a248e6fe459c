# tests/unit/tracking/test_unit_usage_stores.py - v1
"""Tests for tracking/sqlite_usage_store.py and tracking/jsonl_usage_store.py."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from storegen.tracking.jsonl_usage_store import JsonlUsageStore
from storegen.tracking.sqlite_usage_store import SqliteUsageStore
from storegen.tracking.models import UsageLogEntry

T0 = datetime(2026, 1, 1, 12, 0, tzinfo=timezone.utc)


def _entry(n: int, **kwargs) -> UsageLogEntry:
    defaults = dict(
        provider="gemini", model="gemini-2.0-flash", feature_key="pipeline_intelligence",
        tenant_id="t1", user_id="u1", total_tokens=n, status="completed",
        metadata={"product_id": "p1"}, created_at=T0 + timedelta(minutes=n),
    )
    defaults.update(kwargs)
    return UsageLogEntry(**defaults)


@pytest.fixture(params=["sqlite", "jsonl"])
def store(request, tmp_path):
    if request.param == "sqlite":
        s = SqliteUsageStore(":memory:")
    else:
        s = JsonlUsageStore(tmp_path / "logs" / "usage.jsonl")
    yield s
    s.close()


class TestUsageStores:
    @pytest.mark.asyncio
    async def test_write_and_query(self, store):
        await store.write(_entry(1))
        entries = await store.query()
        assert len(entries) == 1
        assert entries[0].total_tokens == 1
        assert entries[0].metadata == {"product_id": "p1"}
        assert entries[0].created_at == T0 + timedelta(minutes=1)

    @pytest.mark.asyncio
    async def test_filters(self, store):
        await store.write(_entry(1))
        await store.write(_entry(2, tenant_id="t2"))
        await store.write(_entry(3, user_id="u2"))
        assert [e.total_tokens for e in await store.query(tenant_id="t1")] == [1, 3]
        assert [e.total_tokens for e in await store.query(user_id="u2")] == [3]
        since = T0 + timedelta(minutes=2)
        assert [e.total_tokens for e in await store.query(since=since)] == [2, 3]

    @pytest.mark.asyncio
    async def test_limit_keeps_most_recent_oldest_first(self, store):
        for n in range(1, 6):
            await store.write(_entry(n))
        assert [e.total_tokens for e in await store.query(limit=2)] == [4, 5]

    @pytest.mark.asyncio
    async def test_empty(self, store):
        assert await store.query() == []


class TestJsonlStore:
    @pytest.mark.asyncio
    async def test_skips_malformed_lines(self, tmp_path):
        path = tmp_path / "usage.jsonl"
        store = JsonlUsageStore(path)
        await store.write(_entry(1))
        with path.open("a", encoding="utf-8") as f:
            f.write("{not json\n")
        await store.write(_entry(2))
        assert [e.total_tokens for e in await store.query()] == [1, 2]


class TestSqliteStore:
    @pytest.mark.asyncio
    async def test_persists_to_file(self, tmp_path):
        path = tmp_path / "nested" / "usage.db"
        store = SqliteUsageStore(path)
        await store.write(_entry(1))
        store.close()

        reopened = SqliteUsageStore(path)
        assert len(await reopened.query()) == 1
        reopened.close()
