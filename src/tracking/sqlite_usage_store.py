# src/tracking/sqlite_usage_store.py - v1
"""SQLite-backed usage log (USAGE_STORE_BACKEND=sqlite).

Uses stdlib sqlite3. Rows live in the ``ai_usage_logs`` table.
"""

from __future__ import annotations

import json
import logging
import sqlite3
from datetime import datetime
from pathlib import Path
from typing import Any

from storegen.tracking.base_usage_store import BaseUsageStore
from storegen.tracking.models import UsageLogEntry

logger = logging.getLogger(__name__)

_SCHEMA = """
CREATE TABLE IF NOT EXISTS ai_usage_logs (
    id TEXT PRIMARY KEY,
    provider TEXT NOT NULL,
    model TEXT NOT NULL,
    tenant_id TEXT,
    user_id TEXT,
    feature_key TEXT NOT NULL,
    prompt_tokens INTEGER NOT NULL DEFAULT 0,
    completion_tokens INTEGER NOT NULL DEFAULT 0,
    total_tokens INTEGER NOT NULL DEFAULT 0,
    estimated_cost_usd REAL NOT NULL DEFAULT 0,
    latency_ms INTEGER NOT NULL DEFAULT 0,
    status TEXT NOT NULL,
    error_message TEXT,
    metadata TEXT NOT NULL DEFAULT '{}',
    created_at TEXT NOT NULL
);
CREATE INDEX IF NOT EXISTS idx_usage_tenant ON ai_usage_logs(tenant_id, created_at);
CREATE INDEX IF NOT EXISTS idx_usage_user ON ai_usage_logs(user_id, created_at);
"""

_COLUMNS = (
    "id", "provider", "model", "tenant_id", "user_id", "feature_key",
    "prompt_tokens", "completion_tokens", "total_tokens", "estimated_cost_usd",
    "latency_ms", "status", "error_message", "metadata", "created_at",
)


class SqliteUsageStore(BaseUsageStore):
    """SQLite usage log."""

    def __init__(self, db_path: Path | str) -> None:
        if str(db_path) == ":memory:":
            target = ":memory:"
        else:
            path = Path(db_path).expanduser()
            path.parent.mkdir(parents=True, exist_ok=True)
            target = str(path)
        self._conn = sqlite3.connect(target)
        self._conn.execute("PRAGMA journal_mode=WAL")
        self._conn.executescript(_SCHEMA)

    async def write(self, entry: UsageLogEntry) -> None:
        row = entry.model_dump()
        row["metadata"] = json.dumps(row["metadata"], default=str)
        row["created_at"] = entry.created_at.isoformat()
        placeholders = ", ".join("?" for _ in _COLUMNS)
        self._conn.execute(
            f"INSERT INTO ai_usage_logs ({', '.join(_COLUMNS)}) VALUES ({placeholders})",
            tuple(row[c] for c in _COLUMNS),
        )
        self._conn.commit()

    async def query(
        self,
        tenant_id: str | None = None,
        user_id: str | None = None,
        since: datetime | None = None,
        limit: int = 100,
    ) -> list[UsageLogEntry]:
        clauses: list[str] = []
        params: list[Any] = []
        if tenant_id is not None:
            clauses.append("tenant_id = ?")
            params.append(tenant_id)
        if user_id is not None:
            clauses.append("user_id = ?")
            params.append(user_id)
        if since is not None:
            clauses.append("created_at >= ?")
            params.append(since.isoformat())
        where = f"WHERE {' AND '.join(clauses)}" if clauses else ""

        cursor = self._conn.execute(
            f"SELECT {', '.join(_COLUMNS)} FROM ai_usage_logs {where} "
            "ORDER BY created_at DESC, rowid DESC LIMIT ?",
            (*params, limit),
        )
        entries: list[UsageLogEntry] = []
        for values in cursor.fetchall():
            row = dict(zip(_COLUMNS, values))
            row["metadata"] = json.loads(row["metadata"] or "{}")
            try:
                entries.append(UsageLogEntry(**row))
            except Exception as e:
                logger.warning("Skipping unreadable usage row %s: %s", row["id"], e)
        entries.reverse()
        return entries

    def close(self) -> None:
        """Close the database connection."""
        self._conn.close()
