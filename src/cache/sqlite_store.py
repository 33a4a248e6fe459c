# src/cache/sqlite_store.py - v3
"""SQLite-based stage store (STAGE_STORE_BACKEND=sqlite).

Uses stdlib sqlite3. The next version is computed inside the INSERT
statement itself, and the primary key on (key..., version) rejects any
duplicate, so two writers can never share a version.
"""

from __future__ import annotations

import json
import logging
import sqlite3
from datetime import datetime
from pathlib import Path
from typing import Any

from storegen.cache.base_stage_store import BaseStageStore
from storegen.cache.models import StageKey, StageRecord
from storegen.llm.models import TokenUsage

logger = logging.getLogger(__name__)

_SCHEMA = """
CREATE TABLE IF NOT EXISTS stage_results (
    tenant_id TEXT NOT NULL,
    product_id TEXT NOT NULL,
    stage TEXT NOT NULL,
    language TEXT NOT NULL,
    version INTEGER NOT NULL,
    content TEXT NOT NULL,
    usage TEXT NOT NULL,
    model TEXT NOT NULL DEFAULT '',
    created_at TEXT NOT NULL,
    PRIMARY KEY (tenant_id, product_id, stage, language, version)
);
"""

_SELECT = (
    "SELECT tenant_id, product_id, stage, language, version, content, usage, model, created_at "
    "FROM stage_results WHERE tenant_id = ? AND product_id = ? AND stage = ? AND language = ?"
)


def _key_params(key: StageKey) -> tuple[str, str, str, str]:
    return (key.tenant_id, key.product_id, key.stage, key.language)


class SqliteStageStore(BaseStageStore):
    """SQLite-backed versioned stage store."""

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

    def _row_to_record(self, row: tuple) -> StageRecord | None:
        try:
            return StageRecord(
                tenant_id=row[0],
                product_id=row[1],
                stage=row[2],
                language=row[3],
                version=row[4],
                content=json.loads(row[5]),
                usage=TokenUsage(**json.loads(row[6])),
                model=row[7],
                created_at=datetime.fromisoformat(row[8]),
            )
        except Exception as e:
            logger.warning("Failed to deserialize stage row %s v%s: %s", row[:4], row[4], e)
            return None

    async def latest(self, key: StageKey) -> StageRecord | None:
        """Newest readable version; walks back past rows that fail to decode."""
        cursor = self._conn.execute(f"{_SELECT} ORDER BY version DESC", _key_params(key))
        for row in cursor:
            record = self._row_to_record(row)
            if record is not None:
                return record
        return None

    async def get_version(self, key: StageKey, version: int) -> StageRecord | None:
        cursor = self._conn.execute(
            f"{_SELECT} AND version = ?", (*_key_params(key), version)
        )
        row = cursor.fetchone()
        return None if row is None else self._row_to_record(row)

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
        with self._conn:
            cursor = self._conn.execute(
                """INSERT INTO stage_results
                   (tenant_id, product_id, stage, language, version,
                    content, usage, model, created_at)
                   SELECT ?, ?, ?, ?, COALESCE(MAX(version), 0) + 1, ?, ?, ?, ?
                   FROM stage_results
                   WHERE tenant_id = ? AND product_id = ? AND stage = ? AND language = ?""",
                (
                    *_key_params(key),
                    json.dumps(content, ensure_ascii=False),
                    usage.model_dump_json(),
                    model,
                    draft.created_at.isoformat(),
                    *_key_params(key),
                ),
            )
            row = self._conn.execute(
                "SELECT version FROM stage_results WHERE rowid = ?", (cursor.lastrowid,)
            ).fetchone()
        return draft.model_copy(update={"version": row[0]})

    async def list_versions(self, key: StageKey) -> list[StageRecord]:
        cursor = self._conn.execute(f"{_SELECT} ORDER BY version ASC", _key_params(key))
        records = [self._row_to_record(row) for row in cursor.fetchall()]
        return [r for r in records if r is not None]

    def close(self) -> None:
        """Close the database connection."""
        self._conn.close()
