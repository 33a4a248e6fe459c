# src/tracking/jsonl_usage_store.py - v1
"""JSON Lines usage log (USAGE_STORE_BACKEND=jsonl).

One entry per line, appended. Queries scan the file.
"""

from __future__ import annotations

import json
import logging
from datetime import datetime
from pathlib import Path

from storegen.tracking.base_usage_store import BaseUsageStore
from storegen.tracking.models import UsageLogEntry

logger = logging.getLogger(__name__)


class JsonlUsageStore(BaseUsageStore):
    """Append-only JSONL usage log."""

    def __init__(self, path: Path | str) -> None:
        self._path = Path(path).expanduser()
        self._path.parent.mkdir(parents=True, exist_ok=True)

    async def write(self, entry: UsageLogEntry) -> None:
        with self._path.open("a", encoding="utf-8") as f:
            f.write(entry.model_dump_json() + "\n")

    async def query(
        self,
        tenant_id: str | None = None,
        user_id: str | None = None,
        since: datetime | None = None,
        limit: int = 100,
    ) -> list[UsageLogEntry]:
        if not self._path.exists():
            return []

        matches: list[UsageLogEntry] = []
        with self._path.open(encoding="utf-8") as f:
            for lineno, line in enumerate(f, start=1):
                if not line.strip():
                    continue
                try:
                    entry = UsageLogEntry(**json.loads(line))
                except Exception as e:
                    logger.warning("Skipping malformed usage line %d in %s: %s", lineno, self._path, e)
                    continue
                if tenant_id is not None and entry.tenant_id != tenant_id:
                    continue
                if user_id is not None and entry.user_id != user_id:
                    continue
                if since is not None and entry.created_at < since:
                    continue
                matches.append(entry)
        return matches[-limit:] if limit > 0 else []
