# src/cache/models.py - v2
"""Stage cache domain models: StageKey, StageRecord."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Literal

from pydantic import BaseModel, Field

from storegen.llm.models import TokenUsage

StageName = Literal["intelligence", "landing", "ads"]
Language = Literal["ar", "en"]


@dataclass(frozen=True)
class StageKey:
    """Identity of one cacheable stage output; versions hang off it."""

    tenant_id: str
    product_id: str
    stage: str
    language: str

    def as_string(self) -> str:
        return f"{self.tenant_id}:{self.product_id}:{self.stage}:{self.language}"


class StageRecord(BaseModel):
    """One persisted version of a stage output. Append-only."""

    tenant_id: str
    product_id: str
    stage: StageName
    language: str
    version: int = Field(ge=1)
    content: dict[str, Any]
    usage: TokenUsage = Field(default_factory=TokenUsage)
    model: str = ""
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def key(self) -> StageKey:
        return StageKey(self.tenant_id, self.product_id, self.stage, self.language)
