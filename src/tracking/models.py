# src/tracking/models.py - v2
"""Tracking domain models: UsageLogEntry, UsageSummary, ModelPricing."""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field

UsageStatus = Literal["pending", "completed", "failed", "rate_limited"]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class UsageLogEntry(BaseModel):
    """One gateway call, whatever its outcome. Immutable once written."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    provider: str
    model: str
    tenant_id: str | None = None
    user_id: str | None = None
    feature_key: str
    prompt_tokens: int = 0
    completion_tokens: int = 0
    total_tokens: int = 0
    estimated_cost_usd: float = 0.0
    latency_ms: int = 0
    status: UsageStatus
    error_message: str | None = None
    metadata: dict[str, Any] = Field(default_factory=dict)
    created_at: datetime = Field(default_factory=_utcnow)


class UsageBucket(BaseModel):
    requests: int = 0
    tokens: int = 0
    cost: float = 0.0


class UsageSummary(BaseModel):
    """Aggregated usage over a set of log entries."""

    total_requests: int = 0
    total_tokens: int = 0
    total_cost_usd: float = 0.0
    failed_requests: int = 0
    rate_limited_requests: int = 0
    by_feature: dict[str, UsageBucket] = {}
    by_provider: dict[str, UsageBucket] = {}


class ModelPricing(BaseModel):
    """Price per 1M tokens for one model."""

    model: str
    input_price_per_1m: float
    output_price_per_1m: float
