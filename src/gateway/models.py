# src/gateway/models.py - v1
"""Gateway call context and operator status."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from pydantic import BaseModel

from storegen.guard.models import ScopeContext

LEGACY_FEATURE_KEY = "legacy_invoke_llm"


@dataclass(frozen=True)
class CallContext:
    """Who is calling the gateway and for which feature."""

    feature_key: str
    tenant_id: str | None = None
    user_id: str | None = None
    estimated_tokens: int | None = None
    estimated_cost: float | None = None
    metadata: dict[str, Any] = field(default_factory=dict)

    def to_scope(self) -> ScopeContext:
        return ScopeContext(
            tenant_id=self.tenant_id,
            user_id=self.user_id,
            estimated_tokens=self.estimated_tokens,
            estimated_cost=self.estimated_cost,
        )


class GatewayStatus(BaseModel):
    enabled: bool
    provider: str
    configured: bool
    model: str
