# src/logging/context.py - v2
"""Contextual logging support: attach tenant, user, feature and stage to records."""

from __future__ import annotations

import contextvars
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any, Iterator

_tenant_id: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "tenant_id", default=None
)
_user_id: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "user_id", default=None
)
_feature_key: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "feature_key", default=None
)
_stage: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "stage", default=None
)


@dataclass
class LogContext:
    """Snapshot of current logging context."""

    tenant_id: str | None = None
    user_id: str | None = None
    feature_key: str | None = None
    stage: str | None = None

    def as_dict(self) -> dict[str, Any]:
        """Return non-None fields as dict for JSON log injection."""
        return {k: v for k, v in self.__dict__.items() if v is not None}


def get_context() -> LogContext:
    """Snapshot current context variables."""
    return LogContext(
        tenant_id=_tenant_id.get(),
        user_id=_user_id.get(),
        feature_key=_feature_key.get(),
        stage=_stage.get(),
    )


@contextmanager
def call_context(
    tenant_id: str | None, user_id: str | None, feature_key: str | None
) -> Iterator[None]:
    """Bind caller identity for the duration of one gateway call."""
    tokens = (
        _tenant_id.set(tenant_id),
        _user_id.set(user_id),
        _feature_key.set(feature_key),
    )
    try:
        yield
    finally:
        _feature_key.reset(tokens[2])
        _user_id.reset(tokens[1])
        _tenant_id.reset(tokens[0])


@contextmanager
def stage_context(stage: str) -> Iterator[None]:
    """Bind the pipeline stage being generated."""
    token = _stage.set(stage)
    try:
        yield
    finally:
        _stage.reset(token)


def clear_context() -> None:
    """Reset all context variables."""
    _tenant_id.set(None)
    _user_id.set(None)
    _feature_key.set(None)
    _stage.set(None)
