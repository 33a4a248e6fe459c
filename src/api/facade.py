# src/api/facade.py - v2
"""Public API facade: wires settings into a ready gateway and pipeline.

Usage:
    from storegen.api.facade import build_services
    services = build_services()
    result = await services.pipeline.run_full_pipeline("t1", "p1", language="ar")
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

from storegen.cache.base_stage_store import BaseStageStore
from storegen.cache.cache_factory import create_stage_store
from storegen.config.settings import Settings
from storegen.gateway.ai_gateway import AIGateway
from storegen.guard.kill_switch import KillSwitch
from storegen.guard.models import RateLimitConfig
from storegen.guard.rate_limiter import RateLimiter
from storegen.llm.base_client import BaseProviderAdapter
from storegen.llm.client_factory import create_provider_adapter
from storegen.pipeline.entitlements import BaseEntitlementService
from storegen.pipeline.generation_pipeline import GenerationPipeline
from storegen.pipeline.products import BaseProductRepository, InMemoryProductRepository
from storegen.tracking.base_usage_store import BaseUsageStore
from storegen.tracking.call_logger import UsageLogger, create_usage_store

logger = logging.getLogger(__name__)


@dataclass
class Services:
    """Everything a caller needs, sharing one kill switch and one limiter."""

    settings: Settings
    kill_switch: KillSwitch
    rate_limiter: RateLimiter
    usage_logger: UsageLogger
    gateway: AIGateway
    stage_store: BaseStageStore
    pipeline: GenerationPipeline

    def close(self) -> None:
        """Close synchronous store handles (SQLite)."""
        self.stage_store.close()
        if self.usage_logger.store is not None:
            self.usage_logger.store.close()


def build_gateway(
    settings: Settings | None = None,
    adapter: BaseProviderAdapter | None = None,
    usage_store: BaseUsageStore | None = None,
    kill_switch: KillSwitch | None = None,
    **adapter_kwargs: Any,
) -> AIGateway:
    """Build an AIGateway from settings.

    Args:
        settings: Global settings. Loaded from .env if None.
        adapter: Provider adapter. Built from settings if None.
        usage_store: Durable usage store. Built from settings if None.
        kill_switch: Shared kill switch. Defaults from ENABLE_AI_CALLS.
        **adapter_kwargs: Forwarded to the adapter factory (http_client, sleep).
    """
    settings = settings or Settings()
    kill_switch = kill_switch or KillSwitch(enabled=settings.enable_ai_calls)
    adapter = adapter or create_provider_adapter(settings, **adapter_kwargs)
    if usage_store is None:
        usage_store = create_usage_store(settings)

    limiter = RateLimiter(RateLimitConfig.from_settings(settings), kill_switch=kill_switch)
    usage_logger = UsageLogger(
        store=usage_store,
        buffer_size=settings.usage_log_buffer_size,
        enabled=settings.enable_ai_logging,
    )
    gateway = AIGateway(adapter, limiter, usage_logger)

    for problem in gateway.validate():
        logger.warning("AI configuration: %s", problem)
    return gateway


def build_services(
    settings: Settings | None = None,
    adapter: BaseProviderAdapter | None = None,
    products: BaseProductRepository | None = None,
    entitlements: BaseEntitlementService | None = None,
    stage_store: BaseStageStore | None = None,
    usage_store: BaseUsageStore | None = None,
    **adapter_kwargs: Any,
) -> Services:
    """Build gateway, stores and pipeline sharing one kill switch and limiter.

    Entitlements are enforced only when ENTITLEMENTS_ENFORCED is true and
    an entitlement service is supplied.
    """
    settings = settings or Settings()
    gateway = build_gateway(settings, adapter=adapter, usage_store=usage_store, **adapter_kwargs)
    stage_store = stage_store or create_stage_store(settings)

    if settings.entitlements_enforced and entitlements is None:
        logger.warning("ENTITLEMENTS_ENFORCED is set but no entitlement service was supplied")

    pipeline = GenerationPipeline(
        gateway=gateway,
        store=stage_store,
        products=products or InMemoryProductRepository(),
        entitlements=entitlements if settings.entitlements_enforced else None,
        max_tokens_per_stage=settings.pipeline_max_tokens_per_stage,
        temperature=settings.pipeline_temperature,
    )
    return Services(
        settings=settings,
        kill_switch=gateway.kill_switch,
        rate_limiter=gateway.rate_limiter,
        usage_logger=gateway.usage_logger,
        gateway=gateway,
        stage_store=stage_store,
        pipeline=pipeline,
    )
