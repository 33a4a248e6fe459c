# tests/unit/pipeline/test_unit_generation_pipeline.py - v1
"""Tests for pipeline/generation_pipeline.py - scripted provider, memory store."""

from __future__ import annotations

import asyncio

import pytest

from storegen.cache.memory_store import MemoryStageStore
from storegen.core.errors import (
    EntitlementError,
    InvalidRequestError,
    PipelineStageError,
    ProductNotFoundError,
    ProviderUnavailableError,
    RateLimitedError,
    SchemaParseError,
)
from storegen.gateway.ai_gateway import AIGateway
from storegen.guard.models import RateLimitConfig
from storegen.guard.rate_limiter import RateLimiter
from storegen.pipeline.entitlements import AddonSubscription, InMemoryEntitlementService
from storegen.pipeline.generation_pipeline import GenerationPipeline
from storegen.tracking.call_logger import UsageLogger


def _pipeline(provider, products, entitlements=None, config=None) -> GenerationPipeline:
    gateway = AIGateway(provider, RateLimiter(config), UsageLogger())
    return GenerationPipeline(gateway, MemoryStageStore(), products, entitlements)


def _entitlements(*addons: str, units: int = 5) -> InMemoryEntitlementService:
    return InMemoryEntitlementService([
        AddonSubscription(tenant_id="t1", addon=addon, usage_remaining=units) for addon in addons
    ])


ALL_ADDONS = ("product_intelligence", "landing_page", "meta_ads")


class TestRunStage:
    @pytest.mark.asyncio
    async def test_generates_then_caches(self, fake_provider, product_repo, stage_payloads):
        pipeline = _pipeline(fake_provider, product_repo)

        first = await pipeline.run_stage("intelligence", "t1", "p1")
        assert first.from_cache is False
        assert first.version == 1
        assert first.language == "ar"
        assert first.content == stage_payloads["product_intelligence"]
        assert first.usage.total_tokens == 150

        second = await pipeline.run_stage("intelligence", "t1", "p1")
        assert second.from_cache is True
        assert second.version == 1
        assert second.content == first.content
        assert fake_provider.calls == 1

    @pytest.mark.asyncio
    async def test_force_creates_new_version(self, fake_provider, product_repo):
        pipeline = _pipeline(fake_provider, product_repo)
        await pipeline.run_stage("intelligence", "t1", "p1")
        forced = await pipeline.run_stage("intelligence", "t1", "p1", force_regenerate=True)
        assert forced.version == 2
        assert forced.from_cache is False
        assert [r.version for r in await pipeline.stage_history("intelligence", "t1", "p1")] == [1, 2]

    @pytest.mark.asyncio
    async def test_languages_cached_separately(self, fake_provider, product_repo):
        pipeline = _pipeline(fake_provider, product_repo)
        await pipeline.run_stage("intelligence", "t1", "p1", language="ar")
        en = await pipeline.run_stage("intelligence", "t1", "p1", language="en")
        assert en.from_cache is False
        assert fake_provider.calls == 2

    @pytest.mark.asyncio
    async def test_missing_upstream_generated_first(self, fake_provider, product_repo):
        pipeline = _pipeline(fake_provider, product_repo)
        landing = await pipeline.run_stage("landing", "t1", "p1", language="en")
        assert landing.content["headline"] == "The widget your kitchen was missing"
        assert fake_provider.schema_calls("product_intelligence") == 1
        assert "Category: Home & Kitchen" in fake_provider.json_requests[-1].prompt

    @pytest.mark.asyncio
    async def test_force_does_not_regenerate_upstream(self, fake_provider, product_repo):
        pipeline = _pipeline(fake_provider, product_repo)
        await pipeline.run_stage("landing", "t1", "p1")
        await pipeline.run_stage("landing", "t1", "p1", force_regenerate=True)
        assert fake_provider.schema_calls("product_intelligence") == 1
        assert fake_provider.schema_calls("landing_page") == 2

    @pytest.mark.asyncio
    async def test_request_shape(self, fake_provider, product_repo):
        pipeline = _pipeline(fake_provider, product_repo)
        await pipeline.run_stage("intelligence", "t1", "p1", user_id="u1")
        request = fake_provider.json_requests[0]
        assert request.output_schema.name == "product_intelligence"
        assert request.max_tokens == 4096
        assert request.temperature == 0.7
        [entry] = pipeline._gateway.recent_usage()
        assert entry.feature_key == "pipeline_intelligence"
        assert entry.user_id == "u1"
        assert entry.metadata == {"product_id": "p1", "stage": "intelligence", "language": "ar"}

    @pytest.mark.asyncio
    async def test_invalid_stage_and_language(self, fake_provider, product_repo):
        pipeline = _pipeline(fake_provider, product_repo)
        with pytest.raises(InvalidRequestError, match="Unknown stage"):
            await pipeline.run_stage("video", "t1", "p1")
        with pytest.raises(InvalidRequestError, match="Unsupported language"):
            await pipeline.run_stage("intelligence", "t1", "p1", language="fr")
        assert fake_provider.calls == 0

    @pytest.mark.asyncio
    async def test_product_not_found(self, fake_provider, product_repo):
        pipeline = _pipeline(fake_provider, product_repo)
        with pytest.raises(ProductNotFoundError):
            await pipeline.run_stage("intelligence", "t2", "p1")

    @pytest.mark.asyncio
    async def test_invalid_output_not_stored(self, make_provider, product_repo):
        provider = make_provider(overrides={"product_intelligence": {"unexpected": True}})
        pipeline = _pipeline(provider, product_repo)
        with pytest.raises(SchemaParseError):
            await pipeline.run_stage("intelligence", "t1", "p1")
        assert await pipeline.get_stage("intelligence", "t1", "p1") is None
        assert pipeline._gateway.recent_usage()[0].status == "completed"

    @pytest.mark.asyncio
    async def test_per_call_ceiling(self, fake_provider, product_repo):
        pipeline = _pipeline(fake_provider, product_repo, config=RateLimitConfig(max_tokens_per_run=1000))
        with pytest.raises(RateLimitedError, match="per-run limit"):
            await pipeline.run_stage("intelligence", "t1", "p1")
        assert fake_provider.calls == 0


class TestConcurrency:
    @pytest.mark.asyncio
    async def test_concurrent_callers_share_one_generation(self, make_provider, product_repo):
        provider = make_provider(delay=0.01)
        pipeline = _pipeline(provider, product_repo)
        results = await asyncio.gather(*(
            pipeline.run_stage("intelligence", "t1", "p1") for _ in range(5)
        ))
        assert provider.calls == 1
        assert {r.version for r in results} == {1}
        assert sum(not r.from_cache for r in results) == 1

    @pytest.mark.asyncio
    async def test_concurrent_forced_versions_unique(self, make_provider, product_repo):
        provider = make_provider(delay=0.01)
        pipeline = _pipeline(provider, product_repo)
        results = await asyncio.gather(*(
            pipeline.run_stage("intelligence", "t1", "p1", force_regenerate=True)
            for _ in range(4)
        ))
        assert sorted(r.version for r in results) == [1, 2, 3, 4]


class TestFullPipeline:
    @pytest.mark.asyncio
    async def test_runs_all_stages(self, fake_provider, product_repo):
        pipeline = _pipeline(fake_provider, product_repo)
        result = await pipeline.run_full_pipeline("t1", "p1", language="en")
        assert result.intelligence.content["category"] == "Home & Kitchen"
        assert result.landing.content["headline"]
        assert result.ads.content["campaignObjective"] == "conversions"
        assert result.total_tokens_used == 450
        assert [r.output_schema.name for r in fake_provider.json_requests] == [
            "product_intelligence", "landing_page", "meta_ads",
        ]
        assert "Landing page headline: The widget" in fake_provider.json_requests[2].prompt

    @pytest.mark.asyncio
    async def test_second_run_fully_cached(self, fake_provider, product_repo):
        pipeline = _pipeline(fake_provider, product_repo)
        await pipeline.run_full_pipeline("t1", "p1")
        again = await pipeline.run_full_pipeline("t1", "p1")
        assert again.total_tokens_used == 0
        assert all(r.from_cache for r in (again.intelligence, again.landing, again.ads))
        assert fake_provider.calls == 3

    @pytest.mark.asyncio
    async def test_failure_keeps_completed_stages(self, make_provider, product_repo):
        error = ProviderUnavailableError("gemini", 3, "service_unavailable", RuntimeError("503"))
        provider = make_provider(overrides={"landing_page": error})
        pipeline = _pipeline(provider, product_repo)

        with pytest.raises(PipelineStageError) as exc_info:
            await pipeline.run_full_pipeline("t1", "p1")
        err = exc_info.value
        assert err.stage == "landing"
        assert err.cause is error
        assert list(err.completed) == ["intelligence"]
        assert err.state.failed_stage == "landing"
        assert err.state.stages == {"intelligence": "done", "landing": "error", "ads": "not_started"}
        assert provider.schema_calls("meta_ads") == 0

        del provider.overrides["landing_page"]
        resumed = await pipeline.run_full_pipeline("t1", "p1")
        assert resumed.intelligence.from_cache is True
        assert resumed.landing.from_cache is False
        assert resumed.total_tokens_used == 300
        assert provider.schema_calls("product_intelligence") == 1

    @pytest.mark.asyncio
    async def test_entitlements_checked_up_front(self, fake_provider, product_repo):
        entitlements = _entitlements("product_intelligence", "landing_page")
        pipeline = _pipeline(fake_provider, product_repo, entitlements)
        with pytest.raises(EntitlementError, match="meta_ads"):
            await pipeline.run_full_pipeline("t1", "p1")
        assert fake_provider.calls == 0

    @pytest.mark.asyncio
    async def test_entitlements_consumed_per_generation(self, fake_provider, product_repo):
        entitlements = _entitlements(*ALL_ADDONS, units=2)
        pipeline = _pipeline(fake_provider, product_repo, entitlements)
        await pipeline.run_full_pipeline("t1", "p1")
        await pipeline.run_full_pipeline("t1", "p1")
        for addon in ALL_ADDONS:
            assert (await entitlements.get_subscription("t1", addon)).usage_remaining == 1


class TestGetStage:
    @pytest.mark.asyncio
    async def test_never_generates(self, fake_provider, product_repo):
        pipeline = _pipeline(fake_provider, product_repo)
        assert await pipeline.get_stage("ads", "t1", "p1") is None
        assert fake_provider.calls == 0

    @pytest.mark.asyncio
    async def test_specific_version(self, fake_provider, product_repo):
        pipeline = _pipeline(fake_provider, product_repo)
        await pipeline.run_stage("intelligence", "t1", "p1")
        await pipeline.run_stage("intelligence", "t1", "p1", force_regenerate=True)
        assert (await pipeline.get_stage("intelligence", "t1", "p1")).version == 2
        v1 = await pipeline.get_stage("intelligence", "t1", "p1", version=1)
        assert v1.version == 1
        assert v1.from_cache is True
        assert await pipeline.get_stage("intelligence", "t1", "p1", version=3) is None
