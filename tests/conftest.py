# tests/conftest.py - v2
"""Shared test fixtures for all unit and integration tests.

Provides a scripted provider adapter, a sample product, valid stage
payloads and isolated settings. No network: the fake adapter answers
every call from memory.
"""

from __future__ import annotations

import asyncio
import copy
import json
from typing import Any

import pytest

from storegen.config.settings import Settings
from storegen.llm.base_client import BaseProviderAdapter
from storegen.llm.models import (
    GenerationRequest,
    GenerationResult,
    JSONRequest,
    JSONResult,
    TokenUsage,
)
from storegen.pipeline.products import InMemoryProductRepository, Product


# === FIXTURES: Sample data ===


INTELLIGENCE_PAYLOAD: dict[str, Any] = {
    "category": "Home & Kitchen",
    "targetAudience": {
        "demographics": "Adults 25-40 in Saudi cities",
        "interests": ["cooking", "home organization"],
        "painPoints": ["cluttered counters"],
    },
    "uniqueSellingPoints": ["Compact", "Dishwasher safe", "Two-year warranty"],
    "pricingRange": "mid-range",
    "toneOfVoice": "friendly",
    "visualStyle": {"primaryColors": ["#1E88E5"], "style": "minimal", "imagery": "lifestyle"},
    "keywords": ["widget", "kitchen"],
    "competitiveAdvantage": "Folds flat",
}

LANDING_PAYLOAD: dict[str, Any] = {
    "headline": "The widget your kitchen was missing",
    "subheadline": "Folds flat, works hard",
    "heroSection": {"title": "Meet Widget", "description": "Small and sturdy", "ctaText": "Buy now"},
    "features": [{"title": "Foldable", "description": "Stores in a drawer"}],
    "benefits": ["More counter space"],
    "faq": [{"question": "Is it dishwasher safe?", "answer": "Yes"}],
    "finalCta": {"title": "Ready?", "description": "Order today", "buttonText": "Order"},
    "designDirection": {"primaryColor": "#1E88E5", "secondaryColor": "#FFFFFF", "layoutStyle": "single column"},
}

ADS_PAYLOAD: dict[str, Any] = {
    "campaignObjective": "conversions",
    "adAngles": [{"angle": "Space saving", "description": "Show the fold", "targetEmotion": "relief"}],
    "hooks": [{"text": "Still fighting for counter space?", "type": "question"}],
    "adCopies": [
        {
            "headline": "Fold it. Forget it.",
            "primaryText": "Widget folds flat when you are done.",
            "description": "Free delivery",
            "callToAction": "Shop now",
        }
    ],
    "creativeBriefs": [{"format": "video", "concept": "Before and after", "visualElements": ["counter"]}],
    "audienceSuggestions": [{"name": "Home cooks", "interests": ["cooking"], "demographics": "25-40"}],
}

# JSON schema name -> canned answer
STAGE_PAYLOADS: dict[str, dict[str, Any]] = {
    "product_intelligence": INTELLIGENCE_PAYLOAD,
    "landing_page": LANDING_PAYLOAD,
    "meta_ads": ADS_PAYLOAD,
}

DEFAULT_USAGE = TokenUsage(prompt_tokens=100, completion_tokens=50, total_tokens=150)


class FakeProvider(BaseProviderAdapter):
    """Scripted adapter.

    JSON calls answer with the canned payload for the request's schema name
    unless ``overrides`` maps that name to another payload or an exception.
    Text calls pop ``text_replies`` in order (strings or exceptions).
    """

    def __init__(
        self,
        model: str = "gemini-2.0-flash",
        provider: str = "gemini",
        configured: bool = True,
        usage: TokenUsage = DEFAULT_USAGE,
        overrides: dict[str, Any] | None = None,
        text_replies: list[Any] | None = None,
        delay: float = 0.0,
    ):
        self._model = model
        self._provider = provider
        self._configured = configured
        self.usage = usage
        self.overrides: dict[str, Any] = dict(overrides or {})
        self.text_replies: list[Any] = list(text_replies or [])
        self.delay = delay
        self.text_requests: list[GenerationRequest] = []
        self.json_requests: list[JSONRequest] = []

    @property
    def provider_name(self) -> str:
        return self._provider

    @property
    def model(self) -> str:
        return self._model

    @property
    def is_configured(self) -> bool:
        return self._configured

    @property
    def calls(self) -> int:
        return len(self.text_requests) + len(self.json_requests)

    def schema_calls(self, schema_name: str) -> int:
        return sum(1 for r in self.json_requests if r.output_schema.name == schema_name)

    async def generate_text(self, request: GenerationRequest) -> GenerationResult:
        self.text_requests.append(request)
        if self.delay:
            await asyncio.sleep(self.delay)
        reply = self.text_replies.pop(0) if self.text_replies else "ok"
        if isinstance(reply, BaseException):
            raise reply
        return GenerationResult(
            id=f"fake-{len(self.text_requests)}",
            created=1_700_000_000,
            model=self._model,
            provider=self._provider,
            content=reply,
            finish_reason="stop",
            usage=self.usage,
        )

    async def generate_json(self, request: JSONRequest) -> JSONResult:
        self.json_requests.append(request)
        if self.delay:
            await asyncio.sleep(self.delay)
        name = request.output_schema.name
        answer = self.overrides.get(name, STAGE_PAYLOADS.get(name, {}))
        if isinstance(answer, BaseException):
            raise answer
        return JSONResult(
            id=f"fake-{len(self.json_requests)}",
            model=self._model,
            provider=self._provider,
            data=copy.deepcopy(answer),
            usage=self.usage,
        )


@pytest.fixture
def fake_provider() -> FakeProvider:
    return FakeProvider()


@pytest.fixture
def make_provider():
    """Factory for FakeProvider with custom behaviour."""
    return FakeProvider


@pytest.fixture
def stage_payloads() -> dict[str, dict[str, Any]]:
    return copy.deepcopy(STAGE_PAYLOADS)


@pytest.fixture
def sample_product() -> Product:
    return Product(
        id="p1",
        tenant_id="t1",
        name="Widget",
        description="A foldable kitchen widget",
        price=149.0,
        currency="SAR",
    )


@pytest.fixture
def product_repo(sample_product: Product) -> InMemoryProductRepository:
    return InMemoryProductRepository([sample_product])


@pytest.fixture
def settings() -> Settings:
    """Settings isolated from any .env file, with in-memory backends."""
    return Settings(
        _env_file=None,
        gemini_api_key="test-key",
        usage_store_backend="none",
        stage_store_backend="memory",
        entitlements_enforced=False,
    )


@pytest.fixture
def product_file(tmp_path, sample_product: Product):
    path = tmp_path / "product.json"
    path.write_text(
        json.dumps({"id": sample_product.id, "name": sample_product.name, "price": 149}),
        encoding="utf-8",
    )
    return path
