# src/pipeline/models.py - v2
"""Generation pipeline models: stage content shapes and stage results.

Stage content uses camelCase keys on the wire (aliases), snake_case in
Python. Missing list fields default to empty; the headline field of each
stage is required, so an unrelated JSON object is rejected.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from storegen.cache.models import StageName, StageRecord
from storegen.llm.models import TokenUsage

# Stage -> add-on that pays for it.
STAGE_ADDONS: dict[str, str] = {
    "intelligence": "product_intelligence",
    "landing": "landing_page",
    "ads": "meta_ads",
}

# Stage -> upstream stages whose content feeds its prompt.
STAGE_DEPENDENCIES: dict[str, tuple[str, ...]] = {
    "intelligence": (),
    "landing": ("intelligence",),
    "ads": ("intelligence", "landing"),
}

SUPPORTED_LANGUAGES: tuple[str, ...] = ("ar", "en")


class _StageContent(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# === INTELLIGENCE ===


class TargetAudience(_StageContent):
    demographics: str = ""
    interests: list[str] = []
    pain_points: list[str] = []


class VisualStyle(_StageContent):
    primary_colors: list[str] = []
    style: str = ""
    imagery: str = ""


class ProductIntelligence(_StageContent):
    category: str
    target_audience: TargetAudience = Field(default_factory=TargetAudience)
    unique_selling_points: list[str] = []
    pricing_range: str = ""
    tone_of_voice: str = ""
    visual_style: VisualStyle = Field(default_factory=VisualStyle)
    keywords: list[str] = []
    competitive_advantage: str = ""


# === LANDING ===


class HeroSection(_StageContent):
    title: str = ""
    description: str = ""
    cta_text: str = ""


class Feature(_StageContent):
    title: str
    description: str = ""


class FaqItem(_StageContent):
    question: str
    answer: str = ""


class FinalCta(_StageContent):
    title: str = ""
    description: str = ""
    button_text: str = ""


class DesignDirection(_StageContent):
    primary_color: str = ""
    secondary_color: str = ""
    layout_style: str = ""


class LandingPageContent(_StageContent):
    headline: str
    subheadline: str = ""
    hero_section: HeroSection = Field(default_factory=HeroSection)
    features: list[Feature] = []
    benefits: list[str] = []
    faq: list[FaqItem] = []
    final_cta: FinalCta = Field(default_factory=FinalCta)
    design_direction: DesignDirection = Field(default_factory=DesignDirection)


# === ADS ===


class AdAngle(_StageContent):
    angle: str
    description: str = ""
    target_emotion: str = ""


class Hook(_StageContent):
    text: str
    type: str = ""


class AdCopy(_StageContent):
    headline: str
    primary_text: str = ""
    description: str = ""
    call_to_action: str = ""


class CreativeBrief(_StageContent):
    format: str
    concept: str = ""
    visual_elements: list[str] = []


class AudienceSuggestion(_StageContent):
    name: str
    interests: list[str] = []
    demographics: str = ""


class AdCampaignDraft(_StageContent):
    campaign_objective: str
    ad_angles: list[AdAngle] = []
    hooks: list[Hook] = []
    ad_copies: list[AdCopy] = []
    creative_briefs: list[CreativeBrief] = []
    audience_suggestions: list[AudienceSuggestion] = []


STAGE_CONTENT_MODELS: dict[str, type[_StageContent]] = {
    "intelligence": ProductIntelligence,
    "landing": LandingPageContent,
    "ads": AdCampaignDraft,
}


# === RESULTS ===


class StageResult(BaseModel):
    """One stage output as returned to callers."""

    stage: StageName
    tenant_id: str
    product_id: str
    language: str
    content: dict[str, Any]
    version: int
    from_cache: bool
    usage: TokenUsage = Field(default_factory=TokenUsage)
    model: str = ""
    created_at: datetime

    @classmethod
    def from_record(cls, record: StageRecord, from_cache: bool) -> StageResult:
        return cls(
            stage=record.stage,
            tenant_id=record.tenant_id,
            product_id=record.product_id,
            language=record.language,
            content=record.content,
            version=record.version,
            from_cache=from_cache,
            usage=record.usage,
            model=record.model,
            created_at=record.created_at,
        )


class FullPipelineResult(BaseModel):
    intelligence: StageResult
    landing: StageResult
    ads: StageResult
    total_tokens_used: int = 0
