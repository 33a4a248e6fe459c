# src/pipeline/prompts.py - v1
"""Stage prompts (ar/en) and their structured-output JSON schemas."""

from __future__ import annotations

from typing import Any

from storegen.llm.models import JsonSchema
from storegen.pipeline.products import Product


def _str() -> dict[str, Any]:
    return {"type": "string"}


def _str_list() -> dict[str, Any]:
    return {"type": "array", "items": {"type": "string"}}


def _obj(**properties: dict[str, Any]) -> dict[str, Any]:
    return {
        "type": "object",
        "properties": properties,
        "required": list(properties),
        "additionalProperties": False,
    }


def _list_of(**properties: dict[str, Any]) -> dict[str, Any]:
    return {"type": "array", "items": _obj(**properties)}


STAGE_SCHEMAS: dict[str, JsonSchema] = {
    "intelligence": JsonSchema(
        name="product_intelligence",
        strict=True,
        schema=_obj(
            category=_str(),
            targetAudience=_obj(demographics=_str(), interests=_str_list(), painPoints=_str_list()),
            uniqueSellingPoints=_str_list(),
            pricingRange=_str(),
            toneOfVoice=_str(),
            visualStyle=_obj(primaryColors=_str_list(), style=_str(), imagery=_str()),
            keywords=_str_list(),
            competitiveAdvantage=_str(),
        ),
    ),
    "landing": JsonSchema(
        name="landing_page",
        strict=True,
        schema=_obj(
            headline=_str(),
            subheadline=_str(),
            heroSection=_obj(title=_str(), description=_str(), ctaText=_str()),
            features=_list_of(title=_str(), description=_str()),
            benefits=_str_list(),
            faq=_list_of(question=_str(), answer=_str()),
            finalCta=_obj(title=_str(), description=_str(), buttonText=_str()),
            designDirection=_obj(primaryColor=_str(), secondaryColor=_str(), layoutStyle=_str()),
        ),
    ),
    "ads": JsonSchema(
        name="meta_ads",
        strict=True,
        schema=_obj(
            campaignObjective=_str(),
            adAngles=_list_of(angle=_str(), description=_str(), targetEmotion=_str()),
            hooks=_list_of(text=_str(), type=_str()),
            adCopies=_list_of(
                headline=_str(), primaryText=_str(), description=_str(), callToAction=_str(),
            ),
            creativeBriefs=_list_of(format=_str(), concept=_str(), visualElements=_str_list()),
            audienceSuggestions=_list_of(name=_str(), interests=_str_list(), demographics=_str()),
        ),
    ),
}


_SYSTEM_PROMPTS: dict[str, dict[str, str]] = {
    "intelligence": {
        "ar": "أنت خبير تسويق ومحلل منتجات. قم بتحليل المنتج وأنشئ ملف ذكاء منتج شامل. أجب بصيغة JSON فقط.",
        "en": "You are a marketing expert. Analyze the product and create a comprehensive intelligence profile. Respond in JSON only.",
    },
    "landing": {
        "ar": "أنت خبير في تصميم صفحات الهبوط عالية التحويل. أنشئ محتوى صفحة هبوط كاملة. أجب بصيغة JSON فقط.",
        "en": "You are an expert in high-converting landing pages. Create complete landing page content. Respond in JSON only.",
    },
    "ads": {
        "ar": "أنت خبير إعلانات Meta ومشتري وسائط محترف. أنشئ حملة إعلانية كاملة. أجب بصيغة JSON فقط.",
        "en": "You are a Meta ads expert and professional media buyer. Create a complete ad campaign. Respond in JSON only.",
    },
}

_USER_TEMPLATES: dict[str, dict[str, str]] = {
    "intelligence": {
        "ar": """حلل هذا المنتج:
الاسم: {name}
الوصف: {description}
السعر: {price}

أنشئ ملف ذكاء يتضمن:
1. category (الفئة)
2. targetAudience: {{ demographics, interests[], painPoints[] }}
3. uniqueSellingPoints[] (3-5 نقاط)
4. pricingRange (budget/mid-range/premium/luxury)
5. toneOfVoice (professional/casual/playful/luxury/urgent/friendly)
6. visualStyle: {{ primaryColors[], style, imagery }}
7. keywords[] (للإعلانات)
8. competitiveAdvantage""",
        "en": """Analyze this product:
Name: {name}
Description: {description}
Price: {price}

Create intelligence profile with:
1. category
2. targetAudience: {{ demographics, interests[], painPoints[] }}
3. uniqueSellingPoints[] (3-5 points)
4. pricingRange (budget/mid-range/premium/luxury)
5. toneOfVoice (professional/casual/playful/luxury/urgent/friendly)
6. visualStyle: {{ primaryColors[], style, imagery }}
7. keywords[] (for ads)
8. competitiveAdvantage""",
    },
    "landing": {
        "ar": """بناءً على ذكاء المنتج التالي، أنشئ محتوى صفحة هبوط:

المنتج: {name}
السعر: {price}
الفئة: {category}
الجمهور: {demographics}
نقاط البيع: {usps}
نبرة الصوت: {tone}

أنشئ:
1. headline (عنوان رئيسي جذاب)
2. subheadline
3. heroSection: {{ title, description, ctaText }}
4. features[]: {{ title, description }} (3-4 ميزات)
5. benefits[] (4-5 فوائد)
6. faq[]: {{ question, answer }} (3-4 أسئلة)
7. finalCta: {{ title, description, buttonText }}
8. designDirection: {{ primaryColor, secondaryColor, layoutStyle }}""",
        "en": """Based on this product intelligence, create landing page content:

Product: {name}
Price: {price}
Category: {category}
Audience: {demographics}
USPs: {usps}
Tone: {tone}

Create:
1. headline
2. subheadline
3. heroSection: {{ title, description, ctaText }}
4. features[]: {{ title, description }} (3-4 features)
5. benefits[] (4-5 benefits)
6. faq[]: {{ question, answer }} (3-4 FAQs)
7. finalCta: {{ title, description, buttonText }}
8. designDirection: {{ primaryColor, secondaryColor, layoutStyle }}""",
    },
    "ads": {
        "ar": """بناءً على ذكاء المنتج، أنشئ حملة إعلانات Meta:

المنتج: {name}
السعر: {price}
الجمهور: {demographics}
الاهتمامات: {interests}
نقاط الألم: {pain_points}
نقاط البيع: {usps}
الكلمات المفتاحية: {keywords}
عنوان صفحة الهبوط: {headline}

أنشئ:
1. campaignObjective (awareness/traffic/engagement/leads/conversions)
2. adAngles[]: {{ angle, description, targetEmotion }} (3 زوايا)
3. hooks[]: {{ text, type }} (5 hooks - question/statement/statistic/story/urgency)
4. adCopies[]: {{ headline, primaryText, description, callToAction }} (3 نسخ)
5. creativeBriefs[]: {{ format, concept, visualElements[] }} (2 briefs - image/video)
6. audienceSuggestions[]: {{ name, interests[], demographics }} (3 جماهير)""",
        "en": """Based on product intelligence, create Meta ads campaign:

Product: {name}
Price: {price}
Audience: {demographics}
Interests: {interests}
Pain Points: {pain_points}
USPs: {usps}
Keywords: {keywords}
Landing page headline: {headline}

Create:
1. campaignObjective (awareness/traffic/engagement/leads/conversions)
2. adAngles[]: {{ angle, description, targetEmotion }} (3 angles)
3. hooks[]: {{ text, type }} (5 hooks - question/statement/statistic/story/urgency)
4. adCopies[]: {{ headline, primaryText, description, callToAction }} (3 copies)
5. creativeBriefs[]: {{ format, concept, visualElements[] }} (2 briefs - image/video)
6. audienceSuggestions[]: {{ name, interests[], demographics }} (3 audiences)""",
    },
}

_MISSING = {"ar": "غير متوفر", "en": "N/A"}


def _join(values: Any) -> str:
    return ", ".join(str(v) for v in values) if isinstance(values, list) else ""


def build_prompts(
    stage: str,
    product: Product,
    language: str,
    upstream: dict[str, dict[str, Any]] | None = None,
) -> tuple[str, str]:
    """Return (system_prompt, user_prompt) for a stage.

    ``upstream`` maps upstream stage names to their content dicts.
    """
    upstream = upstream or {}
    intel = upstream.get("intelligence", {})
    landing = upstream.get("landing", {})
    audience = intel.get("targetAudience") or {}

    fields = {
        "name": product.name,
        "description": product.description or _MISSING[language],
        "price": f"{product.price:g} {product.currency}",
        "category": intel.get("category", ""),
        "demographics": audience.get("demographics", ""),
        "interests": _join(audience.get("interests")),
        "pain_points": _join(audience.get("painPoints")),
        "usps": _join(intel.get("uniqueSellingPoints")),
        "tone": intel.get("toneOfVoice", ""),
        "keywords": _join(intel.get("keywords")),
        "headline": landing.get("headline", ""),
    }
    system = _SYSTEM_PROMPTS[stage][language]
    user = _USER_TEMPLATES[stage][language].format(**fields)
    return system, user
