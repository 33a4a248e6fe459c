# src/pipeline/generation_pipeline.py - v1
"""Three-stage product content pipeline: intelligence -> landing -> ads.

Every stage output is cached and versioned per (tenant, product, stage,
language). Without force, a stored result is returned as-is and no AI
call is made. A failed stage leaves earlier stages stored, so the next
run resumes from the failing stage.
"""

from __future__ import annotations

import json
import logging
from typing import Any

from pydantic import ValidationError

from storegen.cache.base_stage_store import BaseStageStore
from storegen.cache.models import StageKey
from storegen.core.errors import (
    InvalidRequestError,
    PipelineStageError,
    ProductNotFoundError,
    SchemaParseError,
)
from storegen.core.keyed_lock import KeyedLock
from storegen.gateway.ai_gateway import AIGateway
from storegen.gateway.models import CallContext
from storegen.llm.models import JSONRequest, JSONResult
from storegen.llm.token_budget import estimate_call
from storegen.logging.context import stage_context
from storegen.pipeline.entitlements import BaseEntitlementService
from storegen.pipeline.models import (
    STAGE_ADDONS,
    STAGE_CONTENT_MODELS,
    STAGE_DEPENDENCIES,
    SUPPORTED_LANGUAGES,
    FullPipelineResult,
    StageResult,
)
from storegen.pipeline.products import BaseProductRepository, Product
from storegen.pipeline.prompts import STAGE_SCHEMAS, build_prompts
from storegen.pipeline.state import PIPELINE_STAGES, PipelineRunState

logger = logging.getLogger(__name__)


def validate_stage_content(stage: str, result: JSONResult) -> dict[str, Any]:
    """Check model output against the stage content model.

    Returns the normalized camelCase content dict.

    Raises:
        SchemaParseError: Output is not an object of the expected shape.
    """
    model_cls = STAGE_CONTENT_MODELS[stage]
    try:
        if not isinstance(result.data, dict):
            raise TypeError(f"expected a JSON object, got {type(result.data).__name__}")
        content = model_cls.model_validate(result.data)
    except (ValidationError, TypeError) as e:
        raise SchemaParseError(
            f"Stage '{stage}' output does not match the {stage} schema ({e})",
            raw_content=json.dumps(result.data, ensure_ascii=False, default=str),
            usage=result.usage,
            model=result.model,
        ) from e
    return content.model_dump(by_alias=True)


class GenerationPipeline:
    """Cached, versioned, resumable product content generation."""

    def __init__(
        self,
        gateway: AIGateway,
        store: BaseStageStore,
        products: BaseProductRepository,
        entitlements: BaseEntitlementService | None = None,
        max_tokens_per_stage: int = 4096,
        temperature: float = 0.7,
    ) -> None:
        self._gateway = gateway
        self._store = store
        self._products = products
        self._entitlements = entitlements
        self._max_tokens = max_tokens_per_stage
        self._temperature = temperature
        self._locks = KeyedLock()

    # --- Public API ---

    async def run_stage(
        self,
        stage: str,
        tenant_id: str,
        product_id: str,
        language: str = "ar",
        force_regenerate: bool = False,
        user_id: str | None = None,
    ) -> StageResult:
        """Return one stage, from cache unless forced.

        Upstream stages are resolved cache-first and generated only if missing.
        """
        _validate(stage, language)
        product = await self._load_product(tenant_id, product_id)
        return await self._resolve(stage, product, language, force_regenerate, user_id)

    async def run_full_pipeline(
        self,
        tenant_id: str,
        product_id: str,
        language: str = "ar",
        force_regenerate: bool = False,
        user_id: str | None = None,
    ) -> FullPipelineResult:
        """Run all three stages in order.

        Raises:
            EntitlementError: A required add-on is unusable; nothing was called.
            PipelineStageError: A stage failed; carries the completed stages.
        """
        _validate(PIPELINE_STAGES[0], language)
        product = await self._load_product(tenant_id, product_id)

        if self._entitlements is not None:
            for stage in PIPELINE_STAGES:
                await self._entitlements.check(tenant_id, STAGE_ADDONS[stage])

        state = PipelineRunState()
        results: dict[str, StageResult] = {}
        for stage in PIPELINE_STAGES:
            state.start(stage)
            upstream = {dep: results[dep] for dep in STAGE_DEPENDENCIES[stage]}
            try:
                results[stage] = await self._resolve(
                    stage, product, language, force_regenerate, user_id, upstream=upstream,
                )
            except Exception as e:
                state.fail(stage, e)
                logger.error(
                    "Pipeline stopped at stage '%s' for product %s: %s", stage, product.id, e,
                )
                raise PipelineStageError(stage, e, completed=dict(results), state=state) from e
            state.complete(stage)

        total = sum(r.usage.total_tokens for r in results.values() if not r.from_cache)
        logger.info(
            "Pipeline done for product %s (%s): %d fresh tokens",
            product.id, language, total,
        )
        return FullPipelineResult(
            intelligence=results["intelligence"],
            landing=results["landing"],
            ads=results["ads"],
            total_tokens_used=total,
        )

    async def get_stage(
        self,
        stage: str,
        tenant_id: str,
        product_id: str,
        language: str = "ar",
        version: int | None = None,
    ) -> StageResult | None:
        """Stored stage result (latest unless a version is given), never generates."""
        _validate(stage, language)
        key = StageKey(tenant_id, product_id, stage, language)
        record = (
            await self._store.latest(key)
            if version is None
            else await self._store.get_version(key, version)
        )
        return None if record is None else StageResult.from_record(record, from_cache=True)

    async def stage_history(
        self, stage: str, tenant_id: str, product_id: str, language: str = "ar",
    ) -> list[StageResult]:
        """Every stored version of a stage, oldest first."""
        _validate(stage, language)
        records = await self._store.list_versions(StageKey(tenant_id, product_id, stage, language))
        return [StageResult.from_record(r, from_cache=True) for r in records]

    # --- Internals ---

    async def _load_product(self, tenant_id: str, product_id: str) -> Product:
        product = await self._products.get(tenant_id, product_id)
        if product is None:
            raise ProductNotFoundError(tenant_id, product_id)
        return product

    async def _resolve(
        self,
        stage: str,
        product: Product,
        language: str,
        force: bool,
        user_id: str | None,
        upstream: dict[str, StageResult] | None = None,
    ) -> StageResult:
        key = StageKey(product.tenant_id, product.id, stage, language)

        if not force:
            cached = await self._store.latest(key)
            if cached is not None:
                logger.debug("Cache hit %s v%d", key.as_string(), cached.version)
                return StageResult.from_record(cached, from_cache=True)

        if upstream is None:
            upstream = {
                dep: await self._resolve(dep, product, language, False, user_id)
                for dep in STAGE_DEPENDENCIES[stage]
            }

        async with self._locks.hold(key.as_string()):
            if not force:
                # Another task may have generated it while we waited.
                cached = await self._store.latest(key)
                if cached is not None:
                    return StageResult.from_record(cached, from_cache=True)
            return await self._generate(key, product, upstream, user_id)

    async def _generate(
        self,
        key: StageKey,
        product: Product,
        upstream: dict[str, StageResult],
        user_id: str | None,
    ) -> StageResult:
        stage = key.stage
        addon = STAGE_ADDONS[stage]

        with stage_context(stage):
            if self._entitlements is not None:
                await self._entitlements.check(key.tenant_id, addon)

            system_prompt, prompt = build_prompts(
                stage, product, key.language,
                {name: r.content for name, r in upstream.items()},
            )
            estimate = estimate_call(
                self._gateway.adapter.model, prompt, self._max_tokens, system_prompt,
            )
            result = await self._gateway.generate_json(
                JSONRequest(
                    prompt=prompt,
                    system_prompt=system_prompt,
                    output_schema=STAGE_SCHEMAS[stage],
                    max_tokens=self._max_tokens,
                    temperature=self._temperature,
                ),
                CallContext(
                    feature_key=f"pipeline_{stage}",
                    tenant_id=key.tenant_id,
                    user_id=user_id,
                    estimated_tokens=estimate.total_tokens,
                    estimated_cost=estimate.estimated_cost,
                    metadata={"product_id": product.id, "stage": stage, "language": key.language},
                ),
            )
            content = validate_stage_content(stage, result)

            record = await self._store.append_next(key, content, result.usage, result.model)
            if self._entitlements is not None:
                await self._entitlements.consume(key.tenant_id, addon)

            logger.info(
                "Generated %s v%d (%d tokens)", key.as_string(), record.version,
                result.usage.total_tokens,
            )
            return StageResult.from_record(record, from_cache=False)


def _validate(stage: str, language: str) -> None:
    if stage not in PIPELINE_STAGES:
        raise InvalidRequestError(
            f"Unknown stage {stage!r}. Available: {', '.join(PIPELINE_STAGES)}"
        )
    if language not in SUPPORTED_LANGUAGES:
        raise InvalidRequestError(
            f"Unsupported language {language!r}. Available: {', '.join(SUPPORTED_LANGUAGES)}"
        )
