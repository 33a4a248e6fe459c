# tests/integration/gateway/test_int_gateway_http.py - v1
"""Integration test: gateway -> chat-completions adapter -> openai SDK -> httpx.

The provider endpoint is an httpx MockTransport, so the full request path
runs (payload building, SDK serialization, retry, parsing) without network.
"""

from __future__ import annotations

import json

import httpx
import pytest

from storegen.api.facade import build_gateway, build_services
from storegen.core.errors import ProviderUnavailableError, RateLimitedError
from storegen.gateway.models import CallContext
from storegen.llm.models import GenerationRequest, Message


class FakeEndpoint:
    """Chat-completions endpoint answering by response_format schema name."""

    def __init__(self, payloads: dict[str, dict], failing_status: int | None = None):
        self.payloads = payloads
        self.failing_status = failing_status
        self.bodies: list[dict] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content)
        self.bodies.append(body)
        if self.failing_status is not None:
            return httpx.Response(self.failing_status, json={"error": {"message": "unavailable"}})
        fmt = body.get("response_format") or {}
        name = fmt.get("json_schema", {}).get("name")
        content = json.dumps(self.payloads[name]) if name else "plain answer"
        return httpx.Response(200, json={
            "id": f"chatcmpl-{len(self.bodies)}",
            "object": "chat.completion",
            "created": 1_700_000_000,
            "model": body["model"],
            "choices": [{
                "index": 0,
                "message": {"role": "assistant", "content": content},
                "finish_reason": "stop",
            }],
            "usage": {"prompt_tokens": 200, "completion_tokens": 100, "total_tokens": 300},
        })


async def _no_sleep(_delay: float) -> None:
    return None


def _client(endpoint: FakeEndpoint) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.MockTransport(endpoint))


class TestGatewayOverHttp:
    @pytest.mark.asyncio
    async def test_full_pipeline(self, settings, stage_payloads, product_repo):
        endpoint = FakeEndpoint(stage_payloads)
        services = build_services(
            settings, products=product_repo, http_client=_client(endpoint), sleep=_no_sleep,
        )
        result = await services.pipeline.run_full_pipeline("t1", "p1", language="ar")
        assert result.ads.content["campaignObjective"] == "conversions"
        assert result.total_tokens_used == 900
        assert [b["response_format"]["json_schema"]["name"] for b in endpoint.bodies] == [
            "product_intelligence", "landing_page", "meta_ads",
        ]
        first = endpoint.bodies[0]
        assert first["max_tokens"] == 4096
        assert first["thinking"] == {"budget_tokens": 128}
        assert first["response_format"]["json_schema"]["strict"] is True

    @pytest.mark.asyncio
    async def test_retry_exhaustion_logged_once(self, settings, stage_payloads):
        endpoint = FakeEndpoint(stage_payloads, failing_status=503)
        gateway = build_gateway(settings, http_client=_client(endpoint), sleep=_no_sleep)
        with pytest.raises(ProviderUnavailableError):
            await gateway.generate_text(
                GenerationRequest(messages=[Message(role="user", content="hi")]),
                CallContext(feature_key="probe", tenant_id="t1"),
            )
        assert len(endpoint.bodies) == 3
        [entry] = gateway.recent_usage()
        assert entry.status == "failed"
        assert gateway.rate_limiter.window("tenant:t1").count == 1

    @pytest.mark.asyncio
    async def test_legacy_invoke(self, settings, stage_payloads):
        endpoint = FakeEndpoint(stage_payloads)
        gateway = build_gateway(settings, http_client=_client(endpoint), sleep=_no_sleep)
        resp = await gateway.invoke_legacy({
            "messages": [{"role": "user", "content": [{"type": "text", "text": "hi"}]}],
            "tools": [{"type": "function", "function": {"name": "lookup"}}],
            "toolChoice": "required",
            "maxTokens": 256,
        })
        assert resp["choices"][0]["message"]["content"] == "plain answer"
        sent = endpoint.bodies[0]
        assert sent["messages"] == [{"role": "user", "content": "hi"}]
        assert sent["tool_choice"] == {"type": "function", "function": {"name": "lookup"}}
        assert sent["max_tokens"] == 256

    @pytest.mark.asyncio
    async def test_kill_switch_never_calls_endpoint(self, settings, stage_payloads):
        endpoint = FakeEndpoint(stage_payloads)
        disabled = settings.model_copy(update={"enable_ai_calls": False})
        gateway = build_gateway(disabled, http_client=_client(endpoint), sleep=_no_sleep)
        with pytest.raises(RateLimitedError):
            await gateway.invoke_legacy({"messages": [{"role": "user", "content": "hi"}]})
        assert endpoint.bodies == []
        assert gateway.recent_usage()[0].status == "rate_limited"
