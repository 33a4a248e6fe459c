# tests/unit/core/test_unit_errors.py - v1
"""Tests for core/errors.py."""

from __future__ import annotations

from storegen.core.errors import (
    EntitlementError,
    InvalidRequestError,
    PipelineStageError,
    ProviderNotConfiguredError,
    ProviderUnavailableError,
    RateLimitedError,
    SchemaParseError,
    StoregenError,
    UnsupportedContentError,
)
from storegen.llm.models import TokenUsage
from storegen.pipeline.state import PipelineRunState


class _StatusError(Exception):
    status_code = 503


class TestErrorFamily:
    def test_all_derive_from_base(self):
        for cls in (
            RateLimitedError, ProviderUnavailableError, ProviderNotConfiguredError,
            SchemaParseError, EntitlementError, InvalidRequestError,
            UnsupportedContentError, PipelineStageError,
        ):
            assert issubclass(cls, StoregenError)

    def test_invalid_request_is_value_error(self):
        assert issubclass(InvalidRequestError, ValueError)
        assert issubclass(UnsupportedContentError, InvalidRequestError)


class TestMessages:
    def test_rate_limited(self):
        err = RateLimitedError("User hourly request limit exceeded (100/100)", "user")
        assert err.scope == "user"
        assert "User hourly request limit" in str(err)

    def test_provider_unavailable_keeps_status(self):
        err = ProviderUnavailableError("gemini", 3, "service_unavailable", _StatusError("down"))
        assert err.status_code == 503
        assert err.attempts == 3
        assert "after 3 attempts" in str(err)

    def test_provider_not_configured(self):
        assert str(ProviderNotConfiguredError("gemini")) == "gemini API key is not configured"

    def test_schema_parse_truncates_raw(self):
        usage = TokenUsage(prompt_tokens=1, completion_tokens=2, total_tokens=3)
        err = SchemaParseError("Failed to parse JSON response", "x" * 2000, usage=usage)
        assert len(str(err)) < 600
        assert err.raw_content == "x" * 2000
        assert err.usage.total_tokens == 3

    def test_entitlement_names_addon(self):
        err = EntitlementError("landing_page", "t1", "usage quota exhausted")
        assert "landing_page" in str(err)
        assert err.reason == "usage quota exhausted"

    def test_unsupported_content(self):
        assert "audio" in str(UnsupportedContentError("audio"))

    def test_pipeline_stage_error(self):
        cause = RuntimeError("boom")
        err = PipelineStageError("landing", cause, completed={}, state=PipelineRunState())
        assert str(err) == "Pipeline stage 'landing' failed: boom"
        assert err.cause is cause
