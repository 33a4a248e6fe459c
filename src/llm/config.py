# src/llm/config.py - v2
"""Provider connection resolution.

Resolution order for credentials and endpoint:
  1. Provider-specific env vars (GEMINI_API_KEY, OPENAI_API_KEY, ...)
  2. Built-in forge proxy (BUILT_IN_FORGE_API_KEY / _URL), gemini only
  3. Hardcoded fallback endpoint (https://forge.manus.im)
"""

from __future__ import annotations

from dataclasses import dataclass

from storegen.config.settings import Settings

_FALLBACK_API_URL = "https://forge.manus.im"
_FALLBACK_MODEL = "gemini-2.0-flash"


@dataclass(frozen=True)
class ProviderConfig:
    """Resolved connection and call policy for one provider."""

    provider: str
    api_key: str
    api_url: str
    model: str
    max_retries: int = 3
    retry_delay_ms: int = 1000
    timeout_ms: int = 60_000
    source: str = "provider"  # "provider", "forge" or "fallback"

    @property
    def is_configured(self) -> bool:
        return bool(self.api_key)

    @property
    def base_url(self) -> str:
        """OpenAI-compatible base URL, always ending in /v1."""
        url = self.api_url.rstrip("/")
        return url if url.endswith("/v1") else f"{url}/v1"


def resolve_provider(settings: Settings, provider: str | None = None) -> ProviderConfig:
    """Resolve credentials, endpoint and model for a provider.

    Args:
        settings: Application settings.
        provider: Provider override; defaults to settings.ai_provider.

    Returns:
        Resolved ProviderConfig.
    """
    name = provider or settings.ai_provider
    policy = dict(
        max_retries=settings.ai_max_retries,
        retry_delay_ms=settings.ai_retry_delay_ms,
        timeout_ms=settings.ai_timeout_ms,
    )

    if name == "openai":
        return ProviderConfig(
            provider="openai",
            api_key=settings.openai_api_key,
            api_url=settings.openai_api_url,
            model=settings.openai_model,
            **policy,
        )

    model = settings.ai_model_text or _FALLBACK_MODEL

    if name == "gemini":
        api_key = settings.gemini_api_key or settings.built_in_forge_api_key
        api_url = settings.gemini_api_url or settings.built_in_forge_api_url
        if settings.gemini_api_key and settings.gemini_api_url:
            source = "provider"
        elif api_url:
            source = "forge"
        else:
            source = "fallback"
        return ProviderConfig(
            provider="gemini",
            api_key=api_key,
            api_url=api_url or _FALLBACK_API_URL,
            model=model,
            source=source,
            **policy,
        )

    return ProviderConfig(
        provider=name,
        api_key=settings.built_in_forge_api_key,
        api_url=settings.built_in_forge_api_url or _FALLBACK_API_URL,
        model=model,
        **policy,
    )
