# src/config/settings.py - v1
"""Typed configuration loaded from .env via pydantic-settings.

Single source of truth for provider credentials, retry/timeout policy,
budget ceilings, the kill switch default and storage backends.
"""

from __future__ import annotations

from pathlib import Path
from typing import Literal

from pydantic import field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class ConfigurationError(Exception):
    """Raised when configuration is internally inconsistent."""


class Settings(BaseSettings):
    """Application settings loaded from .env file."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # === PROVIDER SELECTION ===
    ai_provider: Literal["gemini", "openai", "forge"] = "gemini"

    # Gemini (served through an OpenAI-compatible endpoint)
    gemini_api_key: str = ""
    gemini_api_url: str = ""
    ai_model_text: str = "gemini-2.0-flash"

    # OpenAI (legacy/fallback)
    openai_api_key: str = ""
    openai_api_url: str = "https://api.openai.com/v1"
    openai_model: str = "gpt-4-turbo"

    # Built-in forge proxy
    built_in_forge_api_key: str = ""
    built_in_forge_api_url: str = "https://forge.manus.im"

    # === CALL POLICY ===
    ai_max_retries: int = 3
    ai_retry_delay_ms: int = 1000
    ai_timeout_ms: int = 60_000

    # === BUDGET CEILINGS ===
    ai_max_tokens_per_run: int = 100_000
    ai_max_cost_per_run: float = 5.0

    ai_user_max_requests_per_hour: int = 100
    ai_user_max_tokens_per_hour: int = 500_000
    ai_user_max_cost_per_hour: float = 10.0

    ai_tenant_max_requests_per_hour: int = 500
    ai_tenant_max_tokens_per_hour: int = 2_000_000
    ai_tenant_max_cost_per_hour: float = 50.0

    ai_global_max_requests_per_hour: int = 5000
    ai_global_max_tokens_per_hour: int = 10_000_000
    ai_global_max_cost_per_hour: float = 500.0

    ai_rate_window_seconds: float = 3600.0

    # === FEATURE FLAGS ===
    # Fail-open: AI calls proceed unless ENABLE_AI_CALLS=false.
    enable_ai_calls: bool = True
    enable_ai_logging: bool = True

    # === USAGE LOG ===
    usage_log_buffer_size: int = 1000
    usage_store_backend: Literal["none", "sqlite", "jsonl"] = "sqlite"
    usage_store_path: Path = Path("~/.storegen/usage.db")

    # === STAGE CACHE ===
    stage_store_backend: Literal["memory", "sqlite", "redis"] = "sqlite"
    stage_store_path: Path = Path("~/.storegen/stages.db")
    stage_store_redis_url: str = ""

    # === PIPELINE ===
    pipeline_default_language: Literal["ar", "en"] = "ar"
    pipeline_max_tokens_per_stage: int = 4096
    pipeline_temperature: float = 0.7
    entitlements_enforced: bool = True

    # === LOGGING ===
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    log_format: Literal["json", "text"] = "json"
    log_file: Path | None = None
    log_rotation: str = "10MB"
    log_retention: int = 30

    # --- Validators ---

    @field_validator("ai_max_retries")
    @classmethod
    def validate_max_retries(cls, v: int) -> int:
        """At least one attempt is always made."""
        if v < 1:
            raise ValueError("ai_max_retries must be >= 1")
        return v

    @model_validator(mode="after")
    def validate_config_consistency(self) -> Settings:
        """Validate cross-field consistency rules."""
        errors: list[str] = []

        if self.ai_rate_window_seconds <= 0:
            errors.append("AI_RATE_WINDOW_SECONDS must be > 0")

        if self.ai_retry_delay_ms < 0 or self.ai_timeout_ms <= 0:
            errors.append("AI_RETRY_DELAY_MS must be >= 0 and AI_TIMEOUT_MS > 0")

        ceilings = {
            "AI_MAX_TOKENS_PER_RUN": self.ai_max_tokens_per_run,
            "AI_MAX_COST_PER_RUN": self.ai_max_cost_per_run,
            "AI_USER_MAX_REQUESTS_PER_HOUR": self.ai_user_max_requests_per_hour,
            "AI_TENANT_MAX_REQUESTS_PER_HOUR": self.ai_tenant_max_requests_per_hour,
            "AI_GLOBAL_MAX_REQUESTS_PER_HOUR": self.ai_global_max_requests_per_hour,
        }
        for name, value in ceilings.items():
            if value <= 0:
                errors.append(f"{name} must be > 0")

        if self.stage_store_backend == "redis" and not self.stage_store_redis_url:
            errors.append("STAGE_STORE_REDIS_URL must be set when STAGE_STORE_BACKEND=redis")

        if self.usage_log_buffer_size < 1:
            errors.append("USAGE_LOG_BUFFER_SIZE must be >= 1")

        if errors:
            raise ConfigurationError("; ".join(errors))

        return self


def load_settings(**overrides: object) -> Settings:
    """Load settings from .env with optional overrides.

    Args:
        **overrides: Field-level overrides (for testing or per-process config).

    Returns:
        Validated Settings instance.

    Raises:
        ConfigurationError: If configuration is internally inconsistent.
    """
    return Settings(**overrides)  # type: ignore[arg-type]
